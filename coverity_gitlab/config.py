"""Configuration loading for coverity-gitlab.

Config sources (in priority order):
1. Explicit arguments passed to functions
2. Environment variables (GitLab CI predefined variables, COV_URL, etc.)
3. .env file in current directory
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass
class Config:
    gitlab_token: str = ""
    server_url: str = ""  # "https://gitlab.example.com"
    project_id: str = ""
    namespace: str = ""
    project_name: str = ""
    merge_request_iid: str = ""
    base_sha: str = ""
    commit_sha: str = ""
    coverity_url: str = ""
    coverity_user: str = ""
    coverity_passphrase: str = ""
    coverity_project: str = ""

    @classmethod
    def load(cls) -> Config:
        return cls(
            gitlab_token=os.getenv("GITLAB_TOKEN", ""),
            server_url=os.getenv("CI_SERVER_URL", ""),
            project_id=os.getenv("CI_PROJECT_ID", ""),
            namespace=os.getenv("CI_PROJECT_NAMESPACE", ""),
            project_name=os.getenv("CI_PROJECT_NAME", ""),
            merge_request_iid=os.getenv("CI_MERGE_REQUEST_IID", ""),
            base_sha=os.getenv("CI_MERGE_REQUEST_DIFF_BASE_SHA", ""),
            commit_sha=os.getenv("CI_COMMIT_SHA", ""),
            coverity_url=os.getenv("COV_URL", ""),
            coverity_user=os.getenv("COV_USER", ""),
            coverity_passphrase=os.getenv("COVERITY_PASSPHRASE", ""),
            coverity_project=os.getenv("COV_PROJECT", ""),
        )

    @property
    def coverity_configured(self) -> bool:
        """Whether server-side classification can run at all."""
        return all(
            [
                self.coverity_url,
                self.coverity_user,
                self.coverity_passphrase,
                self.coverity_project,
            ]
        )

    def validate(self) -> list[str]:
        """Return a list of missing config issues."""
        issues = []
        if not self.gitlab_token:
            issues.append("GitLab token not set (GITLAB_TOKEN)")
        if not self.server_url:
            issues.append("GitLab server URL not set (CI_SERVER_URL)")
        if not self.project_id:
            issues.append("Project id not set (CI_PROJECT_ID)")
        if not self.namespace or not self.project_name:
            issues.append("Project path not set (CI_PROJECT_NAMESPACE, CI_PROJECT_NAME)")
        if not self.commit_sha:
            issues.append("Commit not set (CI_COMMIT_SHA)")
        if not self.merge_request_iid:
            issues.append("Not a merge request pipeline (CI_MERGE_REQUEST_IID)")
        elif not self.merge_request_iid.isdigit():
            issues.append(f"Merge request IID is not a number: {self.merge_request_iid}")
        if self.merge_request_iid and not self.base_sha:
            issues.append("Merge request base commit not set (CI_MERGE_REQUEST_DIFF_BASE_SHA)")
        return issues
