"""Reconcile Coverity findings with the discussions on a merge request.

For each issue, in findings order, the first matching branch wins:

1. an existing discussion anchored on the issue's line -> update it
2. any other existing discussion for the merge key -> update it
3. the issue is ignored on the server -> skip
4. the server already knew the issue before this snapshot -> skip
5. the issue's line is added by the merge request -> new positioned comment
6. otherwise -> new general comment linking to the file

Branch 2 renders the review body, not the general comment body used by
branch 6. A body matching either rendering counts as current, so a comment
created by branch 6 is left alone on the next run.

After the loop, discussions nobody claimed are rewritten as "no longer
present" if they still claim their issue is found.

A failed write only fails that issue; the run always completes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

import requests

from coverity_gitlab.coverity.models import Issue, ServerIssueRecord
from coverity_gitlab.gitlab.client import Anchor, Discussion, GitLabClient
from coverity_gitlab.gitlab.diffmap import DiffMap
from coverity_gitlab.reconcile.comments import (
    is_present,
    render_issue,
    render_resolved,
    render_review,
)
from coverity_gitlab.reconcile.discussions import DiscussionIndex

logger = logging.getLogger(__name__)


class Action(str, Enum):
    UPDATE = "update"
    UNCHANGED = "unchanged"
    SKIP_IGNORED = "skip-ignored"
    SKIP_NOT_NEW = "skip-not-new"
    CREATE_POSITIONED = "create-positioned"
    CREATE_UNPOSITIONED = "create-unpositioned"


WRITE_ACTIONS = {Action.UPDATE, Action.CREATE_POSITIONED, Action.CREATE_UNPOSITIONED}


@dataclass(frozen=True)
class MergeRequestContext:
    """Per-run data for anchoring comments and linking to files."""

    base_sha: str
    head_sha: str
    server_url: str
    namespace: str
    project_name: str
    ref: str

    def blob_url(self, path: str, line: int) -> str:
        return (
            f"{self.server_url.rstrip('/')}/{self.namespace}/{self.project_name}"
            f"/-/blob/{self.ref}/{path}#L{line}"
        )


@dataclass
class IssueResult:
    issue: Issue
    action: Action
    discussion_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SweepResult:
    discussion_id: str
    resolved: bool
    error: str | None = None


@dataclass
class ReconcileSummary:
    issues: list[IssueResult] = field(default_factory=list)
    swept: list[SweepResult] = field(default_factory=list)

    def count(self, action: Action) -> int:
        return sum(1 for r in self.issues if r.ok and r.action == action)

    @property
    def created(self) -> int:
        return self.count(Action.CREATE_POSITIONED) + self.count(Action.CREATE_UNPOSITIONED)

    @property
    def updated(self) -> int:
        return self.count(Action.UPDATE)

    @property
    def unchanged(self) -> int:
        return self.count(Action.UNCHANGED)

    @property
    def skipped(self) -> int:
        return self.count(Action.SKIP_IGNORED) + self.count(Action.SKIP_NOT_NEW)

    @property
    def resolved(self) -> int:
        return sum(1 for s in self.swept if s.resolved and s.error is None)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.issues if not r.ok) + sum(
            1 for s in self.swept if s.error is not None
        )


class Reconciler:
    """Runs one reconciliation pass over a merge request.

    Owns the discussion pool for the duration of `run`.
    """

    def __init__(
        self,
        gitlab: GitLabClient,
        diff_map: DiffMap,
        server_records: dict[str, ServerIssueRecord],
        context: MergeRequestContext,
        commit_sha: str,
        dry_run: bool = False,
    ) -> None:
        self._gitlab = gitlab
        self._diff_map = diff_map
        self._records = server_records
        self._context = context
        self._commit_sha = commit_sha
        self._dry_run = dry_run

    def run(self, issues: Iterable[Issue], discussions: Iterable[Discussion]) -> ReconcileSummary:
        index = DiscussionIndex.from_discussions(discussions)
        summary = ReconcileSummary()

        for issue in issues:
            logger.info(f"Found Coverity issue {issue.merge_key} at {issue.file_path}:{issue.line}")
            summary.issues.append(self._reconcile_issue(issue, index))

        for discussion in index.remaining():
            summary.swept.append(self._sweep(discussion))

        return summary

    def _decide(
        self, issue: Issue, index: DiscussionIndex
    ) -> tuple[Action, Discussion | None, str | None]:
        file_url = self._context.blob_url(issue.file_path, issue.line)

        existing = index.extract_positioned(issue.line, issue.merge_key)
        if existing is not None:
            body = render_review(issue)
            if existing.root.body == body:
                return Action.UNCHANGED, existing, None
            return Action.UPDATE, existing, body

        existing = index.extract_unpositioned(issue.merge_key)
        if existing is not None:
            body = render_review(issue)
            # a general comment with the file link is already current
            if existing.root.body in (body, render_issue(issue, file_url)):
                return Action.UNCHANGED, existing, None
            return Action.UPDATE, existing, body

        logger.info(f"No existing discussion for {issue.merge_key}")
        record = self._records.get(issue.merge_key)
        if record is not None and record.ignored:
            return Action.SKIP_IGNORED, None, None
        if record is not None and not record.new:
            return Action.SKIP_NOT_NEW, None, None

        if self._diff_map.contains(issue.file_path, issue.line):
            return Action.CREATE_POSITIONED, None, render_review(issue)

        return Action.CREATE_UNPOSITIONED, None, render_issue(issue, file_url)

    def _reconcile_issue(self, issue: Issue, index: DiscussionIndex) -> IssueResult:
        action, existing, body = self._decide(issue, index)
        result = IssueResult(
            issue=issue,
            action=action,
            discussion_id=existing.id if existing else None,
        )

        if action == Action.UNCHANGED:
            logger.info(f"Discussion #{existing.id} for {issue.merge_key} is up to date")
        elif action == Action.SKIP_IGNORED:
            logger.info(f"Issue {issue.merge_key} is ignored on the server, not commenting")
        elif action == Action.SKIP_NOT_NEW:
            logger.info(f"Issue {issue.merge_key} predates this snapshot, not commenting")

        if action not in WRITE_ACTIONS:
            return result

        try:
            self._write(action, issue, existing, body)
        except requests.RequestException as e:
            logger.error(f"Failed to {action.value} comment for {issue.merge_key}: {e}")
            result.error = str(e)
        return result

    def _write(
        self, action: Action, issue: Issue, existing: Discussion | None, body: str
    ) -> None:
        if action == Action.UPDATE:
            logger.info(
                f"Updating discussion #{existing.id} note #{existing.root.id} for {issue.merge_key}"
            )
            if not self._dry_run:
                self._gitlab.update_note(existing.id, existing.root.id, body)
        elif action == Action.CREATE_POSITIONED:
            anchor = Anchor(
                file_path=issue.file_path,
                line=issue.line,
                base_sha=self._context.base_sha,
                head_sha=self._context.head_sha,
            )
            logger.info(f"Creating review comment on {issue.file_path}:{issue.line}")
            if not self._dry_run:
                self._gitlab.create_discussion(body, anchor)
        else:
            logger.info(f"Creating merge request comment for {issue.merge_key}")
            if not self._dry_run:
                self._gitlab.create_discussion(body)

    def _sweep(self, discussion: Discussion) -> SweepResult:
        body = discussion.root.body
        if not is_present(body):
            return SweepResult(discussion_id=discussion.id, resolved=False)

        logger.info(f"Marking discussion #{discussion.id} as no longer present")
        result = SweepResult(discussion_id=discussion.id, resolved=True)
        if self._dry_run:
            return result
        try:
            self._gitlab.update_note(
                discussion.id, discussion.root.id, render_resolved(body, self._commit_sha)
            )
        except requests.RequestException as e:
            logger.error(f"Failed to resolve discussion #{discussion.id}: {e}")
            result.error = str(e)
        return result
