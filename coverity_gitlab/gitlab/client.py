"""Thin wrapper around the GitLab REST v4 merge request endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

PER_PAGE = 100
REQUEST_TIMEOUT = 30  # seconds


@dataclass(frozen=True)
class Position:
    new_path: str
    new_line: int | None


@dataclass
class Note:
    id: int
    body: str
    position: Position | None = None


@dataclass
class Discussion:
    """A merge request discussion thread. Only the root note is inspected."""

    id: str  # GitLab discussion ids are hex strings
    notes: list[Note] = field(default_factory=list)

    @property
    def root(self) -> Note | None:
        return self.notes[0] if self.notes else None


@dataclass(frozen=True)
class Anchor:
    """Where a positioned comment attaches in the merge request diff."""

    file_path: str
    line: int
    base_sha: str
    head_sha: str


class GitLabClient:
    """Authenticated GitLab client scoped to a single merge request.

    Usage:
        client = GitLabClient(url="https://gitlab.com", token="glpat-...",
                              project_id="123", merge_request_iid=7)
        discussions = client.list_discussions()
    """

    def __init__(
        self,
        url: str,
        token: str,
        project_id: str,
        merge_request_iid: int,
        session: requests.Session | None = None,
    ) -> None:
        self._session = session or requests.Session()
        self._session.headers.update({"PRIVATE-TOKEN": token})
        self._base = (
            f"{url.rstrip('/')}/api/v4/projects/{quote(str(project_id), safe='')}"
            f"/merge_requests/{merge_request_iid}"
        )
        self.merge_request_iid = merge_request_iid

    def list_discussions(self) -> list[Discussion]:
        """Fetch every discussion on the merge request, in GitLab's order."""
        return [_parse_discussion(d) for d in self._get_paginated("/discussions")]

    def update_note(self, discussion_id: str, note_id: int, body: str) -> None:
        response = self._session.put(
            f"{self._base}/discussions/{discussion_id}/notes/{note_id}",
            json={"body": body},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()

    def create_discussion(self, body: str, anchor: Anchor | None = None) -> None:
        """Start a new discussion, positioned on a diff line when `anchor` is given."""
        payload: dict = {"body": body}
        if anchor is not None:
            payload["position"] = {
                "position_type": "text",
                "base_sha": anchor.base_sha,
                "start_sha": anchor.base_sha,
                "head_sha": anchor.head_sha,
                "new_path": anchor.file_path,
                "old_path": anchor.file_path,
                "new_line": anchor.line,
            }
        response = self._session.post(
            f"{self._base}/discussions", json=payload, timeout=REQUEST_TIMEOUT
        )
        response.raise_for_status()

    def list_diffs(self) -> list[dict]:
        """Fetch the merge request's file diffs (`new_path`, `diff`, ...)."""
        return self._get_paginated("/diffs")

    def close(self) -> None:
        self._session.close()

    def _get_paginated(self, path: str) -> list[dict]:
        results: list[dict] = []
        page = "1"
        while page:
            response = self._session.get(
                f"{self._base}{path}",
                params={"per_page": PER_PAGE, "page": page},
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            results.extend(response.json())
            page = response.headers.get("X-Next-Page", "")
        logger.debug(f"Fetched {len(results)} item(s) from {path}")
        return results


def _parse_discussion(raw: dict) -> Discussion:
    notes = []
    for n in raw.get("notes") or []:
        position = None
        pos = n.get("position")
        if pos:
            position = Position(new_path=pos.get("new_path", ""), new_line=pos.get("new_line"))
        notes.append(Note(id=n["id"], body=n.get("body") or "", position=position))
    return Discussion(id=str(raw["id"]), notes=notes)
