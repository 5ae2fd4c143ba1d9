"""Shared test fixtures for coverity-gitlab."""

from __future__ import annotations

import pytest
import requests

from coverity_gitlab.coverity.models import Issue, ServerIssueRecord
from coverity_gitlab.gitlab.client import Anchor, Discussion, Note, Position
from coverity_gitlab.gitlab.diffmap import DiffMap
from coverity_gitlab.reconcile.engine import MergeRequestContext, Reconciler


class FakeGitLab:
    """Records writes instead of calling GitLab. Fails writes for chosen merge keys."""

    def __init__(self, fail_keys: set[str] | None = None) -> None:
        self.fail_keys = fail_keys or set()
        self.updates: list[tuple[str, int, str]] = []
        self.creates: list[tuple[str, Anchor | None]] = []

    def _maybe_fail(self, body: str) -> None:
        if any(key in body for key in self.fail_keys):
            raise requests.HTTPError("500 Server Error")

    def update_note(self, discussion_id: str, note_id: int, body: str) -> None:
        self._maybe_fail(body)
        self.updates.append((discussion_id, note_id, body))

    def create_discussion(self, body: str, anchor: Anchor | None = None) -> None:
        self._maybe_fail(body)
        self.creates.append((body, anchor))

    @property
    def calls(self) -> int:
        return len(self.updates) + len(self.creates)

    def as_discussions(self) -> list[Discussion]:
        """What GitLab would list back after the recorded creates."""
        discussions = []
        for i, (body, anchor) in enumerate(self.creates):
            position = Position(anchor.file_path, anchor.line) if anchor else None
            discussions.append(make_discussion(f"d{i}", body, position, note_id=100 + i))
        return discussions


def make_issue(merge_key: str = "K1", file_path: str = "a.c", line: int = 10, **kwargs) -> Issue:
    defaults = dict(
        checker_name="RESOURCE_LEAK",
        category="Resource leak",
        impact="High",
        cwe="404",
        main_event="Variable fp going out of scope leaks the storage it points to.",
        local_effect="The system resource will not be reclaimed.",
        remediation="Close fp before returning.",
    )
    defaults.update(kwargs)
    return Issue(merge_key=merge_key, file_path=file_path, line=line, **defaults)


def make_discussion(
    discussion_id: str,
    body: str,
    position: Position | None = None,
    note_id: int = 1,
) -> Discussion:
    return Discussion(id=discussion_id, notes=[Note(id=note_id, body=body, position=position)])


def make_record(merge_key: str = "K1", **kwargs) -> ServerIssueRecord:
    defaults = dict(
        action="Undecided",
        classification="Unclassified",
        first_snapshot_id="3",
        last_snapshot_id="3",
    )
    defaults.update(kwargs)
    return ServerIssueRecord(merge_key=merge_key, **defaults)


@pytest.fixture
def context() -> MergeRequestContext:
    return MergeRequestContext(
        base_sha="base000",
        head_sha="head111",
        server_url="https://gitlab.example.com",
        namespace="acme",
        project_name="firmware",
        ref="head111",
    )


@pytest.fixture
def gitlab() -> FakeGitLab:
    return FakeGitLab()


@pytest.fixture
def make_reconciler(gitlab: FakeGitLab, context: MergeRequestContext):
    def _make(
        records: dict[str, ServerIssueRecord] | None = None,
        diff_map: DiffMap | None = None,
        client: FakeGitLab | None = None,
        dry_run: bool = False,
    ) -> Reconciler:
        return Reconciler(
            client or gitlab,
            diff_map or DiffMap(),
            records or {},
            context,
            commit_sha="head111",
            dry_run=dry_run,
        )

    return _make
