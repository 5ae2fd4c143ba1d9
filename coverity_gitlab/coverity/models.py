"""Core data models for Coverity findings and server-side triage state."""

from __future__ import annotations

from dataclasses import dataclass

IGNORE_ACTION = "Ignore"
IGNORED_CLASSIFICATIONS = frozenset({"False Positive", "Intentional"})


@dataclass(frozen=True)
class Issue:
    merge_key: str  # stable across scans, survives line drift
    file_path: str  # stripped main event path, relative to the checkout
    line: int  # main event line number
    checker_name: str  # e.g. "RESOURCE_LEAK"
    category: str  # subcategory short description, or checker name
    impact: str = "Unknown"  # "High" | "Medium" | "Low" | "Unknown"
    cwe: str = ""
    main_event: str = ""
    local_effect: str = ""
    remediation: str = ""


@dataclass(frozen=True)
class ServerIssueRecord:
    merge_key: str
    action: str  # "Undecided" | "Fix Required" | "Ignore" | ...
    classification: str  # "Unclassified" | "Bug" | "False Positive" | "Intentional" | ...
    first_snapshot_id: str
    last_snapshot_id: str

    @property
    def ignored(self) -> bool:
        """Triaged away on the server, by action or by classification."""
        return (
            self.action == IGNORE_ACTION
            or self.classification in IGNORED_CLASSIFICATIONS
        )

    @property
    def new(self) -> bool:
        """Only ever seen in the most recent snapshot."""
        return self.first_snapshot_id == self.last_snapshot_id
