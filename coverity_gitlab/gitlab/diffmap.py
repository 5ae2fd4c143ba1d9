"""Which file/line pairs a merge request adds.

Built from the unified diff text GitLab returns per changed file. Only added
lines count: GitLab can anchor a `new_line`-only position on them.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

HUNK_HEADER = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")


class DiffMap:
    def __init__(self, lines_by_path: dict[str, set[int]] | None = None) -> None:
        self._lines = lines_by_path or {}

    @classmethod
    def from_diffs(cls, diffs: Iterable[dict]) -> DiffMap:
        lines_by_path: dict[str, set[int]] = {}
        for d in diffs:
            if d.get("deleted_file"):
                continue
            added = added_lines(d.get("diff") or "")
            if added:
                lines_by_path.setdefault(d["new_path"], set()).update(added)
        return cls(lines_by_path)

    def contains(self, path: str, line: int) -> bool:
        return line in self._lines.get(path, ())

    def paths(self) -> list[str]:
        return sorted(self._lines)


def added_lines(diff: str) -> set[int]:
    """Return new-side line numbers of '+' lines in a unified diff."""
    added: set[int] = set()
    new_line = 0
    in_hunk = False
    for text in diff.splitlines():
        header = HUNK_HEADER.match(text)
        if header:
            new_line = int(header.group(1))
            in_hunk = True
            continue
        if not in_hunk:
            continue
        if text.startswith("+"):
            added.add(new_line)
            new_line += 1
        elif text.startswith("-") or text.startswith("\\"):
            continue  # removed line or "\ No newline at end of file"
        else:
            new_line += 1
    return added
