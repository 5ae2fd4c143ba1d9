"""The pool of discussions this tool owns on a merge request.

Lookups extract: a discussion handed to one issue leaves the pool and can
never match a second issue in the same run. Positioned lookups must run
before unpositioned ones for the same issue.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from coverity_gitlab.gitlab.client import Discussion
from coverity_gitlab.reconcile.comments import COMMENT_PREFACE

logger = logging.getLogger(__name__)


class DiscussionIndex:
    def __init__(self, discussions: Iterable[Discussion]) -> None:
        self._pool: list[Discussion] = list(discussions)

    @classmethod
    def from_discussions(cls, discussions: Iterable[Discussion]) -> DiscussionIndex:
        """Keep only discussions whose root note carries the ownership marker."""
        owned = [
            d for d in discussions
            if d.root is not None and COMMENT_PREFACE in d.root.body
        ]
        logger.info(f"Found {len(owned)} existing Coverity discussion(s)")
        return cls(owned)

    def extract_positioned(self, line: int, merge_key: str) -> Discussion | None:
        """Take the first discussion anchored at `line` that mentions `merge_key`.

        The path is deliberately not compared: files get renamed between
        scans while the merge key stays put.
        """
        return self._extract(
            lambda d: d.root.position is not None
            and d.root.position.new_line == line
            and merge_key in d.root.body
        )

    def extract_unpositioned(self, merge_key: str) -> Discussion | None:
        """Take the first discussion that mentions `merge_key`, anchored or not."""
        return self._extract(lambda d: merge_key in d.root.body)

    def remaining(self) -> list[Discussion]:
        return list(self._pool)

    def __len__(self) -> int:
        return len(self._pool)

    def _extract(self, predicate) -> Discussion | None:
        for i, discussion in enumerate(self._pool):
            if predicate(discussion):
                return self._pool.pop(i)
        return None
