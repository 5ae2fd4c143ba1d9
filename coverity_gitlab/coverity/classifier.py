"""Cross-reference findings with Coverity Connect triage state.

Produces a merge key to ServerIssueRecord mapping. Keys missing from the
mapping are unknown to the server. When Coverity Connect is not configured the
mapping is empty, which means no issue can be suppressed as ignored or as
pre-existing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from coverity_gitlab.coverity.client import CoverityClient
from coverity_gitlab.coverity.models import Issue, ServerIssueRecord

logger = logging.getLogger(__name__)


def classify(
    issues: Iterable[Issue],
    client: CoverityClient | None,
    project: str,
) -> dict[str, ServerIssueRecord]:
    """Look up server state for every distinct merge key in `issues`.

    Errors from the lookup propagate: treating a failed lookup as "all
    unknown" could post comments the team already triaged away.
    """
    merge_keys = {issue.merge_key for issue in issues}

    if client is None:
        logger.warning(
            "Coverity Connect is not configured; skipping server classification "
            f"for {len(merge_keys)} merge key(s)"
        )
        return {}

    if not merge_keys:
        return {}

    records = client.lookup(project, merge_keys)
    ignored = sum(1 for r in records.values() if r.ignored)
    new = sum(1 for r in records.values() if r.new)
    logger.info(f"Server classification: {ignored} ignored, {new} new, {len(records)} known")
    return records
