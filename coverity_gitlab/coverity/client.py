"""Thin wrapper around the Coverity Connect REST v2 issue search API."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import requests

from coverity_gitlab.coverity.models import ServerIssueRecord

logger = logging.getLogger(__name__)

PAGE_SIZE = 500
REQUEST_TIMEOUT = 60  # seconds

KEY_MERGE_KEY = "mergeKey"
KEY_ACTION = "action"
KEY_CLASSIFICATION = "classification"
KEY_FIRST_SNAPSHOT_ID = "firstSnapshotId"
KEY_LAST_SNAPSHOT_ID = "lastSnapshotId"

SEARCH_COLUMNS = [
    KEY_MERGE_KEY,
    KEY_ACTION,
    KEY_CLASSIFICATION,
    KEY_FIRST_SNAPSHOT_ID,
    KEY_LAST_SNAPSHOT_ID,
]


class CoverityError(Exception):
    """Coverity Connect answered with something other than a search result."""


class CoverityClient:
    """Authenticated Coverity Connect client.

    Usage:
        client = CoverityClient(url="https://coverity.example.com", user="ci", passphrase="...")
        records = client.lookup("my-project", {"a1b2...", "c3d4..."})
    """

    def __init__(
        self,
        url: str,
        user: str,
        passphrase: str,
        session: requests.Session | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._session = session or requests.Session()
        self._session.auth = (user, passphrase)
        self._session.headers.update({"Accept": "application/json"})

    def find_issues(self, project: str, offset: int = 0, limit: int = PAGE_SIZE) -> dict:
        """Fetch one page of issues for a project as seen in its last snapshot."""
        params = {
            "includeColumnLabels": "true",
            "locale": "en_us",
            "offset": offset,
            "queryType": "bySnapshot",
            "rowCount": limit,
            "sortOrder": "asc",
        }
        body = {
            "filters": [
                {
                    "columnKey": "project",
                    "matchMode": "oneOrMoreMatch",
                    "matchers": [
                        {"class": "Project", "name": project, "type": "nameMatcher"}
                    ],
                }
            ],
            "columns": SEARCH_COLUMNS,
            "snapshotScope": {
                "show": {"scope": "last()", "includeOutdatedSnapshots": False}
            },
        }
        logger.debug(f"Coverity issue search: project={project} offset={offset} limit={limit}")
        response = self._session.post(
            f"{self._url}/api/v2/issues/search",
            params=params,
            json=body,
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict) or "rows" not in data:
            raise CoverityError(f"Unexpected issue search response: {str(data)[:200]}")
        return data

    def lookup(self, project: str, merge_keys: Iterable[str]) -> dict[str, ServerIssueRecord]:
        """Return server records for the requested merge keys.

        Pages through every issue of the project; keys the server does not
        know are simply absent from the result.
        """
        wanted = set(merge_keys)
        records: dict[str, ServerIssueRecord] = {}
        offset = 0

        while True:
            page = self.find_issues(project, offset=offset)
            rows = page["rows"]
            for row in rows:
                record = _record_from_row(row)
                if record and record.merge_key in wanted:
                    records[record.merge_key] = record

            offset += len(rows)
            total = page.get("totalRows", 0)
            if not rows or offset >= total:
                break

        logger.info(f"Coverity knows {len(records)} of {len(wanted)} merge key(s)")
        return records

    def close(self) -> None:
        self._session.close()


def _record_from_row(row: list[dict]) -> ServerIssueRecord | None:
    cells = {cell.get("key"): cell.get("value") for cell in row}
    merge_key = cells.get(KEY_MERGE_KEY)
    if not merge_key:
        return None
    return ServerIssueRecord(
        merge_key=merge_key,
        action=cells.get(KEY_ACTION) or "",
        classification=cells.get(KEY_CLASSIFICATION) or "",
        first_snapshot_id=str(cells.get(KEY_FIRST_SNAPSHOT_ID) or ""),
        last_snapshot_id=str(cells.get(KEY_LAST_SNAPSHOT_ID) or ""),
    )
