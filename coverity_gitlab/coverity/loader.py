"""Load Coverity findings from a coverity-json-v7 document.

The document is what `cov-format-errors --json-output-v7` writes: a top-level
object with an `issues` array. Only the fields needed to place and describe a
comment are kept.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from coverity_gitlab.coverity.models import Issue

logger = logging.getLogger(__name__)

UNKNOWN_FILE = "Unknown File"


class FindingsError(Exception):
    """The findings document is missing or not in the expected format."""


def load_issues(path: Path) -> list[Issue]:
    """Read a findings file and return its issues in document order."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise FindingsError(f"Cannot read findings file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise FindingsError(f"Findings file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("issues"), list):
        raise FindingsError(f"Findings file {path} has no 'issues' array")

    issues = [parse_issue(raw) for raw in data["issues"]]
    logger.info(f"Loaded {len(issues)} issue(s) from {path}")
    return issues


def parse_issue(raw: dict) -> Issue:
    """Convert one raw v7 issue object into an Issue."""
    if "mergeKey" not in raw:
        raise FindingsError(f"Issue without mergeKey: {str(raw)[:200]}")

    props = raw.get("checkerProperties") or {}
    events = raw.get("events") or []

    main_event = next((e for e in events if e.get("main")), None)
    remediation = next((e for e in events if e.get("remediation")), None)

    checker_name = raw.get("checkerName", "")
    cwe = props.get("cweCategory")

    return Issue(
        merge_key=raw["mergeKey"],
        file_path=raw.get("strippedMainEventFilePathname") or UNKNOWN_FILE,
        line=int(raw.get("mainEventLineNumber") or 0),
        checker_name=checker_name,
        category=props.get("subcategoryShortDescription") or checker_name,
        impact=props.get("impact") or "Unknown",
        cwe=str(cwe) if cwe not in (None, "", "None") else "",
        main_event=main_event.get("eventDescription", "") if main_event else "",
        local_effect=props.get("subcategoryLocalEffect") or "",
        remediation=remediation.get("eventDescription", "") if remediation else "",
    )
