"""Comment bodies for merge request discussions managed by this tool.

Every body starts with a hidden header that the next run reads back:

    <!-- Comment managed by coverity-gitlab, do not modify!
    <mergeKey>
    PRESENT | NOT_PRESENT
    -->

Line 1 claims ownership of the discussion, line 2 is the join key against the
findings, and line 3 records whether the issue was still found at last look.
"""

from __future__ import annotations

from coverity_gitlab.coverity.models import Issue

COMMENT_PREFACE = "<!-- Comment managed by coverity-gitlab, do not modify!"
PRESENT = "PRESENT"
NOT_PRESENT = "NOT_PRESENT"
HEADER_END = "-->"
HEADER_LINES = 4


def _header(merge_key: str, state: str) -> str:
    return f"{COMMENT_PREFACE}\n{merge_key}\n{state}\n{HEADER_END}"


def _describe(issue: Issue) -> str:
    cwe = f", CWE-{issue.cwe}" if issue.cwe else ""
    lines = [
        f"_{issue.impact} Impact{cwe}_ {issue.category}",
        "",
        f"**{issue.checker_name}:** {issue.main_event} {issue.local_effect}".rstrip(),
    ]
    if issue.remediation:
        lines += ["", "## How to fix", issue.remediation]
    return "\n".join(lines)


def render_review(issue: Issue) -> str:
    """Body for a comment shown next to the offending line."""
    return f"{_header(issue.merge_key, PRESENT)}\n\n{_describe(issue)}\n"


def render_issue(issue: Issue, file_url: str) -> str:
    """Body for a general comment; links to the line since it is not anchored."""
    return (
        f"{_header(issue.merge_key, PRESENT)}\n\n"
        f"## Coverity Issue - {issue.category}\n\n"
        f"{_describe(issue)}\n\n"
        f"File: [{issue.file_path}:{issue.line}]({file_url})\n"
    )


def render_resolved(body: str, commit_sha: str) -> str:
    """Rewrite a managed body to say the issue is gone, keeping the old text folded."""
    lines = body.split("\n")
    previous = "\n".join(lines[HEADER_LINES:]).strip("\n")
    merge_key = lines[1] if len(lines) > 1 else ""
    return (
        f"{_header(merge_key, NOT_PRESENT)}\n\n"
        f"Coverity issue no longer present as of: {commit_sha}\n"
        "<details>\n"
        "<summary>Show issue</summary>\n\n"
        f"{previous}\n"
        "</details>\n"
    )


def is_present(body: str) -> bool:
    """True when a managed body still reports its issue as found."""
    lines = body.split("\n")
    return (
        len(lines) >= HEADER_LINES
        and lines[0] == COMMENT_PREFACE
        and lines[2] != NOT_PRESENT
    )
