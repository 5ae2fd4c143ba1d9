"""Summary output and the process exit signal."""

from __future__ import annotations

from coverity_gitlab.reconcile.engine import ReconcileSummary


def exit_code(issue_count: int) -> int:
    """Non-zero whenever Coverity reported anything; write failures do not count."""
    return 1 if issue_count > 0 else 0


def summary_lines(summary: ReconcileSummary) -> list[str]:
    lines = [
        f"  Issues found:      {len(summary.issues)}",
        f"  Comments created:  {summary.created}",
        f"  Comments updated:  {summary.updated}",
        f"  Already current:   {summary.unchanged}",
        f"  Skipped (server):  {summary.skipped}",
        f"  Marked resolved:   {summary.resolved}",
    ]
    if summary.failed:
        lines.append(f"  [red]Failed writes:     {summary.failed}[/red]")
    return lines
