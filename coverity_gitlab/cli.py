"""CLI entry point for coverity-gitlab."""

from __future__ import annotations

import logging
from pathlib import Path

import requests
import typer
from rich import print as rprint
from rich.markup import escape

from coverity_gitlab.config import Config
from coverity_gitlab.coverity.classifier import classify
from coverity_gitlab.coverity.client import CoverityClient, CoverityError
from coverity_gitlab.coverity.loader import FindingsError, load_issues
from coverity_gitlab.gitlab.client import GitLabClient
from coverity_gitlab.gitlab.diffmap import DiffMap
from coverity_gitlab.reconcile.engine import MergeRequestContext, Reconciler
from coverity_gitlab.report import exit_code, summary_lines

app = typer.Typer(help="Report Coverity findings as GitLab merge request comments.")


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def report(
    coverity_json: Path = typer.Option(
        ..., "--coverity-json", "-j", help="Findings file written by cov-format-errors --json-output-v7"
    ),
    dry_run: bool = typer.Option(False, help="Decide every action but write nothing to GitLab"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
) -> None:
    """Create, update and resolve merge request comments for Coverity issues."""
    _setup_logging(debug)

    config = Config.load()
    issues_found = config.validate()
    if issues_found:
        for issue in issues_found:
            rprint(f"[red]Config error: {issue}[/red]")
        raise typer.Exit(1)

    try:
        issues = load_issues(coverity_json)
    except FindingsError as e:
        rprint(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    coverity_client = None
    if config.coverity_configured:
        coverity_client = CoverityClient(
            url=config.coverity_url,
            user=config.coverity_user,
            passphrase=config.coverity_passphrase,
        )

    gitlab = GitLabClient(
        url=config.server_url,
        token=config.gitlab_token,
        project_id=config.project_id,
        merge_request_iid=int(config.merge_request_iid),
    )

    try:
        try:
            records = classify(issues, coverity_client, config.coverity_project)
            discussions = gitlab.list_discussions()
            diff_map = DiffMap.from_diffs(gitlab.list_diffs())
        except (requests.RequestException, CoverityError) as e:
            rprint(f"[red]Cannot establish merge request state: {escape(str(e))}[/red]")
            raise typer.Exit(1)

        context = MergeRequestContext(
            base_sha=config.base_sha,
            head_sha=config.commit_sha,
            server_url=config.server_url,
            namespace=config.namespace,
            project_name=config.project_name,
            ref=config.commit_sha,
        )
        reconciler = Reconciler(
            gitlab,
            diff_map,
            records,
            context,
            commit_sha=config.commit_sha,
            dry_run=dry_run,
        )
        summary = reconciler.run(issues, discussions)
    finally:
        gitlab.close()
        if coverity_client is not None:
            coverity_client.close()

    title = "Dry run complete" if dry_run else "Reporting complete"
    rprint(f"\n[bold]{title}:[/bold]")
    for line in summary_lines(summary):
        rprint(line)

    code = exit_code(len(issues))
    if code:
        rprint(f"\n[yellow]Coverity found {len(issues)} issue(s).[/yellow]")
    else:
        rprint("\n[green]No Coverity issues found.[/green]")
    raise typer.Exit(code)


@app.command("check-config")
def check_config() -> None:
    """Show which settings are missing and whether server triage is available."""
    config = Config.load()
    problems = config.validate()
    for problem in problems:
        rprint(f"[red]Config error: {problem}[/red]")

    if config.coverity_configured:
        rprint(f"Coverity classification: [green]enabled[/green] ({config.coverity_project})")
    else:
        rprint(
            "Coverity classification: [yellow]disabled[/yellow] "
            "(set COV_URL, COV_USER, COVERITY_PASSPHRASE and COV_PROJECT)"
        )

    if problems:
        raise typer.Exit(1)
    rprint("[green]Configuration OK[/green]")


if __name__ == "__main__":
    app()
