"""Tests for the CLI and the report/exit decision."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests
from conftest import make_issue, make_record
from typer.testing import CliRunner

from coverity_gitlab.cli import app
from coverity_gitlab.reconcile.engine import Action, IssueResult, ReconcileSummary, SweepResult
from coverity_gitlab.report import exit_code, summary_lines

runner = CliRunner()

GITLAB_ENV = {
    "GITLAB_TOKEN": "glpat-test",
    "CI_SERVER_URL": "https://gitlab.example.com",
    "CI_PROJECT_ID": "42",
    "CI_PROJECT_NAMESPACE": "acme",
    "CI_PROJECT_NAME": "firmware",
    "CI_MERGE_REQUEST_IID": "7",
    "CI_MERGE_REQUEST_DIFF_BASE_SHA": "base000",
    "CI_COMMIT_SHA": "head111",
}
NO_COVERITY = {"COV_URL": None, "COV_USER": None, "COVERITY_PASSPHRASE": None, "COV_PROJECT": None}
COVERITY_ENV = {
    "COV_URL": "https://cov.example.com",
    "COV_USER": "ci",
    "COVERITY_PASSPHRASE": "secret",
    "COV_PROJECT": "firmware",
}

DIFF = "@@ -9,1 +9,2 @@\n int x;\n+FILE *fp = fopen(p, \"r\");\n"


@pytest.fixture
def findings(tmp_path: Path) -> Path:
    path = tmp_path / "coverity-results.json"
    path.write_text(
        json.dumps(
            {
                "issues": [
                    {
                        "mergeKey": "K1",
                        "strippedMainEventFilePathname": "a.c",
                        "mainEventLineNumber": 10,
                        "checkerName": "RESOURCE_LEAK",
                        "events": [],
                    }
                ]
            }
        )
    )
    return path


@pytest.fixture
def gitlab_mock():
    client = MagicMock()
    client.list_discussions.return_value = []
    client.list_diffs.return_value = [{"new_path": "a.c", "diff": DIFF}]
    with patch("coverity_gitlab.cli.GitLabClient", return_value=client):
        yield client


class TestReportCommand:
    def test_creates_comment_without_coverity_server(self, findings, gitlab_mock):
        result = runner.invoke(
            app, ["report", "--coverity-json", str(findings)], env={**GITLAB_ENV, **NO_COVERITY}
        )
        assert result.exit_code == 1  # issues were found
        gitlab_mock.create_discussion.assert_called_once()
        body, anchor = gitlab_mock.create_discussion.call_args.args
        assert anchor.file_path == "a.c"
        assert anchor.line == 10
        gitlab_mock.close.assert_called_once()

    def test_ignored_on_server(self, findings, gitlab_mock):
        coverity = MagicMock()
        coverity.lookup.return_value = {"K1": make_record("K1", action="Ignore")}
        with patch("coverity_gitlab.cli.CoverityClient", return_value=coverity):
            result = runner.invoke(
                app, ["report", "--coverity-json", str(findings)], env={**GITLAB_ENV, **COVERITY_ENV}
            )
        assert result.exit_code == 1
        gitlab_mock.create_discussion.assert_not_called()
        coverity.close.assert_called_once()

    def test_classification_failure_aborts(self, findings, gitlab_mock):
        coverity = MagicMock()
        coverity.lookup.side_effect = requests.ConnectionError("refused")
        with patch("coverity_gitlab.cli.CoverityClient", return_value=coverity):
            result = runner.invoke(
                app, ["report", "--coverity-json", str(findings)], env={**GITLAB_ENV, **COVERITY_ENV}
            )
        assert result.exit_code == 1
        assert "Cannot establish merge request state" in result.output
        gitlab_mock.create_discussion.assert_not_called()
        gitlab_mock.update_note.assert_not_called()

    def test_discussion_listing_failure_aborts(self, findings, gitlab_mock):
        gitlab_mock.list_discussions.side_effect = requests.HTTPError("404")
        result = runner.invoke(
            app, ["report", "--coverity-json", str(findings)], env={**GITLAB_ENV, **NO_COVERITY}
        )
        assert result.exit_code == 1
        gitlab_mock.create_discussion.assert_not_called()

    def test_dry_run_writes_nothing(self, findings, gitlab_mock):
        result = runner.invoke(
            app,
            ["report", "--coverity-json", str(findings), "--dry-run"],
            env={**GITLAB_ENV, **NO_COVERITY},
        )
        assert "Dry run complete" in result.output
        gitlab_mock.create_discussion.assert_not_called()

    def test_no_findings_exits_zero(self, tmp_path: Path, gitlab_mock):
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({"issues": []}))
        result = runner.invoke(
            app, ["report", "--coverity-json", str(path)], env={**GITLAB_ENV, **NO_COVERITY}
        )
        assert result.exit_code == 0

    def test_missing_config(self, findings):
        env = {k: None for k in GITLAB_ENV}
        result = runner.invoke(app, ["report", "--coverity-json", str(findings)], env=env)
        assert result.exit_code == 1
        assert "Config error" in result.output

    def test_unreadable_findings(self, tmp_path: Path):
        result = runner.invoke(
            app,
            ["report", "--coverity-json", str(tmp_path / "missing.json")],
            env={**GITLAB_ENV, **NO_COVERITY},
        )
        assert result.exit_code == 1


class TestCheckConfig:
    def test_ok_without_coverity(self):
        result = runner.invoke(app, ["check-config"], env={**GITLAB_ENV, **NO_COVERITY})
        assert result.exit_code == 0
        assert "disabled" in result.output

    def test_reports_problems(self):
        result = runner.invoke(app, ["check-config"], env={k: None for k in GITLAB_ENV})
        assert result.exit_code == 1
        assert "GITLAB_TOKEN" in result.output


class TestReport:
    def test_exit_code(self):
        assert exit_code(0) == 0
        assert exit_code(3) == 1

    def test_summary_lines(self):
        summary = ReconcileSummary(
            issues=[
                IssueResult(make_issue("K1"), Action.CREATE_POSITIONED),
                IssueResult(make_issue("K2"), Action.UPDATE, "d2", error="500"),
                IssueResult(make_issue("K3"), Action.SKIP_IGNORED),
            ],
            swept=[SweepResult("d9", resolved=True)],
        )
        text = "\n".join(summary_lines(summary))
        assert "Issues found:      3" in text
        assert "Comments created:  1" in text
        assert "Comments updated:  0" in text
        assert "Skipped (server):  1" in text
        assert "Marked resolved:   1" in text
        assert "Failed writes:     1" in text
