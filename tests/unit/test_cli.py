"""Tests for the command line interface."""

import asyncio

from typer.testing import CliRunner

import hyperflow.persistence as persistence
from hyperflow.cli import app
from hyperflow.contracts import Artifact, ExecutionOutput, ExecutionRecord, RunState
from hyperflow.persistence import InMemoryRunRepository

runner = CliRunner()


def _setup_repo() -> InMemoryRunRepository:
    repo = InMemoryRunRepository()
    persistence._repository_instance = repo
    return repo


def test_templates_list_filters_by_kind():
    result = runner.invoke(app, ["templates", "list", "--kind", "automation"])
    assert result.exit_code == 0, result.output
    assert "hacker-news-top\tautomation" in result.output
    assert "context-setup-wizard" not in result.output


def test_templates_show_guided_and_missing():
    result = runner.invoke(app, ["templates", "show", "client-discovery"])
    assert result.exit_code == 0, result.output
    assert "company-info - Company Information" in result.output
    assert "* companyName (text_input)" in result.output

    missing = runner.invoke(app, ["templates", "show", "nope"])
    assert missing.exit_code == 1
    assert "Template not found: nope" in missing.output


def test_templates_show_automation_variables():
    result = runner.invoke(app, ["templates", "show", "competitor-watch"])
    assert result.exit_code == 0, result.output
    assert "- companies: array (required)" in result.output
    assert "Placeholders: companies, includeMeta, format" in result.output


def test_automation_code_binds_variables():
    result = runner.invoke(
        app,
        ["automation", "code", "competitor-watch", "--var", 'companies=["https://a.test"]', "--var", "format=json"],
    )
    assert result.exit_code == 0, result.output
    assert 'const companies = ["https://a.test"];' in result.output
    assert 'const format = "json";' in result.output


def test_automation_code_reports_invalid_variables():
    result = runner.invoke(app, ["automation", "code", "github-repo", "--var", "owner=a"])
    assert result.exit_code == 1
    assert "repo is required" in result.output


def test_chat_select():
    matched = runner.invoke(app, ["chat", "select", "[WORKFLOW:RESEARCH_CONTENT] go", "--show-prompt"])
    assert matched.exit_code == 0, matched.output
    assert "Matched template: research-content" in matched.output
    assert "research and content creation assistant" in matched.output

    unmatched = runner.invoke(app, ["chat", "select", "hello"])
    assert "No chat template matched" in unmatched.output


def test_runs_list_and_show():
    repo = _setup_repo()
    state = RunState(template_id="intake", values={"name": "Acme", "_display": "x"}, status="completed")
    state.artifact = Artifact(title="Report - Acme", content_type="report", body="All good")
    asyncio.run(repo.save_run(state))

    listed = runner.invoke(app, ["runs", "list"])
    assert listed.exit_code == 0, listed.output
    assert f"{state.run_id}\tintake\tcompleted" in listed.output

    shown = runner.invoke(app, ["runs", "show", state.run_id])
    assert "Artifact: Report - Acme [report]" in shown.output
    assert "All good" in shown.output
    assert "_display" not in shown.output

    assert "Run not found" in runner.invoke(app, ["runs", "show", "missing"]).output


def test_runs_list_empty():
    _setup_repo()
    result = runner.invoke(app, ["runs", "list"])
    assert "No runs found" in result.output


def test_executions_show():
    repo = _setup_repo()
    record = ExecutionRecord(workflow_id="hacker-news-top")
    record.append_log("Loaded Hacker News homepage")
    record.complete(ExecutionOutput(type="table", title="Stories", data=[{"rank": 1}], columns=["rank"]))
    asyncio.run(repo.save_execution(record))

    result = runner.invoke(app, ["executions", "show", record.id])
    assert result.exit_code == 0, result.output
    assert f"Execution {record.id}: completed" in result.output
    assert "| Loaded Hacker News homepage" in result.output
    assert "Columns: rank" in result.output

    assert "Execution not found" in runner.invoke(app, ["executions", "show", "x"]).output
