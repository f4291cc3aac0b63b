"""Command line interface for hyperflow templates, runs and executions."""

from __future__ import annotations

import asyncio
from typing import List, Optional

import typer

from hyperflow.catalog import get_catalog
from hyperflow.cli_utils.variables import format_json, parse_var_options
from hyperflow.errors import HyperflowError, TemplateNotFoundError
from hyperflow.automation import prepare_execution
from hyperflow.binder import find_placeholders
from hyperflow.chat import ChatAssembler
from hyperflow.contracts import ChatMessage
from hyperflow.persistence import get_repository

app = typer.Typer(help="CLI for hyperflow templates and runs")

# Command groups
templates_app = typer.Typer(help="Browse the template catalog")
automation_app = typer.Typer(help="Work with browser-automation templates")
chat_app = typer.Typer(help="Inspect chat prompt selection")
runs_app = typer.Typer(help="Inspect persisted guided runs")
executions_app = typer.Typer(help="Inspect persisted automation executions")

app.add_typer(templates_app, name="templates")
app.add_typer(automation_app, name="automation")
app.add_typer(chat_app, name="chat")
app.add_typer(runs_app, name="runs")
app.add_typer(executions_app, name="executions")


@app.callback()
def main() -> None:
    """hyperflow CLI entry point."""
    pass


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED)
    raise typer.Exit(code=1)


@templates_app.command("list")
def templates_list(
    kind: Optional[str] = typer.Option(None, help="guided, chat, content or automation"),
    category: Optional[str] = typer.Option(None, help="Only show this category"),
) -> None:
    """
    List catalog templates.

    Example:
        hyperflow templates list --kind automation
        # Output: hacker-news-top    automation    Hacker News Top Stories
    """
    templates = get_catalog().list_templates(kind=kind, category=category)
    if not templates:
        typer.echo("No templates found")
        return
    for template in templates:
        typer.echo(f"{template.id}\t{template.kind}\t{template.name}")


@templates_app.command("show")
def templates_show(template_id: str) -> None:
    """Show a template's steps, variables or body."""
    try:
        template = get_catalog()[template_id]
    except TemplateNotFoundError as exc:
        _fail(str(exc))

    typer.echo(f"{template.name} ({template.id}) [{template.kind}]")
    if template.description:
        typer.echo(template.description)

    if template.kind == "guided":
        for index, step in enumerate(template.steps, start=1):
            flags = [f for f, on in (("skippable", step.skippable), ("ai", step.ai_enhanced)) if on]
            suffix = f" [{', '.join(flags)}]" if flags else ""
            typer.echo(f"{index}. {step.id} - {step.title}{suffix}")
            for component in step.components:
                marker = "*" if component.required else " "
                typer.echo(f"   {marker} {component.state_key} ({component.type})")
        typer.echo(f"Output: {template.output.type} - {template.output.title}")
        return

    if template.trigger:
        typer.echo(f"Trigger: {template.trigger}")
    for spec in template.variables:
        required = "required" if spec.required else f"default={spec.default!r}"
        typer.echo(f"- {spec.name}: {spec.type} ({required})")
    placeholders = find_placeholders(template.body or "")
    if placeholders:
        typer.echo(f"Placeholders: {', '.join(placeholders)}")


@automation_app.command("code")
def automation_code(
    template_id: str,
    var: List[str] = typer.Option([], "--var", help="Variable as name=value, repeatable"),
) -> None:
    """
    Print the bound script for an automation template.

    Example:
        hyperflow automation code github-repo --var owner=pydantic --var repo=pydantic-ai
    """
    try:
        template = get_catalog()[template_id]
        typer.echo(prepare_execution(template, parse_var_options(var)))
    except HyperflowError as exc:
        _fail(str(exc))


@chat_app.command("select")
def chat_select(
    message: str,
    show_prompt: bool = typer.Option(False, help="Print the assembled system prompt"),
) -> None:
    """Show which chat template a user message would trigger."""
    assembler = ChatAssembler(get_catalog())
    request = assembler.assemble([ChatMessage(role="user", content=message)])
    if request.template_id is None:
        typer.echo("No chat template matched, using the default prompt")
    else:
        typer.echo(f"Matched template: {request.template_id}")
    if show_prompt:
        typer.echo(request.system_prompt)


@runs_app.command("list")
def runs_list(template: Optional[str] = typer.Option(None, help="Filter by template id")) -> None:
    """List persisted runs with their status and current step."""
    repo = get_repository()
    runs = asyncio.run(repo.list_runs(template))
    if not runs:
        typer.echo("No runs found")
        return
    for run in runs:
        typer.echo(f"{run.run_id}\t{run.template_id}\t{run.status}\t{run.current_step_index}")


@runs_app.command("show")
def runs_show(run_id: str) -> None:
    """Show a run's bound values and, once completed, its artifact."""
    repo = get_repository()
    run = asyncio.run(repo.get_run(run_id))
    if run is None:
        typer.echo("Run not found")
        return
    typer.echo(f"Run {run.run_id}: {run.status}")
    typer.echo(f"Template: {run.template_id} (step {run.current_step_index})")
    typer.echo(f"Completed steps: {', '.join(run.completed_steps) or '-'}")
    typer.echo(f"Values: {format_json(run.output_values())}")
    if run.artifact is not None:
        typer.echo(f"Artifact: {run.artifact.title} [{run.artifact.content_type}]")
        typer.echo(run.artifact.body)


@executions_app.command("show")
def executions_show(execution_id: str) -> None:
    """Show an execution's logs and typed output."""
    repo = get_repository()
    record = asyncio.run(repo.get_execution(execution_id))
    if record is None:
        typer.echo("Execution not found")
        return
    typer.echo(f"Execution {record.id}: {record.status}")
    typer.echo(f"Workflow: {record.workflow_id}")
    for line in record.logs:
        typer.echo(f"  | {line}")
    if record.output is not None:
        typer.echo(f"Output: {record.output.type} - {record.output.title}")
        if record.output.columns:
            typer.echo(f"Columns: {', '.join(record.output.columns)}")
        typer.echo(format_json(record.output.data))
    if record.error:
        typer.secho(f"Error: {record.error}", fg=typer.colors.RED)


if __name__ == "__main__":
    app()
