"""The ``plan``, ``apply``, ``destroy``, ``refresh``, ``drift`` and ``validate`` commands."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Literal

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn

from bitbucket_provisioner import config as api
from bitbucket_provisioner.cli import app
from bitbucket_provisioner.cli.errors import reported
from bitbucket_provisioner.cli.formatting import (
    format_apply_summary,
    format_changes,
    format_plan_summary,
    progress_line,
    styler,
)
from bitbucket_provisioner.engine.types import count_actions

if TYPE_CHECKING:
    from bitbucket_provisioner.config.schema import Config
    from bitbucket_provisioner.engine.types import ApplyResult, Plan, ResourceChange

ConfigOption = Annotated[
    Path, typer.Option("--config", "-c", help="YAML file declaring the variables.")
]
NoColorOption = Annotated[bool, typer.Option("--no-color", help="Print without ANSI colors.")]
AutoApproveOption = Annotated[
    bool, typer.Option("--auto-approve", help="Do not ask for confirmation.")
]
NoRefreshOption = Annotated[
    bool, typer.Option("--no-refresh", help="Plan against the state file as it is.")
]

DEFAULT_CONFIG = Path("bitbucket-provisioner.yaml")


def _color(no_color: bool) -> bool:
    return not no_color and "NO_COLOR" not in os.environ


def _ask(question: str, *, declined: str) -> None:
    if not typer.confirm(question, default=False):
        typer.echo(declined, err=True)
        raise typer.Exit(1)


def _show(changes: list[ResourceChange], *, color: bool, header: str) -> None:
    typer.echo(format_changes(changes, color=color))
    typer.echo()
    typer.echo(format_plan_summary(count_actions(changes), color=color, header=header))
    typer.echo()


def _run_with_progress(plan: Plan, cfg: Config, *, color: bool) -> ApplyResult:
    columns = (SpinnerColumn(), TextColumn("{task.description}"), BarColumn(), MofNCompleteColumn())
    with Progress(*columns, console=Console(no_color=not color)) as progress:
        task = progress.add_task("Applying", total=len(plan.actionable))

        def report(change: ResourceChange, event: Literal["start", "done"]) -> None:
            if event == "start":
                progress.update(task, description=progress_line(change, event))
            else:
                progress.console.print(f"  {progress_line(change, event)}")
                progress.advance(task)

        return api.apply(plan, cfg, progress=report)


def _execute(plan: Plan, cfg: Config, *, color: bool, auto_approve: bool, question: str) -> None:
    _show(plan.changes, color=color, header="Plan")
    if not auto_approve:
        _ask(question, declined="Apply canceled.")
    with reported(color=color):
        result = _run_with_progress(plan, cfg, color=color)
    typer.echo()
    typer.echo(format_apply_summary(result.summary(), color=color))


@app.command()
def plan(
    config: ConfigOption = DEFAULT_CONFIG,
    no_color: NoColorOption = False,
    no_refresh: NoRefreshOption = False,
) -> None:
    """Show what apply would change. Exits 2 when there is something to do."""
    color = _color(no_color)
    with reported(color=color):
        planned = api.plan(api.load(config), refresh=not no_refresh)
    if not planned.actionable:
        typer.echo(format_changes(planned.changes))
        return
    _show(planned.changes, color=color, header="Plan")
    raise typer.Exit(2)


@app.command()
def apply(
    config: ConfigOption = DEFAULT_CONFIG,
    auto_approve: AutoApproveOption = False,
    no_color: NoColorOption = False,
    no_refresh: NoRefreshOption = False,
) -> None:
    """Create, update and delete variables until Bitbucket matches the config."""
    color = _color(no_color)
    with reported(color=color):
        cfg = api.load(config)
        planned = api.plan(cfg, refresh=not no_refresh)
    if not planned.actionable:
        typer.echo(format_changes(planned.changes))
        return
    _execute(
        planned, cfg, color=color, auto_approve=auto_approve, question="Apply these changes?"
    )


@app.command()
def destroy(
    config: ConfigOption = DEFAULT_CONFIG,
    auto_approve: AutoApproveOption = False,
    no_color: NoColorOption = False,
) -> None:
    """Delete every variable recorded in the state file."""
    color = _color(no_color)
    with reported(color=color):
        cfg = api.load(config)
        planned = api.plan(cfg, destroy=True)
    if not planned.actionable:
        typer.echo("No resources to destroy.")
        return
    _execute(
        planned,
        cfg,
        color=color,
        auto_approve=auto_approve,
        question="Destroy all of these variables?",
    )


@app.command(name="refresh")
def refresh_command(
    config: ConfigOption = DEFAULT_CONFIG,
    auto_approve: AutoApproveOption = False,
    no_color: NoColorOption = False,
) -> None:
    """Rewrite the state file from what Bitbucket holds now."""
    color = _color(no_color)
    with reported(color=color):
        cfg = api.load(config)
        changes, state = api.refresh(cfg)
    if not changes:
        typer.echo("No changes. State is up-to-date with Bitbucket.")
        return

    _show(changes, color=color, header="Refresh")
    if not auto_approve:
        _ask("Write these changes to the state file?", declined="Refresh canceled.")
    with reported(color=color):
        api.save_state(cfg, state)
    tracked = len(state.resources)
    typer.echo(f"State refreshed. {tracked} resource{'' if tracked == 1 else 's'} tracked.")


@app.command()
def drift(config: ConfigOption = DEFAULT_CONFIG, no_color: NoColorOption = False) -> None:
    """List variables changed or deleted outside this tool."""
    color = _color(no_color)
    with reported(color=color):
        changes = api.drift(api.load(config))
    if not changes:
        typer.echo("No drift detected. State is up-to-date with Bitbucket.")
        return
    typer.echo("Drift detected:\n")
    typer.echo(format_changes(changes, color=color))


@app.command()
def validate(config: ConfigOption = DEFAULT_CONFIG, no_color: NoColorOption = False) -> None:
    """Check the configuration without contacting Bitbucket."""
    color = _color(no_color)
    with reported(color=color):
        api.plan(api.load(config), refresh=False)
    typer.echo(styler(color)("Configuration is valid.", fg="green"))
