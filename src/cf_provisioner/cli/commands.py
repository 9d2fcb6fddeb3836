"""plan, apply, destroy, refresh, drift, import and validate."""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Literal

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn

from cf_provisioner import config as api
from cf_provisioner.cli import app
from cf_provisioner.cli.errors import handle_error
from cf_provisioner.cli.formatting import LOOKS, Renderer
from cf_provisioner.engine.types import Plan, count_actions

if TYPE_CHECKING:
    from cf_provisioner.config import Config
    from cf_provisioner.engine.types import ApplyResult, ResourceChange

ConfigPath = Annotated[
    Path, typer.Option("--config", "-c", help="Configuration file to read.")
]
NoColor = Annotated[bool, typer.Option("--no-color", help="Print without ANSI colors.")]
AutoApprove = Annotated[
    bool, typer.Option("--auto-approve", help="Do not ask before changing anything.")
]
NoRefresh = Annotated[
    bool, typer.Option("--no-refresh", help="Plan against state without reading Cloudflare.")
]

DEFAULT_CONFIG = Path("cf-provisioner.yaml")


def _renderer(no_color: bool) -> Renderer:
    return Renderer(color=not (no_color or os.environ.get("NO_COLOR")))


@contextmanager
def _reported(out: Renderer) -> Iterator[None]:
    """Exit with code 1 after printing any error raised in the block."""
    try:
        yield
    except (typer.Exit, typer.Abort):
        raise
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=out.color)) from exc


def _ask(question: str, declined: str) -> None:
    if not typer.confirm(question, default=False):
        typer.echo(declined, err=True)
        raise typer.Exit(1)


def _run_with_progress(plan_obj: Plan, cfg: Config, out: Renderer) -> ApplyResult:
    with Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=Console(no_color=not out.color),
    ) as bar:
        task = bar.add_task("Applying", total=len(plan_obj.actionable))

        def report(change: ResourceChange, event: Literal["start", "done"]) -> None:
            look = LOOKS[change.action]
            if event == "start":
                bar.update(task, description=f"{change.address}: {look.active}...")
            else:
                bar.console.print(f"  {change.address}: {look.finished}")
                bar.advance(task)

        return api.apply(plan_obj, cfg, progress=report)


def _show_and_apply(
    plan_obj: Plan, cfg: Config, out: Renderer, *, auto_approve: bool, question: str, idle: str
) -> None:
    if not plan_obj.actionable:
        typer.echo(idle)
        return
    typer.echo(out.changes(plan_obj.changes))
    typer.echo()
    typer.echo(out.plan_summary(plan_obj.counts()))
    typer.echo()
    if not auto_approve:
        _ask(question, "Apply canceled.")
    with _reported(out):
        result = _run_with_progress(plan_obj, cfg, out)
    typer.echo()
    typer.echo(out.apply_summary(result.counts()))


@app.command()
def plan(
    config: ConfigPath = DEFAULT_CONFIG,
    out_file: Annotated[
        Path | None, typer.Option("--out", "-o", help="Also write the plan to this file.")
    ] = None,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Show what apply would change. Exits 2 when there is something to do."""
    out = _renderer(no_color)
    with _reported(out):
        plan_obj = api.plan(api.load(config), refresh=not no_refresh)

    typer.echo(out.changes(plan_obj.changes))
    typer.echo()
    typer.echo(out.plan_summary(plan_obj.counts()))
    if out_file is not None:
        plan_obj.write(out_file)
        typer.echo(f"\nPlan saved to {out_file}")
    if plan_obj.actionable:
        raise typer.Exit(2)


@app.command(name="apply")
def apply_cmd(
    plan_file: Annotated[
        Path | None, typer.Argument(help="Plan written by 'plan --out'; planned afresh if omitted.")
    ] = None,
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Make Cloudflare match the configuration."""
    out = _renderer(no_color)
    with _reported(out):
        cfg = api.load(config)
        if plan_file is not None:
            plan_obj = Plan.read(plan_file)
        else:
            plan_obj = api.plan(cfg, refresh=not no_refresh)
    _show_and_apply(
        plan_obj,
        cfg,
        out,
        auto_approve=auto_approve,
        question="Do you want to apply these changes?",
        idle="No changes. Resources are up-to-date.",
    )


@app.command()
def destroy(
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Delete every resource recorded in state."""
    out = _renderer(no_color)
    with _reported(out):
        cfg = api.load(config)
        plan_obj = api.plan(cfg, destroy=True)
    _show_and_apply(
        plan_obj,
        cfg,
        out,
        auto_approve=auto_approve,
        question="Do you really want to destroy all resources?",
        idle="No resources to destroy.",
    )


@app.command(name="refresh")
def refresh_cmd(
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Re-read Cloudflare and, once confirmed, write what it reports to state."""
    out = _renderer(no_color)
    with _reported(out):
        cfg = api.load(config)
        changes, state = api.refresh(cfg)
    if not changes:
        typer.echo("No changes. State is up-to-date with Cloudflare.")
        return

    typer.echo(out.changes(changes))
    typer.echo()
    typer.echo(out.plan_summary(count_actions(changes), header="Refresh"))
    typer.echo()
    if not auto_approve:
        _ask("Do you want to update the state file?", "Refresh canceled.")
    with _reported(out):
        api.save_state(cfg, state)
    tracked = len(state.resources)
    typer.echo(f"State refreshed. {tracked} resource{'' if tracked == 1 else 's'} tracked.")


@app.command()
def drift(config: ConfigPath = DEFAULT_CONFIG, no_color: NoColor = False) -> None:
    """List what changed in Cloudflare since state was written."""
    out = _renderer(no_color)
    with _reported(out):
        changes = api.drift(api.load(config))
    if not changes:
        typer.echo("No drift detected. State is up-to-date with Cloudflare.")
        return
    typer.echo("Drift detected:\n")
    typer.echo(out.changes(changes))


@app.command(name="import")
def import_cmd(
    address: Annotated[
        str, typer.Argument(help="Address to manage it at, e.g. cloudflare_pages_project.docs.")
    ],
    import_id: Annotated[
        str, typer.Argument(metavar="ID", help="<accountID>/<resourceID> of the existing object.")
    ],
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Start managing an object that already exists in Cloudflare."""
    out = _renderer(no_color)
    with _reported(out):
        instance = api.import_resource(api.load(config), address, import_id)
    typer.echo(out.imported(instance))


@app.command()
def validate(config: ConfigPath = DEFAULT_CONFIG, no_color: NoColor = False) -> None:
    """Check the configuration against state without calling Cloudflare."""
    out = _renderer(no_color)
    with _reported(out):
        api.plan(api.load(config), refresh=False)
    typer.echo(out.paint("Configuration is valid.", fg="green"))

