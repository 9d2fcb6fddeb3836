"""The ``cf-provisioner`` command."""

from __future__ import annotations

import logging
import os
import sys

import typer

from cf_provisioner import __version__

LOG_ENV_VAR = "CF_LOG"

app = typer.Typer(
    name="cf-provisioner",
    help="Terraform-style provisioning for Cloudflare Hyperdrive configs and Pages projects.",
    no_args_is_help=True,
    add_completion=False,
)


def log_level(verbose: int) -> int | None:
    """Level for the ``cf_provisioner`` loggers, or ``None`` to stay quiet.

    ``CF_LOG`` overrides ``-v``; an unknown level name falls back to INFO.
    """
    requested = os.environ.get(LOG_ENV_VAR, "").strip().upper()
    if requested:
        level = logging.getLevelName(requested)
        if isinstance(level, int):
            return level
        typer.echo(f"WARNING: unknown {LOG_ENV_VAR} level {requested!r}; using INFO", err=True)
        return logging.INFO
    if verbose <= 0:
        return None
    return logging.INFO if verbose == 1 else logging.DEBUG


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"cf-provisioner {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Print the version and exit.",
        callback=_show_version,
        is_eager=True,
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Log more (-v info, -vv debug)."
    ),
) -> None:
    level = log_level(verbose)
    if level is not None:
        # Third-party loggers stay at WARNING.
        logging.basicConfig(
            level=logging.WARNING,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
            force=True,
        )
        logging.getLogger("cf_provisioner").setLevel(level)


from cf_provisioner.cli import commands as _commands  # noqa: E402, F401
