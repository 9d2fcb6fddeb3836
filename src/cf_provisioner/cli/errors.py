"""Turn exceptions into one-screen messages on stderr."""

from __future__ import annotations

import typer

from cf_provisioner.cli.formatting import APPLY_VERBS
from cf_provisioner.config.loader import ConfigError
from cf_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    MalformedIdError,
    RemoteError,
    ResourceAlreadyManagedError,
    StalePlanError,
    StateAccountMismatchError,
    StateLockError,
    ValidationError,
)

_PREFIXES: tuple[tuple[type[Exception] | tuple[type[Exception], ...], str], ...] = (
    (ConfigError, "Configuration error"),
    (StalePlanError, "Plan is stale"),
    (StateAccountMismatchError, "State mismatch"),
    (StateLockError, "State locked"),
    ((MalformedIdError, ResourceAlreadyManagedError), "Import failed"),
    (RemoteError, "Cloudflare API error"),
    (ApplyError, "Apply failed"),
)

_TRANSIENT_HINT = "  This failure looks transient; retrying may succeed."


def _is_transient(exc: BaseException | None) -> bool:
    return isinstance(exc, RemoteError) and exc.transient


def describe(exc: Exception) -> list[str]:
    """Lines explaining *exc*, without a traceback."""
    if isinstance(exc, ValidationError):
        return ["Validation failed:", *(f"  - {e}" for e in exc.errors)]
    if isinstance(exc, ApplyCanceled):
        return ["Apply canceled."]

    prefix = next((p for types, p in _PREFIXES if isinstance(exc, types)), "Error")
    lines = [f"{prefix}: {exc}"]
    if isinstance(exc, ApplyError):
        counts = exc.result.counts()
        done = [
            f"{counts[action]} {verb}"
            for action, verb in zip(("create", "update", "delete"), APPLY_VERBS, strict=True)
            if counts[action]
        ]
        if done:
            lines.append(f"  Partial result: {', '.join(done)}.")
    if _is_transient(exc) or _is_transient(exc.__cause__):
        lines.append(_TRANSIENT_HINT)
    return lines


def handle_error(exc: Exception, *, color: bool = True) -> int:
    """Print *exc* to stderr and return the exit code (always 1)."""
    for line in describe(exc):
        typer.echo(typer.style(line, fg=typer.colors.RED) if color else line, err=True)
    return 1
