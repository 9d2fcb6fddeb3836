"""Advisory lock serializing runs that write the same state file."""

from __future__ import annotations

import fcntl
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from cf_provisioner.engine.errors import StateLockError

logger = logging.getLogger(__name__)


def lock_path_for(state_path: Path) -> Path:
    return state_path.with_name(state_path.name + ".lock")


@contextmanager
def state_lock(state_path: Path, *, wait: bool = True) -> Iterator[Path]:
    """Hold an exclusive ``flock`` on ``<state>.lock`` for the ``with`` block.

    With ``wait=False`` a held lock raises :class:`StateLockError` at once.
    """
    path = lock_path_for(state_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    flags = fcntl.LOCK_EX if wait else fcntl.LOCK_EX | fcntl.LOCK_NB
    with path.open("a") as handle:
        try:
            fcntl.flock(handle, flags)
        except OSError as exc:
            raise StateLockError(f"State is locked by another run: {path}") from exc
        logger.debug("Locked %s", path)
        try:
            yield path
        finally:
            fcntl.flock(handle, fcntl.LOCK_UN)
