"""The state file: what cf-provisioner manages in one Cloudflare account."""

import json
import logging
import os
import shutil
import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now().astimezone()


class ResourceInstance(BaseModel):
    """One managed object, as last seen in Cloudflare.

    ``id`` is what the Cloudflare API addresses the object by: the config
    UUID for Hyperdrive, the project name for Pages. It stays empty until
    the object exists.
    """

    address: str
    resource_type: str
    key: str
    id: str = ""
    attributes: dict[str, Any] = Field(default_factory=dict)
    dependencies: list[str] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=_now)

    def touch(self, attributes: dict[str, Any]) -> None:
        self.attributes = attributes
        self.updated_at = _now()


class State(BaseModel):
    """Versioned snapshot of every managed instance, keyed by address.

    ``lineage`` names the history a file belongs to and ``serial`` counts its
    commits; a saved plan is only applied against the lineage and serial it
    was computed from.
    """

    version: int = 1
    account_id: str
    lineage: str = Field(default_factory=lambda: str(uuid.uuid4()))
    serial: int = 0
    resources: dict[str, ResourceInstance] = Field(default_factory=dict)

    @classmethod
    def read(cls, path: Path) -> "State":
        with path.open(encoding="utf-8") as fh:
            state = cls.model_validate(json.load(fh))
        logger.debug("Read state serial=%d from %s", state.serial, path)
        return state

    @classmethod
    def read_or_new(cls, path: Path, account_id: str) -> "State":
        if not path.is_file():
            logger.debug("No state at %s; starting empty for account %s", path, account_id)
            return cls(account_id=account_id)
        return cls.read(path)

    def write(self, path: Path) -> None:
        """Replace *path* atomically, keeping the previous file as ``<path>.backup``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.is_file():
            shutil.copy2(path, path.with_name(path.name + ".backup"))

        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", delete=False
        ) as tmp:
            json.dump(self.model_dump(mode="json"), tmp, indent=2, sort_keys=True)
            tmp.write("\n")
            tmp.flush()
            os.fsync(tmp.fileno())
        try:
            os.replace(tmp.name, path)
        except OSError:
            os.unlink(tmp.name)
            raise
        logger.debug("Wrote state serial=%d to %s", self.serial, path)

    def commit(self, path: Path) -> None:
        """Advance the serial and write."""
        self.serial += 1
        self.write(path)
