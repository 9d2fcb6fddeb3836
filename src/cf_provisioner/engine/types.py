"""Plans, changes and apply results."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    NOOP = "no-op"


def count_actions(changes: Iterable[ResourceChange]) -> dict[str, int]:
    """Tally create/update/delete changes; no-ops are not counted."""
    tally = Counter(c.action for c in changes)
    return {a.value: tally[a] for a in (Action.CREATE, Action.UPDATE, Action.DELETE)}


class PlanMetadata(BaseModel):
    """Where a plan came from; ``apply`` refuses a plan whose state moved on."""

    account_id: str
    state_lineage: str
    state_serial: int
    destroy: bool = False
    refresh: bool = True
    engine_version: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ResourceChange(BaseModel):
    """One planned action against one resource address.

    ``desired`` is the declared resource (as the model dumps it), ``prior``
    the stored instance and ``planned`` the attributes to compare. ``diff``
    maps each drifted attribute to ``{"from": ..., "to": ...}``.
    ``sensitive`` names top-level attributes that are masked when shown.
    """

    address: str
    resource_type: str
    action: Action
    desired: dict[str, Any] | None = None
    prior: dict[str, Any] | None = None
    planned: dict[str, Any] | None = None
    diff: dict[str, Any] | None = None
    sensitive: list[str] = Field(default_factory=list)


class Plan(BaseModel):
    metadata: PlanMetadata
    changes: list[ResourceChange]

    @property
    def actionable(self) -> list[ResourceChange]:
        return [c for c in self.changes if c.action is not Action.NOOP]

    def counts(self) -> dict[str, int]:
        return count_actions(self.changes)

    def write(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2) + "\n", encoding="utf-8")

    @classmethod
    def read(cls, path: Path) -> Plan:
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))


class ApplyResult(BaseModel):
    applied: list[ResourceChange] = Field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return count_actions(self.applied)
