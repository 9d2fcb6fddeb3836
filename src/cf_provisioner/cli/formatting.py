"""Terraform-style rendering of plans, drift and apply results."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import typer

from cf_provisioner.engine.types import Action

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cf_provisioner.core.state import ResourceInstance
    from cf_provisioner.engine.types import ResourceChange

MASK = "(sensitive value)"


@dataclass(frozen=True)
class Look:
    symbol: str
    color: str
    headline: str
    active: str
    finished: str


LOOKS = {
    Action.CREATE: Look("+", "green", "will be created", "Creating", "Creation complete"),
    Action.UPDATE: Look("~", "yellow", "will be updated in-place", "Updating", "Update complete"),
    Action.DELETE: Look("-", "red", "will be destroyed", "Destroying", "Destroy complete"),
    Action.NOOP: Look(" ", "bright_black", "is up-to-date", "", ""),
}

_TALLIES = (("create", "green"), ("update", "yellow"), ("delete", "red"))
PLAN_VERBS = ("to add", "to change", "to destroy")
APPLY_VERBS = ("added", "changed", "destroyed")


def literal(value: Any) -> str:
    """Show a value the way it would be written in JSON."""
    return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)


class Renderer:
    """Builds CLI output; with ``color=False`` every string comes back unstyled."""

    def __init__(self, *, color: bool = True) -> None:
        self.color = color

    def paint(self, text: str, **style: Any) -> str:
        return typer.style(text, **style) if self.color else text

    def _rows(self, change: ResourceChange) -> list[tuple[str, str]]:
        def shown(name: str, value: Any) -> str:
            return MASK if name in change.sensitive else literal(value)

        if change.action is Action.CREATE:
            rows = [(k, shown(k, v)) for k, v in (change.planned or {}).items()]
        elif change.action is Action.UPDATE:
            rows = [
                (k, f"{shown(k, d['from'])} -> {shown(k, d['to'])}")
                for k, d in (change.diff or {}).items()
            ]
        else:
            return []
        width = max((len(k) for k, _ in rows), default=0)
        return [(k.ljust(width), v) for k, v in rows]

    def change(self, change: ResourceChange) -> str:
        look = LOOKS[change.action]
        label = change.address.partition(".")[2] or change.address
        lines = [
            self.paint(f"  # {change.address} {look.headline}", fg=look.color, bold=True),
            f'  {look.symbol} resource "{change.resource_type}" "{label}" {{',
            *(f"      {look.symbol} {name} = {value}" for name, value in self._rows(change)),
            "    }",
        ]
        return "\n".join([lines[0], *(self.paint(line, fg=look.color) for line in lines[1:])])

    def changes(self, changes: Iterable[ResourceChange]) -> str:
        blocks = [self.change(c) for c in changes if c.action is not Action.NOOP]
        return "\n\n".join(blocks) if blocks else "No changes. Resources are up-to-date."

    def tally(self, counts: dict[str, int], verbs: tuple[str, ...]) -> str:
        parts = []
        for (action, fg), verb in zip(_TALLIES, verbs, strict=True):
            n = counts.get(action, 0)
            parts.append(self.paint(f"{n} {verb}", fg=fg) if n else f"{n} {verb}")
        return ", ".join(parts)

    def plan_summary(self, counts: dict[str, int], *, header: str = "Plan") -> str:
        return f"{header}: {self.tally(counts, PLAN_VERBS)}."

    def apply_summary(self, counts: dict[str, int]) -> str:
        done = self.paint("Apply complete!", fg="green", bold=True)
        return f"{done} Resources: {self.tally(counts, APPLY_VERBS)}."

    def imported(self, instance: ResourceInstance) -> str:
        done = self.paint("Import successful!", fg="green", bold=True)
        return (
            f"{done} {instance.address} (id={instance.id}) is now managed.\n"
            "Run 'plan' to compare it with the configuration."
        )
