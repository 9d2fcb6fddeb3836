"""Python API: load cf-provisioner.yaml, then plan, apply, refresh or import.

    from cf_provisioner import config

    cfg = config.load("cf-provisioner.yaml")
    plan = config.plan(cfg)
    config.apply(plan, cfg)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cf_provisioner.config.loader import ConfigError, load_config
from cf_provisioner.config.schema import Config, ProviderConfig
from cf_provisioner.core.provider import CloudflareProvider
from cf_provisioner.core.state import State
from cf_provisioner.engine.engine import CloudflareEngine, ProgressCallback
from cf_provisioner.engine.lock import state_lock
from cf_provisioner.engine.registry import builtin_registry
from cf_provisioner.engine.types import Action, ResourceChange

if TYPE_CHECKING:
    from pathlib import Path

    from cf_provisioner.core.state import ResourceInstance
    from cf_provisioner.engine.types import ApplyResult, Plan

__all__ = [
    "Config",
    "ConfigError",
    "ProviderConfig",
    "State",
    "apply",
    "drift",
    "import_resource",
    "load",
    "plan",
    "plan_and_apply",
    "refresh",
    "save_state",
]


def load(path: Path | str) -> Config:
    return load_config(path)


def _engine(config: Config) -> CloudflareEngine:
    settings = config.provider
    if settings.api_token is None:
        raise ConfigError("provider.api_token is required (set CLOUDFLARE_API_TOKEN env var)")
    return CloudflareEngine(
        provider=CloudflareProvider(api_token=settings.api_token, base_url=settings.base_url),
        account_id=settings.account_id,
        state_path=config.state_path,
        registry=builtin_registry(),
    )


def plan(config: Config, *, destroy: bool = False, refresh: bool = True) -> Plan:
    return _engine(config).plan(config.resources, destroy=destroy, refresh=refresh)


def apply(
    plan_obj: Plan, config: Config, *, progress: ProgressCallback | None = None
) -> ApplyResult:
    return _engine(config).apply(plan_obj, progress=progress)


def plan_and_apply(config: Config, *, destroy: bool = False, refresh: bool = True) -> ApplyResult:
    return apply(plan(config, destroy=destroy, refresh=refresh), config)


def refresh(config: Config) -> tuple[list[ResourceChange], State]:
    """Re-read Cloudflare without writing state.

    Returns what moved and the refreshed state; pass the state to
    :func:`save_state` to keep it.
    """
    before, after = _engine(config).refresh()
    return drift_between(before, after), after


def save_state(config: Config, state: State) -> None:
    with state_lock(config.state_path):
        state.commit(config.state_path)


def drift(config: Config) -> list[ResourceChange]:
    """Changes made in Cloudflare since state was last written."""
    return refresh(config)[0]


def import_resource(config: Config, address: str, import_id: str) -> ResourceInstance:
    """Adopt the object ``<accountID>/<resourceID>`` into state at *address*."""
    return _engine(config).import_resource(address, import_id)


def drift_between(before: State, after: State) -> list[ResourceChange]:
    """Attribute changes and disappearances between two snapshots of state."""
    changes = []
    for address in sorted(before.resources):
        old = before.resources[address]
        new = after.resources.get(address)
        if new is None:
            changes.append(
                ResourceChange(
                    address=address,
                    resource_type=old.resource_type,
                    action=Action.DELETE,
                    prior=dict(old.attributes),
                )
            )
            continue
        moved = {
            name: {"from": old.attributes.get(name), "to": new.attributes.get(name)}
            for name in sorted(old.attributes.keys() | new.attributes.keys())
            if old.attributes.get(name) != new.attributes.get(name)
        }
        if moved:
            changes.append(
                ResourceChange(
                    address=address,
                    resource_type=new.resource_type,
                    action=Action.UPDATE,
                    prior=dict(old.attributes),
                    planned=dict(new.attributes),
                    diff=moved,
                )
            )
    return changes
