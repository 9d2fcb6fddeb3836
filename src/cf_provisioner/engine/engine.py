"""Plan and apply declared resources against one Cloudflare account."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import nullcontext
from typing import TYPE_CHECKING, Any, Literal

from cf_provisioner import __version__
from cf_provisioner.core.state import ResourceInstance, State
from cf_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DuplicateAddressError,
    InvalidAddressError,
    NotFoundError,
    ResourceAlreadyManagedError,
    StalePlanError,
    StateAccountMismatchError,
    ValidationError,
)
from cf_provisioner.engine.graph import dependency_order
from cf_provisioner.engine.handlers import EngineContext
from cf_provisioner.engine.lock import state_lock
from cf_provisioner.engine.reconciler import parse_import_id
from cf_provisioner.engine.types import Action, ApplyResult, Plan, PlanMetadata, ResourceChange
from cf_provisioner.resources.markers import collect_sensitive_fields

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from cf_provisioner.core import CloudflareProvider
    from cf_provisioner.engine.registry import ResourceTypeRegistry
    from cf_provisioner.resources.base import Resource

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ResourceChange, Literal["start", "done"]], None]


def differs(desired: Any, stored: Any) -> bool:
    """Compare a declared value against the stored one.

    Dicts are compared on the declared keys only: keys Cloudflare adds on its
    own (computed fields, server defaults) never count as drift.
    """
    if isinstance(desired, dict) and isinstance(stored, dict):
        return any(differs(value, stored.get(key)) for key, value in desired.items())
    return desired != stored


class CloudflareEngine:
    """Terraform-style plan/apply over a local state file.

    Every mutation is committed to state as soon as Cloudflare confirms it,
    so a failed apply leaves state describing exactly what exists.
    """

    def __init__(
        self,
        *,
        provider: CloudflareProvider,
        account_id: str,
        state_path: Path,
        registry: ResourceTypeRegistry,
    ) -> None:
        self._provider = provider
        self._account_id = account_id
        self._state_path = state_path
        self._registry = registry

    @property
    def account_id(self) -> str:
        return self._account_id

    @property
    def state_path(self) -> Path:
        return self._state_path

    def _ctx(self) -> EngineContext:
        return EngineContext(provider=self._provider, account_id=self._account_id)

    def _open_state(self) -> State:
        state = State.read_or_new(self._state_path, self._account_id)
        if state.account_id != self._account_id:
            raise StateAccountMismatchError(self._account_id, state.account_id)
        return state

    # Refresh

    def _refresh(self, state: State) -> bool:
        """Re-read every tracked object; forget the ones Cloudflare no longer has."""
        ctx = self._ctx()
        changed = False
        for address in sorted(state.resources):
            instance = state.resources[address]
            handler = self._registry.handler(instance.resource_type)
            try:
                attributes = handler.read(ctx, instance)
            except NotFoundError:
                logger.warning("%s was deleted outside cf-provisioner; forgetting it", address)
                del state.resources[address]
                changed = True
                continue
            if attributes != instance.attributes:
                instance.touch(attributes)
                changed = True
        logger.debug("Refreshed %d resources, changed=%s", len(state.resources), changed)
        return changed

    def refresh(self, *, persist: bool = False) -> tuple[State, State]:
        """Return state before and after re-reading Cloudflare."""
        with state_lock(self._state_path):
            state = self._open_state()
            before = state.model_copy(deep=True)
            if self._refresh(state) and persist:
                state.commit(self._state_path)
            return before, state

    # Plan

    def _index(self, resources: Sequence[Resource]) -> dict[str, Resource]:
        indexed: dict[str, Resource] = {}
        for resource in resources:
            self._registry.handler(resource.resource_type)
            if resource.address in indexed:
                raise DuplicateAddressError(resource.address)
            indexed[resource.address] = resource
        return indexed

    def _check(self, desired: dict[str, Resource], state: State) -> None:
        """Reject dangling references and remote identities claimed twice."""
        errors = [
            f"Resource '{r.address}' depends on unknown address '{dep}'"
            for r in desired.values()
            for dep in r.depends_on
            if dep not in desired and dep not in state.resources
        ]

        holders = {
            (inst.resource_type, inst.id): inst.address
            for inst in state.resources.values()
            if inst.id
        }
        for address, resource in desired.items():
            handler = self._registry.handler(resource.resource_type)
            identity = handler.planned_identity(resource)
            if identity is None:
                continue
            prior = state.resources.get(address)
            if prior is not None and prior.id:
                if prior.id != identity:
                    errors.append(
                        f"Resource '{address}' cannot change {handler.identity_field} from "
                        f"'{prior.id}' to '{identity}'; declare it under a new label instead"
                    )
                continue
            holder = holders.setdefault((resource.resource_type, identity), address)
            if holder != address:
                errors.append(
                    f"Resource '{address}' would create {resource.namespace} '{identity}', "
                    f"which is already managed as '{holder}'"
                )

        if errors:
            raise ValidationError(errors)

    def _diff(self, resource: Resource, prior: ResourceInstance | None) -> ResourceChange:
        planned = resource.planned_attributes()
        change = ResourceChange(
            address=resource.address,
            resource_type=resource.resource_type,
            action=Action.CREATE,
            desired=resource.model_dump(exclude_none=True, exclude={"address"}),
            planned=planned,
            sensitive=collect_sensitive_fields(resource),
        )
        if prior is not None:
            stored = dict(prior.attributes)
            diff = {
                name: {"from": stored.get(name), "to": value}
                for name, value in planned.items()
                if differs(value, stored.get(name))
            }
            change.prior = stored
            change.diff = diff or None
            change.action = Action.UPDATE if diff else Action.NOOP
        logger.debug("%s: %s", resource.address, change.action.value)
        return change

    def _deletions(self, state: State, addresses: set[str]) -> list[ResourceChange]:
        """Delete changes, dependents first."""
        order = dependency_order({a: state.resources[a].dependencies for a in addresses})
        changes = []
        for address in reversed(order):
            instance = state.resources[address]
            model = self._registry.model(instance.resource_type)
            changes.append(
                ResourceChange(
                    address=address,
                    resource_type=instance.resource_type,
                    action=Action.DELETE,
                    prior=dict(instance.attributes),
                    sensitive=collect_sensitive_fields(model),
                )
            )
        return changes

    def plan(
        self, resources: Sequence[Resource], *, destroy: bool = False, refresh: bool = True
    ) -> Plan:
        """Compute the changes that bring Cloudflare in line with *resources*.

        Creates and updates come first, dependencies before dependents; the
        deletes follow in reverse dependency order. ``apply`` runs them in
        exactly this order.
        """
        logger.info(
            "Planning %d resources (destroy=%s, refresh=%s)", len(resources), destroy, refresh
        )
        with state_lock(self._state_path) if refresh else nullcontext():
            state = self._open_state()
            if refresh and self._refresh(state):
                state.commit(self._state_path)

        desired = self._index(resources)
        if destroy:
            changes = self._deletions(state, set(state.resources))
        else:
            self._check(desired, state)
            order = dependency_order({a: r.depends_on for a, r in desired.items()})
            changes = [self._diff(desired[a], state.resources.get(a)) for a in order]
            changes += self._deletions(state, set(state.resources) - set(desired))

        metadata = PlanMetadata(
            account_id=self._account_id,
            state_lineage=state.lineage,
            state_serial=state.serial,
            destroy=destroy,
            refresh=refresh,
            engine_version=__version__,
        )
        return Plan(metadata=metadata, changes=changes)

    # Apply

    def _state_for(self, plan: Plan) -> State:
        if plan.metadata.account_id != self._account_id:
            raise StateAccountMismatchError(self._account_id, plan.metadata.account_id)
        if not self._state_path.is_file():
            # A plan made before any state existed starts the same lineage.
            return State(
                account_id=self._account_id,
                lineage=plan.metadata.state_lineage,
                serial=plan.metadata.state_serial,
            )
        state = self._open_state()
        if state.lineage != plan.metadata.state_lineage:
            raise StalePlanError("State lineage changed; re-run plan")
        if state.serial != plan.metadata.state_serial:
            raise StalePlanError(
                f"State serial is {state.serial}, plan was made at {plan.metadata.state_serial}; "
                "re-run plan"
            )
        return state

    def _execute(self, ctx: EngineContext, state: State, change: ResourceChange) -> None:
        handler = self._registry.handler(change.resource_type)
        match change.action:
            case Action.DELETE:
                handler.delete(ctx, state.resources[change.address])
                del state.resources[change.address]
            case Action.CREATE:
                desired = handler.resource_model.model_validate(change.desired or {})
                attributes = handler.create(ctx, desired)
                state.resources[change.address] = ResourceInstance(
                    address=change.address,
                    resource_type=change.resource_type,
                    key=desired.key,
                    id=handler.identity_of(attributes),
                    attributes=attributes,
                    dependencies=list(desired.depends_on),
                )
            case Action.UPDATE:
                desired = handler.resource_model.model_validate(change.desired or {})
                instance = state.resources[change.address]
                attributes = handler.update(ctx, desired, instance)
                instance.id = handler.identity_of(attributes) or instance.id
                instance.dependencies = list(desired.depends_on)
                instance.touch(attributes)

    def apply(self, plan: Plan, *, progress: ProgressCallback | None = None) -> ApplyResult:
        """Run a plan's changes in order, committing state after each one."""
        with state_lock(self._state_path):
            state = self._state_for(plan)
            ctx = self._ctx()
            result = ApplyResult()
            pending = plan.actionable
            logger.info("Applying %d changes", len(pending))
            for change in pending:
                if progress:
                    progress(change, "start")
                try:
                    self._execute(ctx, state, change)
                except KeyboardInterrupt as exc:  # pragma: no cover
                    raise ApplyCanceled("Apply canceled") from exc
                except Exception as exc:
                    raise ApplyError(
                        applied=result.applied, address=change.address, message=str(exc)
                    ) from exc
                state.commit(self._state_path)
                result.applied.append(change)
                if progress:
                    progress(change, "done")
            return result

    # Import

    def import_resource(self, address: str, import_id: str) -> ResourceInstance:
        """Adopt an existing remote object into state at *address*.

        *import_id* is ``<accountID>/<resourceID>`` and must name the
        engine's account. State is written straight away, so the next plan
        diffs against the live object.
        """
        resource_type, _, key = address.partition(".")
        if not resource_type or not key:
            raise InvalidAddressError(address)
        handler = self._registry.handler(resource_type)
        account_id, _ = parse_import_id(import_id, handler.id_label)
        if account_id != self._account_id:
            raise StateAccountMismatchError(self._account_id, account_id)

        with state_lock(self._state_path):
            state = self._open_state()
            if address in state.resources:
                raise ResourceAlreadyManagedError(address)
            instance = handler.import_resource(self._ctx(), key, import_id).instance
            state.resources[address] = instance
            state.commit(self._state_path)
        logger.info("Imported %s (id=%s)", address, instance.id)
        return instance
