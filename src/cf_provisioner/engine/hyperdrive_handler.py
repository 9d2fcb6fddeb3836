"""Hyperdrive config reconciler implementing CRUD via the Cloudflare hyperdrive API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from cf_provisioner.engine.reconciler import ResourceReconciler
from cf_provisioner.resources.hyperdrive import HyperdriveConfigResource

if TYPE_CHECKING:
    from cf_provisioner.engine.handlers import EngineContext

_ORIGIN_FIELDS = ("host", "database", "port", "scheme", "user")
_CACHING_FIELDS = ("disabled", "max_age", "stale_while_revalidate")


class HyperdriveConfigHandler(ResourceReconciler["HyperdriveConfigResource"]):
    """CRUD handler for Hyperdrive configurations.

    Updates go through ``edit`` (PATCH) so fields absent from the desired
    state keep their remote values.
    """

    resource_model: ClassVar[type[HyperdriveConfigResource]] = HyperdriveConfigResource
    id_label: ClassVar[str] = "hyperdriveConfigID"

    def _configs(self, ctx: EngineContext) -> Any:
        return ctx.provider.client.hyperdrive.configs

    def _remote_create(self, ctx: EngineContext, body: dict[str, Any]) -> Any:
        return self._configs(ctx).create(account_id=ctx.account_id, **body)

    def _remote_get(self, ctx: EngineContext, remote_id: str) -> Any:
        return self._configs(ctx).get(remote_id, account_id=ctx.account_id)

    def _remote_update(self, ctx: EngineContext, remote_id: str, body: dict[str, Any]) -> Any:
        return self._configs(ctx).edit(remote_id, account_id=ctx.account_id, **body)

    def _remote_delete(self, ctx: EngineContext, remote_id: str) -> None:
        self._configs(ctx).delete(remote_id, account_id=ctx.account_id)

    def _read_attrs(self, raw: dict[str, Any]) -> dict[str, Any]:
        """Extract attributes matching HyperdriveConfigResource model_dump output."""
        origin = raw.get("origin") or {}
        caching = raw.get("caching")
        return {
            "id": raw.get("id", ""),
            "name": raw.get("name", ""),
            # The password is never returned; the reconciler carries it forward.
            "origin": {k: origin[k] for k in _ORIGIN_FIELDS if k in origin},
            "caching": (
                {k: caching[k] for k in _CACHING_FIELDS if k in caching}
                if isinstance(caching, dict)
                else None
            ),
        }
