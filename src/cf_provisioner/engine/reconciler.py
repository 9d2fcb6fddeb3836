"""Generic reconciler between a desired-state model and a remote resource.

A reconciler turns the four lifecycle verbs (create, read, update, delete)
plus import into Cloudflare API calls. Subclasses supply only the raw remote
calls and the response-to-attributes mapping; this module owns:

- projecting only *present* desired fields into request bodies,
- read-after-write normalization,
- identity handling (including idempotent delete),
- wrapping client failures with resource context and classifying them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from cf_provisioner.core.provider import classify_error
from cf_provisioner.core.state import ResourceInstance
from cf_provisioner.engine.errors import (
    EmptyResponseError,
    MalformedIdError,
    NotFoundError,
    RemoteError,
)
from cf_provisioner.engine.handlers import EngineContext, ImportedResource, R, ResourceHandler
from cf_provisioner.resources.markers import collect_write_only_fields

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

logger = logging.getLogger(__name__)


def parse_import_id(import_id: str, id_label: str = "resourceID") -> tuple[str, str]:
    """Split ``"<accountID>/<resourceID>"`` into its two components.

    Exactly one ``/`` is allowed and neither side may be empty.
    """
    parts = import_id.split("/")
    if len(parts) != 2 or not all(parts):
        raise MalformedIdError(import_id, f"accountID/{id_label}")
    return parts[0], parts[1]


def response_to_dict(response: Any) -> dict[str, Any]:
    """Normalize a client response (SDK model or plain dict) to a dict."""
    if response is None:
        return {}
    if isinstance(response, dict):
        return response
    return response.model_dump(mode="json", exclude_none=True)


class ResourceReconciler(ResourceHandler[R]):
    """Base class for Cloudflare resource reconcilers.

    Subclasses set ``resource_model`` and implement ``_remote_create``,
    ``_remote_get``, ``_remote_update``, ``_remote_delete`` and
    ``_read_attrs``. The reconciler keeps no state between calls.
    """

    # -- remote calls -----------------------------------------------------

    def _remote_create(self, ctx: EngineContext, body: dict[str, Any]) -> Any:
        raise NotImplementedError

    def _remote_get(self, ctx: EngineContext, remote_id: str) -> Any:
        raise NotImplementedError

    def _remote_update(self, ctx: EngineContext, remote_id: str, body: dict[str, Any]) -> Any:
        raise NotImplementedError

    def _remote_delete(self, ctx: EngineContext, remote_id: str) -> None:
        raise NotImplementedError

    def _read_attrs(self, raw: dict[str, Any]) -> dict[str, Any]:
        """Map a remote response to attributes matching the model's dump shape."""
        raise NotImplementedError

    # -- helpers ------------------------------------------------------------

    def _call(self, operation: str, name: str, fn: Callable[[], Any]) -> Any:
        """Run a client call, translating failures into reconciler errors."""
        try:
            return fn()
        except Exception as exc:
            kind = classify_error(exc)
            if kind == "not_found" and operation in ("read", "delete"):
                raise NotFoundError(
                    operation=operation, resource_type=self.resource_type, name=name
                ) from exc
            raise RemoteError(
                operation=operation,
                resource_type=self.resource_type,
                name=name,
                cause=exc,
                transient=kind == "transient",
            ) from exc

    def _with_write_only(self, attrs: dict[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
        """Carry write-only values the API never echoes back into *attrs*."""
        for field in collect_write_only_fields(self.resource_model):
            if field in source and source[field] is not None:
                attrs[field] = source[field]
        return attrs

    @staticmethod
    def _prior_name(prior: ResourceInstance) -> str:
        name = prior.attributes.get("name")
        return name if isinstance(name, str) and name else prior.key

    def _fetch(self, ctx: EngineContext, remote_id: str, name: str) -> dict[str, Any]:
        response = self._call("read", name, lambda: self._remote_get(ctx, remote_id))
        return self._read_attrs(response_to_dict(response))

    # -- lifecycle verbs ----------------------------------------------------

    def create(self, ctx: EngineContext, desired: R) -> dict[str, Any]:
        body = desired.to_request()
        logger.debug("Creating %s with fields %s", desired.address, sorted(body))
        response = self._call("create", desired.name, lambda: self._remote_create(ctx, body))
        remote_id = self.identity_of(response_to_dict(response))
        if not remote_id:
            raise EmptyResponseError(
                operation="create", resource_type=self.resource_type, name=desired.name
            )
        logger.info("Created %s (id=%s)", desired.address, remote_id)

        attrs = self._fetch(ctx, remote_id, desired.name)
        return self._with_write_only(attrs, desired.model_dump())

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any]:
        if not prior.id:
            raise NotFoundError(
                operation="read", resource_type=self.resource_type, name=self._prior_name(prior)
            )
        attrs = self._fetch(ctx, prior.id, self._prior_name(prior))
        return self._with_write_only(attrs, prior.attributes)

    def update(self, ctx: EngineContext, desired: R, prior: ResourceInstance) -> dict[str, Any]:
        if not prior.id:
            raise NotFoundError(
                operation="update", resource_type=self.resource_type, name=desired.name
            )
        body = desired.to_request()
        logger.debug("Updating %s (id=%s) with fields %s", desired.address, prior.id, sorted(body))
        response = self._call(
            "update", desired.name, lambda: self._remote_update(ctx, prior.id, body)
        )
        remote_id = self.identity_of(response_to_dict(response))
        if not remote_id:
            raise EmptyResponseError(
                operation="update", resource_type=self.resource_type, name=desired.name
            )

        attrs = self._fetch(ctx, remote_id, desired.name)
        return self._with_write_only(attrs, {**prior.attributes, **desired.model_dump()})

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        if not prior.id:
            logger.info("%s has no remote identity; nothing to delete", prior.address)
            return
        logger.info("Deleting %s (id=%s)", prior.address, prior.id)
        remote_id = prior.id
        try:
            self._call(
                "delete", self._prior_name(prior), lambda: self._remote_delete(ctx, remote_id)
            )
        except NotFoundError:
            logger.info("%s already absent remotely", prior.address)
        prior.id = ""

    def import_resource(self, ctx: EngineContext, key: str, import_id: str) -> ImportedResource:
        account_id, remote_id = parse_import_id(import_id, self.id_label)
        logger.debug("Importing %s id %s for account %s", self.resource_type, remote_id, account_id)

        scoped = EngineContext(provider=ctx.provider, account_id=account_id)
        instance = ResourceInstance(
            address=f"{self.resource_type}.{key}",
            resource_type=self.resource_type,
            key=key,
            id=remote_id,
        )
        attrs = self.read(scoped, instance)
        instance.id = self.identity_of(attrs) or remote_id
        instance.touch(attrs)
        return ImportedResource(account_id=account_id, instance=instance)
