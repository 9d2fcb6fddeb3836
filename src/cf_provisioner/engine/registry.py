"""Lookup from resource type to the handler that manages it."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from cf_provisioner.engine.errors import UnknownResourceTypeError
from cf_provisioner.engine.handlers import ResourceHandler
from cf_provisioner.resources.base import Resource


class ResourceTypeRegistry:
    """Handlers keyed by the ``resource_type`` of their ``resource_model``."""

    def __init__(self, handlers: Iterable[ResourceHandler[Any]] = ()) -> None:
        self._handlers: dict[str, ResourceHandler[Any]] = {}
        for handler in handlers:
            self.add(handler)

    def add(self, handler: ResourceHandler[Any]) -> None:
        resource_type = getattr(getattr(handler, "resource_model", None), "resource_type", None)
        if not resource_type:
            raise ValueError(f"{type(handler).__name__} has no resource_model with a resource_type")
        if resource_type in self._handlers:
            raise ValueError(f"Resource type already registered: {resource_type}")
        self._handlers[resource_type] = handler

    def handler(self, resource_type: str) -> ResourceHandler[Any]:
        try:
            return self._handlers[resource_type]
        except KeyError:
            raise UnknownResourceTypeError(resource_type) from None

    def model(self, resource_type: str) -> type[Resource]:
        return self.handler(resource_type).resource_model


def builtin_registry() -> ResourceTypeRegistry:
    """A fresh registry holding the Hyperdrive and Pages handlers."""
    from cf_provisioner.engine.hyperdrive_handler import HyperdriveConfigHandler
    from cf_provisioner.engine.pages_project_handler import PagesProjectHandler

    return ResourceTypeRegistry([HyperdriveConfigHandler(), PagesProjectHandler()])
