"""The contract between the engine and per-type resource handlers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from cf_provisioner.resources.base import Resource

if TYPE_CHECKING:
    from cf_provisioner.core import CloudflareProvider
    from cf_provisioner.core.state import ResourceInstance

R = TypeVar("R", bound=Resource)


@dataclass(frozen=True)
class EngineContext:
    provider: CloudflareProvider
    account_id: str


@dataclass(frozen=True)
class ImportedResource:
    """An adopted remote object and the account its import ID named."""

    account_id: str
    instance: ResourceInstance


class ResourceHandler(ABC, Generic[R]):
    """Manages one resource type.

    ``identity_field`` is the attribute Cloudflare addresses the object by
    and ``id_label`` is how import IDs spell it (``<accountID>/<id_label>``).
    """

    resource_model: ClassVar[type[Resource]]
    identity_field: ClassVar[str] = "id"
    id_label: ClassVar[str] = "resourceID"

    @property
    def resource_type(self) -> str:
        return self.resource_model.resource_type

    def planned_identity(self, desired: R) -> str | None:
        """Identity *desired* will have once created, when the user chooses it.

        ``None`` means Cloudflare assigns the identity (Hyperdrive's UUIDs).
        """
        if self.identity_field not in type(desired).model_fields:
            return None
        return getattr(desired, self.identity_field)

    def identity_of(self, attributes: dict[str, Any]) -> str:
        value = attributes.get(self.identity_field)
        return value if isinstance(value, str) else ""

    @abstractmethod
    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any]:
        """Current attributes; raise ``NotFoundError`` if the object is gone."""

    @abstractmethod
    def create(self, ctx: EngineContext, desired: R) -> dict[str, Any]: ...

    @abstractmethod
    def update(self, ctx: EngineContext, desired: R, prior: ResourceInstance) -> dict[str, Any]: ...

    @abstractmethod
    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        """Remove the object; an object already gone is not an error."""

    @abstractmethod
    def import_resource(self, ctx: EngineContext, key: str, import_id: str) -> ImportedResource: ...
