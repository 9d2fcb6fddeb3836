"""Shared shape of every resource declared in cf-provisioner.yaml."""

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field

from cf_provisioner.resources.markers import build_request

LABEL_PATTERN = r"^[a-zA-Z0-9_-]+$"


class Resource(BaseModel):
    """Desired state of one Cloudflare object.

    ``key`` is the label the user gives the resource in configuration. It
    forms the address and never changes when the remote ``name`` does, so
    editing ``name`` under the same label plans an in-place update.
    """

    model_config = ConfigDict(extra="forbid")

    resource_type: ClassVar[str]
    namespace: ClassVar[str]
    # Never sent to Cloudflare nor compared against remote attributes.
    local_fields: ClassVar[frozenset[str]] = frozenset({"key", "depends_on"})

    key: str = Field(pattern=LABEL_PATTERN)
    name: str = Field(min_length=1)
    depends_on: list[str] = []

    def to_request(self) -> dict[str, Any]:
        """Body for a create or edit call."""
        return build_request(self)

    def planned_attributes(self) -> dict[str, Any]:
        """Declared attributes, minus the local-only bookkeeping fields."""
        return self.model_dump(exclude_none=True, exclude={"address", *self.local_fields})

    @computed_field
    @property
    def address(self) -> str:
        return f"{self.resource_type}.{self.key}"
