"""Hyperdrive configuration resource model."""

from __future__ import annotations

from typing import Annotated, ClassVar, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cf_provisioner.resources.base import Resource
from cf_provisioner.resources.markers import ApiField, Sensitive, WriteOnly


class HyperdriveOrigin(BaseModel):
    """Connection details of the origin database.

    ``port`` and ``scheme`` are optional; Cloudflare fills in ``5432`` and
    ``postgres`` when they are absent.
    """

    model_config = ConfigDict(extra="forbid")

    host: str = Field(min_length=1)
    database: str = Field(min_length=1)
    port: int | None = Field(default=None, ge=1, le=65535)
    scheme: Literal["postgres", "postgresql"] | None = None
    user: str | None = None


class HyperdriveCaching(BaseModel):
    """Query caching behaviour.

    Remote defaults: ``disabled=False``, ``max_age=60``,
    ``stale_while_revalidate=15``.
    """

    model_config = ConfigDict(extra="forbid")

    disabled: bool | None = None
    max_age: int | None = Field(default=None, ge=0)
    stale_while_revalidate: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _timings_require_enabled_cache(self) -> Self:
        if self.disabled and (self.max_age is not None or self.stale_while_revalidate is not None):
            raise ValueError(
                "'max_age'/'stale_while_revalidate' cannot be set when caching is disabled"
            )
        return self


class HyperdriveConfigResource(Resource):
    """A Hyperdrive configuration pooling connections to an origin database."""

    resource_type: ClassVar[str] = "cloudflare_hyperdrive_config"
    namespace: ClassVar[str] = "hyperdrive"

    password: Annotated[str, ApiField("origin.password"), Sensitive(), WriteOnly()] = Field(
        min_length=1
    )
    origin: HyperdriveOrigin
    caching: HyperdriveCaching | None = None
