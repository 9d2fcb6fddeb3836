"""Pages project resource models."""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Literal, Self

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from cf_provisioner.resources.base import Resource
from cf_provisioner.resources.markers import ApiField


class PagesBuildConfig(BaseModel):
    """How Pages builds the project from source."""

    model_config = ConfigDict(extra="forbid")

    build_command: str | None = None
    destination_dir: str | None = None
    root_dir: str | None = None
    web_analytics_tag: str | None = None
    web_analytics_token: str | None = None


class PagesSourceConfig(BaseModel):
    """Repository settings for a Git-connected project."""

    model_config = ConfigDict(extra="forbid")

    owner: str | None = None
    repo_name: str | None = None
    production_branch: str | None = None
    pr_comments_enabled: bool | None = None
    deployments_enabled: bool | None = None


class PagesSource(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["github", "gitlab"] | None = None
    config: PagesSourceConfig | None = None

    @model_validator(mode="after")
    def _config_requires_type(self) -> Self:
        if self.config is not None and self.type is None:
            raise ValueError("'type' is required when 'config' is set")
        return self


def _coerce_env_var(v: Any) -> Any:
    return {"value": v} if isinstance(v, str) else v


class EnvironmentVariable(BaseModel):
    """A plain-text deployment environment variable.

    YAML accepts either ``NAME: value`` or ``NAME: {value: ...}``.
    """

    model_config = ConfigDict(extra="forbid")

    type: Literal["plain_text"] = "plain_text"
    value: str


class PagesDeploymentEnvironment(BaseModel):
    """Settings for one deployment environment (preview or production)."""

    model_config = ConfigDict(extra="forbid")

    environment_variables: Annotated[
        dict[str, Annotated[EnvironmentVariable, BeforeValidator(_coerce_env_var)]] | None,
        ApiField("env_vars"),
    ] = None
    compatibility_date: str | None = Field(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    compatibility_flags: list[str] | None = None


class PagesDeploymentConfigs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    preview: PagesDeploymentEnvironment | None = None
    production: PagesDeploymentEnvironment | None = None


class PagesProjectResource(Resource):
    """A Cloudflare Pages project.

    The project name is also its remote key: Cloudflare addresses Pages
    projects by name, so renaming one means replacing it.
    """

    resource_type: ClassVar[str] = "cloudflare_pages_project"
    namespace: ClassVar[str] = "pages_project"

    name: str = Field(min_length=1, max_length=58, pattern=r"^[a-z0-9][a-z0-9-]*$")
    production_branch: str | None = None
    build_config: PagesBuildConfig | None = None
    source: PagesSource | None = None
    deployment_configs: PagesDeploymentConfigs | None = None
