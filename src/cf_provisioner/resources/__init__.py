"""Cloudflare resource definitions."""

from cf_provisioner.resources.base import Resource
from cf_provisioner.resources.hyperdrive import (
    HyperdriveCaching,
    HyperdriveConfigResource,
    HyperdriveOrigin,
)
from cf_provisioner.resources.pages_project import (
    EnvironmentVariable,
    PagesBuildConfig,
    PagesDeploymentConfigs,
    PagesDeploymentEnvironment,
    PagesProjectResource,
    PagesSource,
    PagesSourceConfig,
)

__all__ = [
    "EnvironmentVariable",
    "HyperdriveCaching",
    "HyperdriveConfigResource",
    "HyperdriveOrigin",
    "PagesBuildConfig",
    "PagesDeploymentConfigs",
    "PagesDeploymentEnvironment",
    "PagesProjectResource",
    "PagesSource",
    "PagesSourceConfig",
    "Resource",
]
