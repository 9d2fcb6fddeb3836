"""Shape of cf-provisioner.yaml."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cf_provisioner.resources.base import LABEL_PATTERN
from cf_provisioner.resources.base import Resource  # noqa: TC001 - Pydantic needs this at runtime
from cf_provisioner.resources.hyperdrive import (
    HyperdriveConfigResource,  # noqa: TC001 - Pydantic needs this at runtime
)
from cf_provisioner.resources.pages_project import (
    PagesProjectResource,  # noqa: TC001 - Pydantic needs this at runtime
)

_LABEL = re.compile(LABEL_PATTERN)


class ProviderConfig(BaseSettings):
    """Account and credentials; unset fields fall back to ``CLOUDFLARE_*`` variables.

    Keep ``api_token`` out of YAML and in ``CLOUDFLARE_API_TOKEN``.
    """

    model_config = SettingsConfigDict(env_prefix="CLOUDFLARE_")

    account_id: str
    api_token: SecretStr | None = None
    base_url: str | None = None


def _labelled(section: Any) -> Any:
    """Expand ``{label: settings}`` into resources whose ``key`` is the label.

    Lists pass through untouched; each entry then has to carry its own
    ``key``.
    """
    if section is None:
        return []
    if not isinstance(section, dict):
        return section
    entries = []
    for label, settings in section.items():
        label = str(label)
        if not _LABEL.match(label):
            raise ValueError(f"resource label {label!r} may only use letters, digits, '_' and '-'")
        settings = settings or {}
        if isinstance(settings, dict) and "key" in settings:
            raise ValueError(f"{label}: drop 'key', the label above already sets it")
        entries.append({**settings, "key": label} if isinstance(settings, dict) else settings)
    return entries


class Config(BaseModel):
    """A validated cf-provisioner.yaml.

    Resource sections map a label to the resource's settings::

        hyperdrive_configs:
          primary:
            name: app-db
            ...

    The label gives the address (``cloudflare_hyperdrive_config.primary``)
    and ties the entry to its state, so a Hyperdrive ``name`` can change
    in place.
    """

    provider: ProviderConfig
    state_path: Path = Path(".cf-state.json")
    hyperdrive_configs: Annotated[list[HyperdriveConfigResource], BeforeValidator(_labelled)] = []
    pages_projects: Annotated[list[PagesProjectResource], BeforeValidator(_labelled)] = []
    config_dir: Path = Path()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def resources(self) -> list[Resource]:
        return [*self.hyperdrive_configs, *self.pages_projects]
