"""Reading cf-provisioner.yaml from disk."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dotenv import dotenv_values
from pydantic import ValidationError
from ruamel.yaml import YAML

from cf_provisioner.config.schema import Config

if TYPE_CHECKING:
    from cf_provisioner.resources.base import Resource

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """The configuration file is unreadable or invalid."""


_PROVIDER_VARIABLES = {
    "account_id": "CLOUDFLARE_ACCOUNT_ID",
    "api_token": "CLOUDFLARE_API_TOKEN",
    "base_url": "CLOUDFLARE_BASE_URL",
}


def provider_settings(declared: Mapping[str, Any], config_dir: Path) -> dict[str, str]:
    """Fill the provider block from YAML, then the environment, then ``.env``.

    The first source that sets a field wins. Values become strings, since
    YAML reads an all-digit account ID as a number.
    """
    env_file = config_dir / ".env"
    from_file = dotenv_values(env_file, encoding="utf-8-sig") if env_file.is_file() else {}
    sources = (
        declared,
        {field: os.environ.get(var) for field, var in _PROVIDER_VARIABLES.items()},
        {field: from_file.get(var) for field, var in _PROVIDER_VARIABLES.items()},
    )

    settings: dict[str, str] = {}
    for field in _PROVIDER_VARIABLES:
        value = next((s[field] for s in sources if s.get(field) is not None), None)
        if value is not None:
            settings[field] = str(value)
    return settings


def name_collisions(resources: Iterable[Resource]) -> list[str]:
    """Pairs of resources that would claim the same remote name."""
    claimed: dict[tuple[str, str], str] = {}
    problems = []
    for resource in resources:
        first = claimed.setdefault((resource.namespace, resource.name), resource.address)
        if first != resource.address:
            problems.append(
                f"{resource.namespace} name '{resource.name}' is declared by both "
                f"{first} and {resource.address}"
            )
    return problems


def load_config(path: Path | str) -> Config:
    """Parse and validate *path*; relative ``state_path`` is taken from its directory."""
    path = Path(path)
    try:
        raw = YAML(typ="safe").load(path)
    except Exception as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a YAML mapping")

    declared = raw.get("provider") or {}
    if not isinstance(declared, dict):
        raise ConfigError(f"{path}: provider must be a mapping")
    raw["provider"] = provider_settings(declared, path.parent)
    try:
        config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    config.config_dir = path.parent
    if not config.state_path.is_absolute():
        config.state_path = path.parent / config.state_path

    if problems := name_collisions(config.resources):
        raise ConfigError("\n".join(problems))

    logger.info("Loaded %d resources from %s", len(config.resources), path)
    return config
