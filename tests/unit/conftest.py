"""Shared fixtures for unit tests."""

from __future__ import annotations

import copy
import uuid
from typing import TYPE_CHECKING, Any

import pytest

from cf_provisioner.config import load
from cf_provisioner.core import CloudflareProvider
from cf_provisioner.engine.handlers import EngineContext

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from cf_provisioner.config.schema import Config

_CF_ENV_VARS = ("CLOUDFLARE_ACCOUNT_ID", "CLOUDFLARE_API_TOKEN", "CLOUDFLARE_BASE_URL", "CF_LOG")

ACCOUNT_ID = "acct123"


@pytest.fixture(autouse=True)
def _clean_cf_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove CLOUDFLARE_* env vars so unit tests don't leak account config."""
    for var in _CF_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Config]:
    """Factory fixture: write YAML + optional .env, return loaded Config."""

    def _make(yaml_str: str, *, dotenv: str | None = None) -> Config:
        (tmp_path / "config.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load(tmp_path / "config.yaml")

    return _make


# ---------------------------------------------------------------------------
# In-memory Cloudflare client
# ---------------------------------------------------------------------------


class FakeAPIError(Exception):
    """Stand-in for an SDK status error: carries ``status_code`` only."""

    def __init__(self, status_code: int, message: str = "") -> None:
        super().__init__(message or f"HTTP {status_code}")
        self.status_code = status_code


def _merge(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for k, v in patch.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


class FakeCollection:
    """One Cloudflare resource collection (create/get/edit/delete) kept in memory.

    Objects are scoped by account and keyed by ``identity`` (``id`` or
    ``name``). ``shape`` turns a request body into the stored record, adding
    whatever the remote would compute or default.
    """

    def __init__(self, identity: str, shape: Callable[[dict[str, Any]], dict[str, Any]]) -> None:
        self.identity = identity
        self.shape = shape
        self.objects: dict[tuple[str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, Any]] = []
        self.failures: dict[str, Exception] = {}
        self.empty_responses: set[str] = set()

    def fail_next(self, operation: str, exc: Exception) -> None:
        self.failures[operation] = exc

    def _check(self, operation: str) -> None:
        exc = self.failures.pop(operation, None)
        if exc is not None:
            raise exc

    def _respond(self, operation: str, record: dict[str, Any]) -> dict[str, Any]:
        if operation in self.empty_responses:
            return {}
        return copy.deepcopy(record)

    def _lookup(self, account_id: str, remote_id: str) -> dict[str, Any]:
        try:
            return self.objects[(account_id, remote_id)]
        except KeyError:
            raise FakeAPIError(404, f"{remote_id} not found") from None

    def create(self, *, account_id: str, **body: Any) -> dict[str, Any]:
        self.calls.append(("create", copy.deepcopy(body)))
        self._check("create")
        record = self.shape(copy.deepcopy(body))
        self.objects[(account_id, record[self.identity])] = record
        return self._respond("create", record)

    def get(self, remote_id: str, *, account_id: str) -> dict[str, Any]:
        self.calls.append(("get", remote_id))
        self._check("get")
        return copy.deepcopy(self._lookup(account_id, remote_id))

    def edit(self, remote_id: str, *, account_id: str, **body: Any) -> dict[str, Any]:
        self.calls.append(("edit", copy.deepcopy(body)))
        self._check("edit")
        record = _merge(self._lookup(account_id, remote_id), body)
        record.get("origin", {}).pop("password", None)
        self.objects[(account_id, remote_id)] = record
        return self._respond("edit", record)

    def delete(self, remote_id: str, *, account_id: str) -> None:
        self.calls.append(("delete", remote_id))
        self._check("delete")
        self._lookup(account_id, remote_id)
        del self.objects[(account_id, remote_id)]

    def put(self, account_id: str, record: dict[str, Any]) -> None:
        """Seed an object that was created outside the provisioner."""
        self.objects[(account_id, record[self.identity])] = record


def _shape_hyperdrive(body: dict[str, Any]) -> dict[str, Any]:
    origin = dict(body.get("origin", {}))
    origin.pop("password", None)
    origin.setdefault("port", 5432)
    origin.setdefault("scheme", "postgres")
    caching = {"disabled": False, "max_age": 60, "stale_while_revalidate": 15}
    caching.update(body.get("caching") or {})
    return {
        "id": uuid.uuid4().hex,
        "name": body["name"],
        "origin": origin,
        "caching": caching,
    }


def _default_environment() -> dict[str, Any]:
    return {"env_vars": {}, "compatibility_date": "2024-01-01", "compatibility_flags": []}


def _shape_pages(body: dict[str, Any]) -> dict[str, Any]:
    name = body["name"]
    record: dict[str, Any] = {
        "id": str(uuid.uuid4()),
        "name": name,
        "subdomain": f"{name}.pages.dev",
        "domains": [f"{name}.pages.dev"],
        "created_on": "2024-05-01T12:00:00Z",
        "production_branch": body.get("production_branch", "main"),
        "build_config": {"build_command": "", "destination_dir": "", "root_dir": ""},
        "deployment_configs": {
            "preview": _default_environment(),
            "production": _default_environment(),
        },
    }
    return _merge(record, {k: v for k, v in body.items() if k != "name"})


class _Namespace:
    def __init__(self, **collections: FakeCollection) -> None:
        self.__dict__.update(collections)


class FakeCloudflare:
    """Exposes ``hyperdrive.configs`` and ``pages.projects`` like the SDK client."""

    def __init__(self) -> None:
        self.hyperdrive_configs = FakeCollection("id", _shape_hyperdrive)
        self.pages_projects = FakeCollection("name", _shape_pages)
        self.hyperdrive = _Namespace(configs=self.hyperdrive_configs)
        self.pages = _Namespace(projects=self.pages_projects)


@pytest.fixture
def fake_cloudflare() -> FakeCloudflare:
    return FakeCloudflare()


@pytest.fixture
def api_error() -> type[FakeAPIError]:
    return FakeAPIError


@pytest.fixture
def ctx(fake_cloudflare: FakeCloudflare) -> EngineContext:
    return EngineContext(
        provider=CloudflareProvider.from_client(fake_cloudflare),  # type: ignore[arg-type]
        account_id=ACCOUNT_ID,
    )
