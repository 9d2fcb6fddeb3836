"""Pages project reconciler implementing CRUD via the Cloudflare pages API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from cf_provisioner.engine.reconciler import ResourceReconciler
from cf_provisioner.resources.pages_project import PagesProjectResource

if TYPE_CHECKING:
    from cf_provisioner.engine.handlers import EngineContext

_BUILD_FIELDS = (
    "build_command",
    "destination_dir",
    "root_dir",
    "web_analytics_tag",
    "web_analytics_token",
)
_SOURCE_CONFIG_FIELDS = (
    "owner",
    "repo_name",
    "production_branch",
    "pr_comments_enabled",
    "deployments_enabled",
)
_ENVIRONMENTS = ("preview", "production")


def _pick(raw: Any, fields: tuple[str, ...]) -> dict[str, Any] | None:
    if not isinstance(raw, dict):
        return None
    return {k: raw[k] for k in fields if raw.get(k) is not None}


def _read_source(raw: Any) -> dict[str, Any] | None:
    if not isinstance(raw, dict):
        return None
    return {"type": raw.get("type"), "config": _pick(raw.get("config"), _SOURCE_CONFIG_FIELDS)}


def _read_environment(raw: Any) -> dict[str, Any] | None:
    if not isinstance(raw, dict):
        return None
    env_vars = raw.get("env_vars") or {}
    return {
        "environment_variables": {
            name: {"type": var.get("type", "plain_text"), "value": var.get("value")}
            for name, var in env_vars.items()
            if isinstance(var, dict)
        },
        "compatibility_date": raw.get("compatibility_date"),
        "compatibility_flags": list(raw.get("compatibility_flags") or []),
    }


class PagesProjectHandler(ResourceReconciler["PagesProjectResource"]):
    """CRUD handler for Pages projects.

    Cloudflare addresses Pages projects by name, so the name is the remote
    identity; the opaque project UUID is kept as the ``id`` attribute.
    """

    resource_model: ClassVar[type[PagesProjectResource]] = PagesProjectResource
    identity_field: ClassVar[str] = "name"
    id_label: ClassVar[str] = "projectName"

    def _projects(self, ctx: EngineContext) -> Any:
        return ctx.provider.client.pages.projects

    def _remote_create(self, ctx: EngineContext, body: dict[str, Any]) -> Any:
        return self._projects(ctx).create(account_id=ctx.account_id, **body)

    def _remote_get(self, ctx: EngineContext, remote_id: str) -> Any:
        return self._projects(ctx).get(remote_id, account_id=ctx.account_id)

    def _remote_update(self, ctx: EngineContext, remote_id: str, body: dict[str, Any]) -> Any:
        return self._projects(ctx).edit(remote_id, account_id=ctx.account_id, **body)

    def _remote_delete(self, ctx: EngineContext, remote_id: str) -> None:
        self._projects(ctx).delete(remote_id, account_id=ctx.account_id)

    def _read_attrs(self, raw: dict[str, Any]) -> dict[str, Any]:
        """Extract attributes matching PagesProjectResource model_dump output.

        ``id``, ``subdomain``, ``domains`` and ``created_on`` are computed by
        Cloudflare and exist only in state.
        """
        configs = raw.get("deployment_configs")
        return {
            "id": raw.get("id", ""),
            "name": raw.get("name", ""),
            "subdomain": raw.get("subdomain", ""),
            "domains": list(raw.get("domains") or []),
            "created_on": raw.get("created_on"),
            "production_branch": raw.get("production_branch"),
            "build_config": _pick(raw.get("build_config"), _BUILD_FIELDS),
            "source": _read_source(raw.get("source")),
            "deployment_configs": (
                {env: _read_environment(configs.get(env)) for env in _ENVIRONMENTS}
                if isinstance(configs, dict)
                else None
            ),
        }
