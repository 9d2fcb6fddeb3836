"""Tests for the PagesProjectHandler."""

from __future__ import annotations

from typing import Any

import pytest

from cf_provisioner.core.state import ResourceInstance
from cf_provisioner.engine.errors import MalformedIdError, NotFoundError
from cf_provisioner.engine.handlers import EngineContext
from cf_provisioner.engine.pages_project_handler import PagesProjectHandler
from cf_provisioner.resources.pages_project import PagesProjectResource


@pytest.fixture
def handler() -> PagesProjectHandler:
    return PagesProjectHandler()


def _desired(**data: Any) -> PagesProjectResource:
    return PagesProjectResource.model_validate({"key": "docs", "name": "docs", **data})


def _instance(attrs: dict[str, Any]) -> ResourceInstance:
    return ResourceInstance(
        address="cloudflare_pages_project.docs",
        resource_type="cloudflare_pages_project",
        key="docs",
        id=attrs.get("name", ""),
        attributes=attrs,
    )


class TestReadAttrs:
    def test_each_environment_read_from_its_own_block(self, handler: PagesProjectHandler) -> None:
        raw = {
            "id": "uuid-1",
            "name": "docs",
            "deployment_configs": {
                "preview": {
                    "env_vars": {"A": {"type": "plain_text", "value": "p"}},
                    "compatibility_date": "2024-01-01",
                    "compatibility_flags": ["preview_flag"],
                },
                "production": {
                    "env_vars": {"A": {"type": "plain_text", "value": "q"}},
                    "compatibility_date": "2024-02-02",
                    "compatibility_flags": ["nodejs_compat"],
                },
            },
        }
        configs = handler._read_attrs(raw)["deployment_configs"]
        assert configs["production"] == {
            "environment_variables": {"A": {"type": "plain_text", "value": "q"}},
            "compatibility_date": "2024-02-02",
            "compatibility_flags": ["nodejs_compat"],
        }
        assert configs["preview"]["compatibility_flags"] == ["preview_flag"]

    def test_web_analytics_token_from_its_own_field(self, handler: PagesProjectHandler) -> None:
        raw = {
            "name": "docs",
            "build_config": {"web_analytics_tag": "tag-1", "web_analytics_token": "tok-1"},
        }
        build = handler._read_attrs(raw)["build_config"]
        assert build == {"web_analytics_tag": "tag-1", "web_analytics_token": "tok-1"}

    def test_computed_fields(self, handler: PagesProjectHandler) -> None:
        attrs = handler._read_attrs(
            {
                "id": "uuid-1",
                "name": "docs",
                "subdomain": "docs.pages.dev",
                "domains": ["docs.pages.dev", "docs.example.com"],
                "created_on": "2024-05-01T12:00:00Z",
            }
        )
        assert attrs["id"] == "uuid-1"
        assert attrs["subdomain"] == "docs.pages.dev"
        assert attrs["domains"] == ["docs.pages.dev", "docs.example.com"]
        assert attrs["created_on"] == "2024-05-01T12:00:00Z"
        assert attrs["source"] is None
        assert attrs["deployment_configs"] is None


class TestLifecycle:
    def test_create_uses_name_as_identity(
        self, handler: PagesProjectHandler, ctx: EngineContext, fake_cloudflare: Any
    ) -> None:
        attrs = handler.create(ctx, _desired(production_branch="main"))

        assert attrs["name"] == "docs"
        assert attrs["id"]
        assert attrs["subdomain"] == "docs.pages.dev"
        assert fake_cloudflare.pages_projects.calls[1] == ("get", "docs")

    def test_create_sends_env_vars(
        self, handler: PagesProjectHandler, ctx: EngineContext, fake_cloudflare: Any
    ) -> None:
        desired = _desired(
            deployment_configs={"production": {"environment_variables": {"API": "https://x"}}}
        )
        attrs = handler.create(ctx, desired)

        _, body = fake_cloudflare.pages_projects.calls[0]
        assert body["deployment_configs"] == {
            "production": {"env_vars": {"API": {"type": "plain_text", "value": "https://x"}}}
        }
        production = attrs["deployment_configs"]["production"]
        assert production["environment_variables"] == {
            "API": {"type": "plain_text", "value": "https://x"}
        }

    def test_update_patches_present_fields(
        self, handler: PagesProjectHandler, ctx: EngineContext, fake_cloudflare: Any
    ) -> None:
        prior = _instance(handler.create(ctx, _desired(build_config={"build_command": "make"})))

        attrs = handler.update(ctx, _desired(production_branch="release"), prior)

        op, body = fake_cloudflare.pages_projects.calls[-2]
        assert op == "edit"
        assert body == {"name": "docs", "production_branch": "release"}
        assert attrs["production_branch"] == "release"
        assert attrs["build_config"]["build_command"] == "make"

    def test_delete_then_read(
        self, handler: PagesProjectHandler, ctx: EngineContext
    ) -> None:
        prior = _instance(handler.create(ctx, _desired()))
        handler.delete(ctx, prior)
        with pytest.raises(NotFoundError):
            handler.read(ctx, _instance({"name": "docs"}))

    def test_import_by_project_name(
        self, handler: PagesProjectHandler, ctx: EngineContext, fake_cloudflare: Any
    ) -> None:
        fake_cloudflare.pages_projects.put("acct123", {"id": "uuid-9", "name": "blog"})

        imported = handler.import_resource(ctx, "blog", "acct123/blog")

        assert imported.instance.id == "blog"
        assert imported.instance.attributes["id"] == "uuid-9"

    def test_import_malformed(self, handler: PagesProjectHandler, ctx: EngineContext) -> None:
        with pytest.raises(MalformedIdError, match="accountID/projectName"):
            handler.import_resource(ctx, "blog", "acct123/blog/extra")
