from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar

import pytest

from cf_provisioner.core import CloudflareProvider
from cf_provisioner.core.state import State
from cf_provisioner.engine import CloudflareEngine, builtin_registry
from cf_provisioner.engine.engine import differs
from cf_provisioner.engine.errors import (
    ApplyError,
    DependencyCycleError,
    DuplicateAddressError,
    RemoteError,
    StalePlanError,
    StateAccountMismatchError,
    UnknownResourceTypeError,
    ValidationError,
)
from cf_provisioner.engine.types import Action, Plan
from cf_provisioner.resources.base import Resource
from cf_provisioner.resources.hyperdrive import HyperdriveConfigResource
from cf_provisioner.resources.pages_project import PagesProjectResource

ORIGIN = {"host": "h", "database": "d", "port": 5432, "scheme": "postgres", "user": "u"}
HD = "cloudflare_hyperdrive_config"
PAGES = "cloudflare_pages_project"


def _engine(tmp_path: Path, client: Any, account_id: str = "acct123") -> CloudflareEngine:
    return CloudflareEngine(
        provider=CloudflareProvider.from_client(client),
        account_id=account_id,
        state_path=tmp_path / "state.json",
        registry=builtin_registry(),
    )


def _hyperdrive(**data: Any) -> HyperdriveConfigResource:
    return HyperdriveConfigResource.model_validate(
        {"key": "db1", "name": "db1", "password": "pw", "origin": ORIGIN, **data}
    )


def _pages(**data: Any) -> PagesProjectResource:
    return PagesProjectResource.model_validate({"key": "docs", "name": "docs", **data})


class TestDiffers:
    def test_partial_dict_ignores_stored_only_keys(self) -> None:
        assert not differs({"host": "h"}, {"host": "h", "port": 5432})

    def test_nested_dict_difference(self) -> None:
        assert differs({"origin": {"host": "a"}}, {"origin": {"host": "b"}})

    def test_declared_key_missing_in_stored(self) -> None:
        assert differs({"max_age": 60}, {})

    def test_lists_compared_exactly(self) -> None:
        assert differs(["a", "b"], ["b", "a"])

    def test_scalars(self) -> None:
        assert not differs(0, 0)
        assert differs(False, None)


class TestPlanApply:
    def test_create_noop_update_delete_roundtrip(
        self, tmp_path: Path, fake_cloudflare: Any
    ) -> None:
        engine = _engine(tmp_path, fake_cloudflare)

        plan1 = engine.plan([_hyperdrive()])
        assert [c.action for c in plan1.changes] == [Action.CREATE]

        plan_path = tmp_path / "plan.json"
        plan1.write(plan_path)
        engine.apply(Plan.read(plan_path))

        state = State.read(engine.state_path)
        assert state.serial == 1
        inst = state.resources[f"{HD}.db1"]
        assert inst.id
        assert inst.key == "db1"
        assert inst.attributes["origin"] == ORIGIN

        plan2 = engine.plan([_hyperdrive()])
        assert plan2.changes[0].action == Action.NOOP
        engine.apply(plan2)
        assert State.read(engine.state_path).serial == 1  # no-ops leave state alone

        plan3 = engine.plan([_hyperdrive(origin={**ORIGIN, "host": "h2"})])
        change = plan3.changes[0]
        assert change.action == Action.UPDATE
        assert change.diff is not None
        assert set(change.diff) == {"origin"}
        engine.apply(plan3)
        remote = fake_cloudflare.hyperdrive_configs.objects[("acct123", inst.id)]
        assert remote["origin"]["host"] == "h2"

        plan4 = engine.plan([])
        assert [c.action for c in plan4.changes] == [Action.DELETE]
        engine.apply(plan4)
        assert State.read(engine.state_path).resources == {}
        assert fake_cloudflare.hyperdrive_configs.objects == {}

    def test_omitted_optional_fields_do_not_diff(
        self, tmp_path: Path, fake_cloudflare: Any
    ) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        minimal = _hyperdrive(origin={"host": "h", "database": "d"})
        engine.apply(engine.plan([minimal]))

        plan = engine.plan([minimal])
        assert plan.changes[0].action == Action.NOOP

    def test_renaming_under_the_same_label_updates_in_place(
        self, tmp_path: Path, fake_cloudflare: Any
    ) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        engine.apply(engine.plan([_hyperdrive()]))
        remote_id = State.read(engine.state_path).resources[f"{HD}.db1"].id

        plan = engine.plan([_hyperdrive(name="db1-renamed")])
        assert [(c.address, c.action) for c in plan.changes] == [(f"{HD}.db1", Action.UPDATE)]
        assert plan.changes[0].diff == {"name": {"from": "db1", "to": "db1-renamed"}}

        engine.apply(plan)
        inst = State.read(engine.state_path).resources[f"{HD}.db1"]
        assert inst.id == remote_id
        assert inst.attributes["name"] == "db1-renamed"
        assert inst.attributes["origin"] == ORIGIN
        assert list(fake_cloudflare.hyperdrive_configs.objects) == [("acct123", remote_id)]

    def test_relabelled_hyperdrive_is_replaced(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        engine.apply(engine.plan([_hyperdrive()]))

        plan = engine.plan([_hyperdrive(key="primary")])
        assert [(c.address, c.action) for c in plan.changes] == [
            (f"{HD}.primary", Action.CREATE),
            (f"{HD}.db1", Action.DELETE),
        ]
        engine.apply(plan)
        assert set(State.read(engine.state_path).resources) == {f"{HD}.primary"}
        assert len(fake_cloudflare.hyperdrive_configs.objects) == 1

    def test_planned_excludes_local_fields_and_marks_sensitive(
        self, tmp_path: Path, fake_cloudflare: Any
    ) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        change = engine.plan([_hyperdrive(key="primary")]).changes[0]

        assert change.planned is not None
        assert "key" not in change.planned
        assert "depends_on" not in change.planned
        assert change.planned["password"] == "pw"
        assert change.sensitive == ["password"]
        assert change.desired is not None
        assert change.desired["key"] == "primary"

    def test_refresh_drops_resources_deleted_remotely(
        self, tmp_path: Path, fake_cloudflare: Any
    ) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        engine.apply(engine.plan([_hyperdrive()]))
        fake_cloudflare.hyperdrive_configs.objects.clear()

        plan = engine.plan([_hyperdrive()])
        assert plan.changes[0].action == Action.CREATE
        assert State.read(engine.state_path).resources == {}

    def test_no_refresh_skips_remote_reads(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        engine.apply(engine.plan([_hyperdrive()]))
        calls_before = len(fake_cloudflare.hyperdrive_configs.calls)

        engine.plan([_hyperdrive()], refresh=False)
        assert len(fake_cloudflare.hyperdrive_configs.calls) == calls_before

    def test_stale_plan_rejected(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        first = engine.plan([_hyperdrive()])
        second = engine.plan([_hyperdrive()])
        engine.apply(second)

        with pytest.raises(StalePlanError, match="serial"):
            engine.apply(first)

    def test_plan_from_other_lineage_rejected(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        plan = engine.plan([_hyperdrive()])
        State(account_id="acct123").write(engine.state_path)

        with pytest.raises(StalePlanError, match="lineage"):
            engine.apply(plan)

    def test_first_apply_keeps_planned_lineage(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        plan = engine.plan([_hyperdrive()], refresh=False)
        assert not engine.state_path.exists()

        engine.apply(plan)
        assert State.read(engine.state_path).lineage == plan.metadata.state_lineage

    def test_apply_error_carries_partial_result(
        self, tmp_path: Path, fake_cloudflare: Any, api_error: type[Exception]
    ) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        fake_cloudflare.pages_projects.fail_next("create", api_error(503))

        plan = engine.plan([_hyperdrive(), _pages()])
        with pytest.raises(ApplyError) as exc_info:
            engine.apply(plan)

        err = exc_info.value
        assert err.address == f"{PAGES}.docs"
        assert [c.address for c in err.result.applied] == [f"{HD}.db1"]
        assert isinstance(err.__cause__, RemoteError)
        assert err.__cause__.transient is True
        assert set(State.read(engine.state_path).resources) == {f"{HD}.db1"}

    def test_pages_project_identity_is_name(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        engine.apply(engine.plan([_pages(production_branch="main")]))

        inst = State.read(engine.state_path).resources[f"{PAGES}.docs"]
        assert inst.id == "docs"
        assert inst.attributes["subdomain"] == "docs.pages.dev"
        assert engine.plan([_pages(production_branch="main")]).changes[0].action == Action.NOOP


class TestRemoteIdentity:
    def test_new_label_cannot_take_over_a_managed_project(
        self, tmp_path: Path, fake_cloudflare: Any
    ) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        engine.apply(engine.plan([_pages()]))
        calls_before = len(fake_cloudflare.pages_projects.calls)

        with pytest.raises(ValidationError) as exc_info:
            engine.plan([_pages(key="site")])

        [message] = exc_info.value.errors
        assert f"{PAGES}.site" in message
        assert f"{PAGES}.docs" in message
        assert "'docs'" in message
        new_calls = fake_cloudflare.pages_projects.calls[calls_before:]
        assert all(op == "get" for op, _ in new_calls)
        assert ("acct123", "docs") in fake_cloudflare.pages_projects.objects
        assert State.read(engine.state_path).resources[f"{PAGES}.docs"].id == "docs"

    def test_two_new_labels_cannot_share_a_project_name(
        self, tmp_path: Path, fake_cloudflare: Any
    ) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        with pytest.raises(ValidationError, match=rf"{PAGES}\.docs"):
            engine.plan([_pages(), _pages(key="site")])

    def test_pages_project_name_cannot_change(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        engine.apply(engine.plan([_pages()]))

        with pytest.raises(ValidationError, match="cannot change name from 'docs' to 'docs-v2'"):
            engine.plan([_pages(name="docs-v2")])

    def test_destroy_skips_identity_checks(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        engine.apply(engine.plan([_pages()]))

        plan = engine.plan([_pages(key="site")], destroy=True)
        assert [(c.address, c.action) for c in plan.changes] == [(f"{PAGES}.docs", Action.DELETE)]


class TestOrdering:
    def test_depends_on_orders_creates(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        db = _hyperdrive(key="a", depends_on=[f"{PAGES}.docs"])
        plan = engine.plan([db, _pages()])
        assert [c.address for c in plan.changes] == [f"{PAGES}.docs", f"{HD}.a"]

    def test_destroy_runs_in_reverse_dependency_order(
        self, tmp_path: Path, fake_cloudflare: Any
    ) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        site = _pages(depends_on=[f"{HD}.db1"])
        engine.apply(engine.plan([_hyperdrive(), site]))

        plan = engine.plan([], destroy=True)
        assert [c.address for c in plan.changes] == [f"{PAGES}.docs", f"{HD}.db1"]
        engine.apply(plan)
        assert State.read(engine.state_path).resources == {}

    def test_creates_run_before_deletes(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        engine.apply(engine.plan([_hyperdrive(key="zz")]))

        plan = engine.plan([_pages()])
        assert [c.action for c in plan.changes] == [Action.CREATE, Action.DELETE]

    def test_cycle_detected(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        db = _hyperdrive(depends_on=[f"{PAGES}.docs"])
        site = _pages(depends_on=[f"{HD}.db1"])
        with pytest.raises(DependencyCycleError):
            engine.plan([db, site])


class TestPlanValidation:
    def test_unknown_dependency(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        with pytest.raises(ValidationError, match="depends on unknown address"):
            engine.plan([_hyperdrive(depends_on=[f"{PAGES}.missing"])])

    def test_duplicate_address(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        engine = _engine(tmp_path, fake_cloudflare)
        with pytest.raises(DuplicateAddressError):
            engine.plan([_hyperdrive(), _hyperdrive(name="other")])

    def test_unknown_resource_type(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        class Unregistered(Resource):
            resource_type: ClassVar[str] = "cloudflare_worker"
            namespace: ClassVar[str] = "worker"

        engine = _engine(tmp_path, fake_cloudflare)
        with pytest.raises(UnknownResourceTypeError):
            engine.plan([Unregistered(key="w", name="w")])

    def test_state_for_other_account(self, tmp_path: Path, fake_cloudflare: Any) -> None:
        State(account_id="someone-else").write(tmp_path / "state.json")
        engine = _engine(tmp_path, fake_cloudflare)
        with pytest.raises(StateAccountMismatchError):
            engine.plan([_hyperdrive()])
