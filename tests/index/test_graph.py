"""Tests for the incremental model inheritance index."""

from __future__ import annotations

import random
import textwrap
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from odoolens.config.models import IndexConfig
from odoolens.core.errors import ErrorCode, InternalError
from odoolens.index.graph import IndexState, ModelIndex, _GraphState
from odoolens.index.models import ModelRecord


def record(identifier: str, *parents: str, path: Path | None = None) -> ModelRecord:
    type_name = "".join(part.title() for part in identifier.split("."))
    return ModelRecord(
        identifier=identifier,
        type_name=type_name,
        parent_identifiers=parents,
        path=path,
    )


def assert_edges_consistent(index: ModelIndex) -> None:
    """Every parent->child edge has its child->parent half, and vice versa."""
    children, parents = index.adjacency()
    for parent, kids in children.items():
        assert kids, f"empty children set kept for {parent}"
        for child in kids:
            assert parent in parents.get(child, frozenset()), (parent, child)
    for child, ups in parents.items():
        assert ups, f"empty parents set kept for {child}"
        for parent in ups:
            assert child in children.get(parent, frozenset()), (parent, child)


@pytest.fixture
def empty_index(tmp_path: Path, executor: ThreadPoolExecutor) -> ModelIndex:
    root = tmp_path / "empty"
    root.mkdir()
    index = ModelIndex(root, executor)
    index.rebuild_all().result(timeout=10)
    return index


@pytest.fixture
def addons_index(addons_root: Path, executor: ThreadPoolExecutor) -> ModelIndex:
    index = ModelIndex(addons_root, executor)
    index.rebuild_all().result(timeout=10)
    return index


class TestRecordMutation:
    """add_record / remove_record and the adjacency maps."""

    def test_add_links_declared_parents(self, empty_index: ModelIndex) -> None:
        empty_index.add_record(record("sale.order", "mail.thread", "portal.mixin"))
        assert empty_index.get_parents("sale.order") == {"mail.thread", "portal.mixin"}
        assert empty_index.get_children("mail.thread") == {"sale.order"}
        assert empty_index.get_children("portal.mixin") == {"sale.order"}

    def test_forward_reference_edge_without_record(self, empty_index: ModelIndex) -> None:
        """A parent may be in the graph before its own record is indexed."""
        empty_index.add_record(record("a.b", "a.c"))
        assert empty_index.get_model("a.c") is None
        assert empty_index.get_children("a.c") == {"a.b"}

    def test_overwrite_replaces_edges(self, empty_index: ModelIndex) -> None:
        empty_index.add_record(record("a", "old.parent"))
        empty_index.add_record(record("a", "new.parent"))
        assert empty_index.get_parents("a") == {"new.parent"}
        assert empty_index.get_children("old.parent") == frozenset()
        assert_edges_consistent(empty_index)

    def test_remove_drops_own_edges(self, empty_index: ModelIndex) -> None:
        empty_index.add_record(record("a.c"))
        empty_index.add_record(record("a.b", "a.c"))
        removed = empty_index.remove_record("a.b")
        assert removed is not None and removed.identifier == "a.b"
        assert empty_index.get_children("a.c") == frozenset()
        assert empty_index.get_parents("a.b") == frozenset()

    def test_remove_parent_drops_edges_to_children(self, empty_index: ModelIndex) -> None:
        empty_index.add_record(record("a.c"))
        empty_index.add_record(record("a.b", "a.c"))
        empty_index.remove_record("a.c")
        assert empty_index.get_children("a.c") == frozenset()
        assert empty_index.get_parents("a.b") == frozenset()
        child = empty_index.get_model("a.b")
        assert child is not None
        assert child.parent_identifiers == ("a.c",)
        assert_edges_consistent(empty_index)

    def test_readding_parent_restores_edges(self, empty_index: ModelIndex) -> None:
        empty_index.add_record(record("a.c"))
        empty_index.add_record(record("a.b", "a.c"))
        empty_index.remove_record("a.c")
        empty_index.add_record(record("a.c"))
        assert empty_index.get_children("a.c") == {"a.b"}
        assert empty_index.get_parents("a.b") == {"a.c"}

    def test_remove_absent_is_noop(self, empty_index: ModelIndex) -> None:
        assert empty_index.remove_record("missing") is None
        assert empty_index.get_all_models() == frozenset()

    def test_descendants_transitive_and_cycle_safe(self, empty_index: ModelIndex) -> None:
        empty_index.add_record(record("a", "b"))
        empty_index.add_record(record("b", "a"))
        empty_index.add_record(record("c", "b"))
        assert empty_index.get_descendants("a") == {"b", "c"}
        assert empty_index.get_descendants("c") == frozenset()

    def test_edges_consistent_under_random_sequences(self, empty_index: ModelIndex) -> None:
        rng = random.Random(20240611)
        names = [f"m{i}" for i in range(8)]
        for _ in range(300):
            identifier = rng.choice(names)
            if rng.random() < 0.6:
                parents = tuple(rng.sample(names, rng.randint(0, 3)))
                empty_index.add_record(record(identifier, *parents))
            else:
                empty_index.remove_record(identifier)
            assert_edges_consistent(empty_index)

        # Every indexed record's edge to an indexed parent is present
        models = {r.identifier: r for r in empty_index.get_all_models()}
        for identifier, rec in models.items():
            for parent in rec.parent_identifiers:
                if parent in models:
                    assert identifier in empty_index.get_children(parent)


class TestGraphState:
    def test_replace_file_reports_descendants(self) -> None:
        path = Path("/addons/base/models/a.py")
        state = _GraphState()
        state.add(record("a", path=path))
        state.add(record("b", "a"))
        state.add(record("c", "b"))
        affected = state.replace_file(path, [record("a", path=path)])
        assert affected == {"a", "b", "c"}

    def test_replace_file_with_nothing_removes(self) -> None:
        path = Path("/addons/base/models/a.py")
        state = _GraphState()
        state.add(record("a", path=path))
        state.add(record("x", path=path))
        state.replace_file(path, [])
        assert state.models == {}
        assert state.by_file == {}

    def test_shared_identifier_survives_while_declared(self) -> None:
        base = Path("/addons/base/models/partner.py")
        ext = Path("/addons/ext/models/partner.py")
        state = _GraphState()
        state.add(record("res.partner", path=base))
        state.add(record("res.partner", "res.partner", "mail.thread", path=ext))
        assert state.models["res.partner"].path == ext
        assert state.children["mail.thread"] == {"res.partner"}

        state.replace_file(ext, [])
        assert state.models["res.partner"].path == base
        assert "mail.thread" not in state.children
        assert state.by_file == {base: {"res.partner"}}

        state.replace_file(base, [])
        assert state.models == {}
        assert state.declarers == {}

    def test_retracting_shadowed_declaration_keeps_visible_record(self) -> None:
        base = Path("/addons/base/models/partner.py")
        ext = Path("/addons/ext/models/partner.py")
        state = _GraphState()
        state.add(record("res.partner", path=base))
        state.add(record("res.partner", "mail.thread", path=ext))
        state.add(record("res.users", "res.partner"))

        affected = state.replace_file(base, [])
        assert affected == {"res.partner", "res.users"}
        assert state.models["res.partner"].path == ext
        assert state.children["res.partner"] == {"res.users"}


class TestRebuild:
    def test_indexes_all_models(self, addons_index: ModelIndex) -> None:
        identifiers = {r.identifier for r in addons_index.get_all_models()}
        assert identifiers == {"res.partner", "res.company", "mail.thread", "sale.order"}
        assert addons_index.state is IndexState.READY
        assert addons_index.is_ready()

    def test_rebuild_stats(self, addons_root: Path, executor: ThreadPoolExecutor) -> None:
        (addons_root / "base" / "models" / "broken.py").write_bytes(b"\xff\xfe\x00 class")
        index = ModelIndex(addons_root, executor)
        stats = index.rebuild_all().result(timeout=10)
        assert stats.files_processed == 5
        assert stats.models_indexed == 4
        assert stats.duration_seconds >= 0

    def test_idempotent(self, addons_index: ModelIndex) -> None:
        models_before = addons_index.get_all_models()
        adjacency_before = addons_index.adjacency()
        addons_index.rebuild_all().result(timeout=10)
        assert addons_index.get_all_models() == models_before
        assert addons_index.adjacency() == adjacency_before

    def test_records_carry_paths(self, addons_root: Path, addons_index: ModelIndex) -> None:
        partner_file = addons_root / "base" / "models" / "res_partner.py"
        in_file = {r.identifier for r in addons_index.records_in_file(partner_file)}
        assert in_file == {"res.partner", "res.company"}
        partner = addons_index.get_model("res.partner")
        assert partner is not None
        assert partner.path == partner_file
        assert partner.line == 4

    def test_concurrent_rebuilds_coalesce(
        self, addons_root: Path, executor: ThreadPoolExecutor
    ) -> None:
        index = ModelIndex(addons_root, executor)
        first = index.rebuild_all()
        second = index.rebuild_all()
        assert first is second or first.done()
        first.result(timeout=10)
        second.result(timeout=10)

    def test_pruned_dirs_not_indexed(self, addons_root: Path, executor: ThreadPoolExecutor) -> None:
        hidden = addons_root / "node_modules" / "x.py"
        hidden.parent.mkdir()
        hidden.write_text("class X(models.Model):\n    _name = 'x'\n")
        index = ModelIndex(addons_root, executor)
        index.rebuild_all().result(timeout=10)
        assert index.get_model("x") is None

    def test_extra_excluded_dirs(self, addons_root: Path, executor: ThreadPoolExecutor) -> None:
        index = ModelIndex(
            addons_root, executor, config=IndexConfig(extra_excluded_dirs=["sale"])
        )
        index.rebuild_all().result(timeout=10)
        assert index.get_model("sale.order") is None
        assert index.get_model("res.partner") is not None

    def test_read_before_build_starts_it(
        self, addons_root: Path, executor: ThreadPoolExecutor
    ) -> None:
        """A read on a fresh index triggers the first build and waits for it."""
        index = ModelIndex(addons_root, executor)
        assert index.state is IndexState.EMPTY
        assert index.get_model("res.partner") is not None

    def test_read_before_ready_is_bounded(self, addons_root: Path) -> None:
        """With no worker free, reads give up after ready_wait_sec and answer empty."""
        gate = threading.Event()
        with ThreadPoolExecutor(max_workers=1) as pool:
            pool.submit(gate.wait, 10)
            index = ModelIndex(addons_root, pool, config=IndexConfig(ready_wait_sec=0.05))
            try:
                assert index.get_model("res.partner") is None
                assert index.state is IndexState.INDEXING
            finally:
                gate.set()
            assert index.wait_until_ready(timeout=10)
        assert index.get_model("res.partner") is not None

    def test_failed_rebuild_raises_internal_error(
        self, addons_root: Path, executor: ThreadPoolExecutor, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken_walk(*_args: object, **_kwargs: object) -> list[Path]:
            raise OSError("walk failed")

        monkeypatch.setattr("odoolens.index.graph.iter_source_files", broken_walk)
        index = ModelIndex(addons_root, executor)
        with pytest.raises(InternalError) as exc_info:
            index.rebuild_all().result(timeout=10)
        assert exc_info.value.code is ErrorCode.INTERNAL_ERROR
        assert exc_info.value.details["error"] == "walk failed"
        assert index.state is IndexState.EMPTY
        assert index.wait_until_ready(0)


class TestIncrementalUpdates:
    def test_scenario_remove_parent_file(
        self, tmp_path: Path, executor: ThreadPoolExecutor
    ) -> None:
        """Removing a parent's file drops it and its edges; the child stays."""
        child_file = tmp_path / "ab.py"
        parent_file = tmp_path / "ac.py"
        child_file.write_text(
            "class AB(models.Model):\n    _name = 'a.b'\n    _inherit = 'a.c'\n"
            "    foo = fields.Char()\n"
        )
        parent_file.write_text(
            "class AC(models.Model):\n    _name = 'a.c'\n"
            "    bar = fields.Integer(required=True)\n"
        )
        index = ModelIndex(tmp_path, executor)
        index.rebuild_all().result(timeout=10)
        assert index.get_children("a.c") == {"a.b"}

        parent_file.unlink()
        index.update_for_files([parent_file])

        assert {r.identifier for r in index.get_all_models()} == {"a.b"}
        assert index.get_children("a.c") == frozenset()
        child = index.get_model("a.b")
        assert child is not None
        assert child.parent_identifiers == ("a.c",)
        assert_edges_consistent(index)

    def test_removing_overriding_file_falls_back_to_base_declaration(
        self, tmp_path: Path, executor: ThreadPoolExecutor
    ) -> None:
        base_file = tmp_path / "base" / "models.py"
        ext_file = tmp_path / "ext" / "models.py"
        base_file.parent.mkdir()
        ext_file.parent.mkdir()
        base_file.write_text(
            "class Partner(models.Model):\n    _name = 'res.partner'\n    name = fields.Char()\n"
        )
        ext_file.write_text(
            "class Partner(models.Model):\n    _name = 'res.partner'\n"
            "    _inherit = 'res.partner'\n    vat = fields.Char()\n"
        )
        index = ModelIndex(tmp_path, executor)
        index.rebuild_all().result(timeout=10)
        assert index.get_model("res.partner") is not None

        ext_file.unlink()
        index.update_for_files([ext_file])

        partner = index.get_model("res.partner")
        assert partner is not None
        assert partner.path == base_file.resolve()
        assert partner.parent_identifiers == ()
        assert index.get_parents("res.partner") == frozenset()
        assert_edges_consistent(index)

    def test_editing_overriding_file_keeps_shared_identifier(
        self, tmp_path: Path, executor: ThreadPoolExecutor
    ) -> None:
        base_file = tmp_path / "base.py"
        ext_file = tmp_path / "ext.py"
        base_file.write_text("class Partner(models.Model):\n    _name = 'res.partner'\n")
        ext_file.write_text("class Partner(models.Model):\n    _name = 'res.partner'\n")
        index = ModelIndex(tmp_path, executor)
        index.rebuild_all().result(timeout=10)

        ext_file.write_text("class Other(models.Model):\n    _name = 'res.other'\n")
        index.update_for_files([ext_file])

        assert {r.identifier for r in index.get_all_models()} == {"res.partner", "res.other"}
        assert {r.identifier for r in index.records_in_file(base_file)} == {"res.partner"}

    def test_update_picks_up_new_and_changed_models(
        self, addons_root: Path, addons_index: ModelIndex
    ) -> None:
        sale_file = addons_root / "sale" / "models" / "sale_order.py"
        sale_file.write_text(
            textwrap.dedent(
                """
                class SaleOrder(models.Model):
                    _name = 'sale.order'
                    _inherit = ['mail.thread', 'res.partner']

                class SaleOrderLine(models.Model):
                    _name = 'sale.order.line'
                """
            )
        )
        stats = addons_index.update_for_files([sale_file])
        assert stats.files_processed == 1
        assert stats.models_indexed == 2
        assert addons_index.get_model("sale.order.line") is not None
        assert addons_index.get_children("res.partner") == {"sale.order"}
        assert_edges_consistent(addons_index)

    def test_schedule_update_runs_in_background(
        self, addons_root: Path, addons_index: ModelIndex
    ) -> None:
        new_file = addons_root / "sale" / "models" / "extra.py"
        new_file.write_text("class X(models.Model):\n    _name = 'sale.extra'\n")
        addons_index.schedule_update([new_file]).result(timeout=10)
        assert addons_index.get_model("sale.extra") is not None

    def test_non_source_paths_ignored(self, addons_root: Path, addons_index: ModelIndex) -> None:
        stats = addons_index.update_for_files(
            [addons_root / "base" / "__manifest__.py", addons_root / "README.md"]
        )
        assert stats.files_processed == 0

    def test_stale_update_dropped(self, addons_root: Path, addons_index: ModelIndex) -> None:
        """An update superseded by a later one for the same file does not commit."""
        path = (addons_root / "sale" / "models" / "sale_order.py").resolve()
        older = addons_index._begin_update([path])
        newer = addons_index._begin_update([path])
        try:
            path.write_text("class S(models.Model):\n    _name = 'sale.newer'\n")
            assert addons_index._apply_update(newer).files_processed == 1
            path.write_text("class S(models.Model):\n    _name = 'sale.older'\n")
            assert addons_index._apply_update(older).files_processed == 0
        finally:
            addons_index._end_update()
            addons_index._end_update()
        assert addons_index.get_model("sale.newer") is not None
        assert addons_index.get_model("sale.older") is None

    def test_oversized_file_update_removes_models(
        self, addons_root: Path, executor: ThreadPoolExecutor
    ) -> None:
        index = ModelIndex(addons_root, executor, config=IndexConfig(max_file_size_mb=1))
        index.rebuild_all().result(timeout=10)
        sale_file = addons_root / "sale" / "models" / "sale_order.py"
        sale_file.write_text(sale_file.read_text() + "#" * (1024 * 1024))
        stats = index.update_for_files([sale_file])
        assert stats.files_skipped == 1
        assert index.get_model("sale.order") is None


class TestListeners:
    def test_update_notifies_affected_descendants(
        self, addons_root: Path, addons_index: ModelIndex
    ) -> None:
        seen: list[frozenset[str]] = []
        addons_index.add_listener(seen.append)
        mail_file = addons_root / "mail" / "models" / "mail_thread.py"
        addons_index.update_for_files([mail_file])
        assert seen == [frozenset({"mail.thread", "sale.order"})]

    def test_failing_listener_does_not_break_updates(self, empty_index: ModelIndex) -> None:
        def broken(_: frozenset[str]) -> None:
            raise RuntimeError("listener bug")

        seen: list[frozenset[str]] = []
        empty_index.add_listener(broken)
        empty_index.add_listener(seen.append)
        empty_index.add_record(record("a"))
        assert seen == [frozenset({"a"})]

    def test_removed_listener_not_called(self, empty_index: ModelIndex) -> None:
        seen: list[frozenset[str]] = []
        empty_index.add_listener(seen.append)
        empty_index.remove_listener(seen.append)
        empty_index.add_record(record("a"))
        assert seen == []
