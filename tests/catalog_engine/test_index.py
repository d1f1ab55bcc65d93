"""Tests for CategoryIndex."""

from catalog_engine.diagnostics import Diagnostic
from catalog_engine.index import CategoryIndex
from catalog_engine.schemas import Category
from shared.types import DiagnosticKind


def cat(id: str, parent: str | None = None, **kwargs) -> Category:
    return Category(id=id, name=kwargs.pop("name", id.upper()), parent_id=parent, **kwargs)


class TestBuild:
    """Tests for CategoryIndex.build."""

    def test_lookup_by_id(self) -> None:
        index = CategoryIndex.build([cat("a"), cat("b", "a")])
        assert index.by_id("b").parent_id == "a"
        assert index.by_id("missing") is None

    def test_children_buckets_in_input_order(self) -> None:
        index = CategoryIndex.build([cat("a"), cat("c", "a"), cat("b", "a")])
        assert [c.id for c in index.children_of("a")] == ["c", "b"]
        assert index.children_of("c") == []

    def test_roots_bucket(self) -> None:
        index = CategoryIndex.build([cat("a"), cat("b"), cat("c", "a")])
        assert [c.id for c in index.children_of(None)] == ["a", "b"]
        assert [c.id for c in index.roots()] == ["a", "b"]

    def test_len_contains_iter(self) -> None:
        index = CategoryIndex.build([cat("a"), cat("b", "a")])
        assert len(index) == 2
        assert "a" in index
        assert "z" not in index
        assert [c.id for c in index] == ["a", "b"]

    def test_empty_input(self) -> None:
        index = CategoryIndex.build([])
        assert len(index) == 0
        assert index.roots() == []

    def test_input_not_mutated(self) -> None:
        categories = [cat("b", "a"), cat("a")]
        snapshot = list(categories)
        CategoryIndex.build(categories)
        assert categories == snapshot

    def test_accepts_raw_mappings(self) -> None:
        index = CategoryIndex.build(
            [
                {"id": "a", "name": "Electronics", "parentId": None},
                {"id": "b", "name": "Phones", "parentId": "a", "order": 2},
            ]
        )
        assert index.by_id("b").order == 2
        assert [c.id for c in index.children_of("a")] == ["b"]


class TestOrphanPolicy:
    """Categories whose parent is absent are treated as roots."""

    def test_orphan_registered_as_root(self) -> None:
        index = CategoryIndex.build([cat("a"), cat("b", "ghost")])
        assert [c.id for c in index.roots()] == ["a", "b"]
        assert index.structural_parent("b") is None
        # The record itself keeps its original parent reference
        assert index.by_id("b").parent_id == "ghost"

    def test_orphan_is_not_a_diagnostic(self) -> None:
        seen: list[Diagnostic] = []
        CategoryIndex.build([cat("b", "ghost")], on_diagnostic=seen.append)
        assert seen == []


class TestDuplicatePolicy:
    """Duplicate ids degrade to last-write-wins."""

    def test_last_write_wins(self) -> None:
        index = CategoryIndex.build([cat("a", name="First"), cat("a", name="Second")])
        assert len(index) == 1
        assert index.by_id("a").name == "Second"

    def test_duplicate_moves_to_new_parent(self) -> None:
        index = CategoryIndex.build([cat("p"), cat("q"), cat("a", "p"), cat("a", "q")])
        assert index.children_of("p") == []
        assert [c.id for c in index.children_of("q")] == ["a"]

    def test_duplicate_reports_malformed_input(self) -> None:
        seen: list[Diagnostic] = []
        CategoryIndex.build([cat("a"), cat("a")], on_diagnostic=seen.append)
        assert len(seen) == 1
        assert seen[0].kind == DiagnosticKind.malformed_input
        assert seen[0].category_id == "a"

    def test_invalid_mapping_skipped(self) -> None:
        seen: list[Diagnostic] = []
        index = CategoryIndex.build(
            [{"id": "a", "name": "A"}, {"id": "b", "name": ""}],
            on_diagnostic=seen.append,
        )
        assert "b" not in index
        assert [d.kind for d in seen] == [DiagnosticKind.malformed_input]
        assert seen[0].category_id == "b"


class TestAncestry:
    """Tests for ancestors, path and would_create_cycle."""

    def test_ancestors_nearest_first(self) -> None:
        index = CategoryIndex.build([cat("a"), cat("b", "a"), cat("c", "b")])
        assert [c.id for c in index.ancestors("c")] == ["b", "a"]
        assert index.ancestors("a") == []

    def test_path_root_first(self) -> None:
        index = CategoryIndex.build([cat("a"), cat("b", "a"), cat("c", "b")])
        assert [c.id for c in index.path("c")] == ["a", "b", "c"]
        assert index.path("missing") == []

    def test_ancestors_terminate_on_cycle(self) -> None:
        index = CategoryIndex.build([cat("a", "b"), cat("b", "a")])
        assert [c.id for c in index.ancestors("a")] == ["b"]

    def test_self_cycle_has_no_ancestors(self) -> None:
        index = CategoryIndex.build([cat("x", "x")])
        assert index.ancestors("x") == []

    def test_would_create_cycle(self) -> None:
        index = CategoryIndex.build([cat("a"), cat("b", "a"), cat("c", "b"), cat("d")])
        assert index.would_create_cycle("a", "a") is True
        assert index.would_create_cycle("a", "c") is True
        assert index.would_create_cycle("b", "c") is True
        assert index.would_create_cycle("c", "a") is False
        assert index.would_create_cycle("a", "d") is False
        assert index.would_create_cycle("b", None) is False
