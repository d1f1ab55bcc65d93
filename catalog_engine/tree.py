"""Flat category list to ordered forest, plus forest traversal helpers.

All traversals use an explicit stack, so arbitrarily deep category chains
never hit the interpreter's recursion limit.
"""

from __future__ import annotations

import logging
import unicodedata
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from shared.types import DiagnosticKind

from .diagnostics import Diagnostic, DiagnosticCallback, report
from .index import CategoryIndex
from .schemas import Category

logger = logging.getLogger(__name__)


@dataclass
class CategoryNode:
    """A category placed in a forest.

    Nodes are fresh copies of the input records, so callers may reshape a
    forest without touching the snapshot it was built from. `parent_id`
    and `level` describe the node's position in the built forest: roots
    (including orphans and broken-cycle entries) have parent_id None and
    level 0.
    """

    id: str
    name: str
    parent_id: str | None = None
    level: int = 0
    order: int | None = None
    is_visible: bool = True
    include_subcategory_products: bool = False
    slug: str | None = None
    children: list[CategoryNode] = field(default_factory=list)

    @classmethod
    def from_category(
        cls, category: Category, parent_id: str | None, level: int
    ) -> CategoryNode:
        return cls(
            id=category.id,
            name=category.name,
            parent_id=parent_id,
            level=level,
            order=category.order,
            is_visible=category.is_visible,
            include_subcategory_products=category.include_subcategory_products,
            slug=category.slug,
        )

    def walk(self) -> Iterator[CategoryNode]:
        """Yield this node and all its descendants, pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_dict(self) -> dict[str, Any]:
        """Serialize the subtree in the API layer's camelCase shape."""
        out = self._fields()
        stack = [(self, out)]
        while stack:
            node, target = stack.pop()
            for child in node.children:
                child_out = child._fields()
                target["children"].append(child_out)
                stack.append((child, child_out))
        return out

    def _fields(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "parentId": self.parent_id,
            "level": self.level,
            "order": self.order,
            "isVisible": self.is_visible,
            "includeSubcategoryProducts": self.include_subcategory_products,
            "slug": self.slug,
            "children": [],
        }


def name_sort_key(name: str) -> tuple[str, str]:
    """Case-insensitive collation key for display names.

    Does not depend on the process locale. Accented letters sort with their
    base letter (É with E, Ё with Е) and the accent only breaks ties, so
    mixed Latin and Cyrillic names come out in dictionary order.
    """
    folded = name.casefold()
    base = "".join(
        ch
        for ch in unicodedata.normalize("NFKD", folded)
        if unicodedata.category(ch) != "Mn"
    )
    return base, folded


def sibling_sort_key(category: Category | CategoryNode) -> tuple[Any, ...]:
    """Sort key for siblings.

    Siblings that both define `order` sort by it ascending. A sibling with
    an `order` sorts before one without. Otherwise, and on equal `order`,
    names are compared case-insensitively; the id settles exact ties.
    """
    if category.order is None:
        return (1, 0, name_sort_key(category.name), category.id)
    return (0, category.order, name_sort_key(category.name), category.id)


def build_tree(
    categories: CategoryIndex | Iterable[Category | Mapping[str, Any]],
    on_diagnostic: DiagnosticCallback | None = None,
) -> list[CategoryNode]:
    """Convert a flat category snapshot into an ordered forest.

    Never raises on malformed data. Orphans become roots. When a parent
    cycle is found the closing edge is dropped, a cycle_detected diagnostic
    is reported and the category where the cycle was entered becomes a root.

    Args:
        categories: A CategoryIndex, or records/mappings to index.
        on_diagnostic: Optional callback for recovered problems.

    Returns:
        Root nodes sorted with sibling_sort_key, children sorted likewise.
    """
    if isinstance(categories, CategoryIndex):
        index = categories
    else:
        index = CategoryIndex.build(categories, on_diagnostic)

    placed: set[str] = set()

    def grow(root: Category) -> CategoryNode:
        root_node = CategoryNode.from_category(root, None, 0)
        placed.add(root.id)
        stack = [root_node]
        while stack:
            node = stack.pop()
            for child in sorted(index.children_of(node.id), key=sibling_sort_key):
                if child.id in placed:
                    # Each category has one parent, so a placed child means
                    # this edge closes a cycle.
                    report(
                        Diagnostic(
                            kind=DiagnosticKind.cycle_detected,
                            category_id=child.id,
                            message=(
                                f"Parent cycle broken: dropped edge "
                                f"{node.id!r} -> {child.id!r}"
                            ),
                        ),
                        on_diagnostic,
                    )
                    continue
                placed.add(child.id)
                child_node = CategoryNode.from_category(child, node.id, node.level + 1)
                node.children.append(child_node)
                stack.append(child_node)
        return root_node

    forest = [grow(root) for root in index.roots()]

    if len(placed) < len(index):
        # Whatever is left hangs off a parent cycle.
        for category in index:
            if category.id in placed:
                continue
            entry = _cycle_entry(index, category.id)
            logger.debug("Promoting %r to root to break a parent cycle", entry.id)
            forest.append(grow(entry))

    forest.sort(key=sibling_sort_key)
    return forest


def _cycle_entry(index: CategoryIndex, category_id: str) -> Category:
    """First category revisited when walking up the parent chain."""
    seen: set[str] = set()
    current: str | None = category_id
    while current is not None and current not in seen:
        seen.add(current)
        current = index.structural_parent(current)
    # Only called for categories unreachable from a root, so the walk ends
    # on a repeat, never on None.
    return index.by_id(current)


def copy_tree(forest: Iterable[CategoryNode]) -> list[CategoryNode]:
    """Deep copy a forest without recursion."""
    roots = list(forest)
    copies = [replace(root, children=[]) for root in roots]
    stack = list(zip(roots, copies))
    while stack:
        source, target = stack.pop()
        for child in source.children:
            child_copy = replace(child, children=[])
            target.children.append(child_copy)
            stack.append((child, child_copy))
    return copies


def iter_tree(
    forest: Iterable[CategoryNode],
    expanded: set[str] | frozenset[str] | None = None,
) -> Iterator[tuple[CategoryNode, int]]:
    """Yield `(node, depth)` pairs in display order.

    Args:
        forest: Root nodes.
        expanded: Caller-owned set of expanded ids. When given, children of
            collapsed nodes are skipped. The set is only read.
    """
    stack = [(root, 0) for root in reversed(list(forest))]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        if expanded is None or node.id in expanded:
            stack.extend((child, depth + 1) for child in reversed(node.children))


def collect_ids(forest: Iterable[CategoryNode]) -> list[str]:
    """Every id in the forest, pre-order."""
    return [node.id for node, _ in iter_tree(forest)]


def default_expanded(forest: Iterable[CategoryNode]) -> set[str]:
    """Initial expansion state for tree pickers: every root expanded."""
    return {root.id for root in forest}


def toggle_expanded(expanded: set[str] | frozenset[str], category_id: str) -> set[str]:
    """Return a new expansion set with `category_id` flipped."""
    return set(expanded) ^ {category_id}
