"""Search filtering over category forests.

A filtered forest is always a set of root-to-match paths: a node survives
when it matches or when one of its descendants survives, so no match is
ever shown without its ancestor chain.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import replace

from .schemas import Product
from .tree import CategoryNode, copy_tree

logger = logging.getLogger(__name__)


def _normalize_query(query: str | None) -> str:
    return (query or "").strip().casefold()


def prune_tree(
    forest: Iterable[CategoryNode],
    keep: Callable[[CategoryNode], bool],
) -> list[CategoryNode]:
    """Keep nodes satisfying `keep` plus every ancestor of such a node.

    A kept node only retains children that survive on their own. The input
    forest is not modified; surviving nodes are new objects.
    """
    roots = list(forest)
    survivors: dict[int, CategoryNode | None] = {}
    on_path: set[int] = set()

    # Post-order: (node, children_done)
    stack: list[tuple[CategoryNode, bool]] = [(root, False) for root in reversed(roots)]
    while stack:
        node, children_done = stack.pop()
        key = id(node)
        if not children_done:
            if key in on_path or key in survivors:
                continue
            on_path.add(key)
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.children))
            continue

        on_path.discard(key)
        kept_children = [
            survivor
            for child in node.children
            if (survivor := survivors.get(id(child))) is not None
        ]
        if kept_children or keep(node):
            survivors[key] = replace(node, children=kept_children)
        else:
            survivors[key] = None

    return [s for root in roots if (s := survivors.get(id(root))) is not None]


def filter_tree(forest: Iterable[CategoryNode], query: str | None) -> list[CategoryNode]:
    """Filter a forest by case-insensitive name containment.

    Args:
        forest: Root nodes, e.g. from build_tree().
        query: Search text. Surrounding whitespace is ignored; an empty
            query returns a copy of the whole forest.

    Returns:
        Root-to-match paths, or an empty list when nothing matches.
    """
    needle = _normalize_query(query)
    if not needle:
        return copy_tree(forest)

    filtered = prune_tree(forest, lambda node: needle in node.name.casefold())
    logger.debug("Filter %r kept %d root(s)", needle, len(filtered))
    return filtered


def product_matches(product: Product, query: str | None) -> bool:
    """Check whether a product's name or SKU contains the query."""
    needle = _normalize_query(query)
    return needle in product.name.casefold() or needle in product.sku.casefold()


def filter_tree_with_products(
    forest: Iterable[CategoryNode],
    groups: Mapping[str, Sequence[Product]],
    query: str | None,
) -> tuple[list[CategoryNode], dict[str, list[Product]]]:
    """Filter a product picker tree by category name, product name or SKU.

    A category survives when its name matches, when it holds a matching
    product, or when one of its descendants survives.

    Args:
        forest: Root nodes.
        groups: Products per category id, e.g. from group_products().
        query: Search text.

    Returns:
        The filtered forest and the groups reduced to matching products.
        Every key of `groups` is kept, possibly with an empty list.
    """
    needle = _normalize_query(query)
    if not needle:
        return copy_tree(forest), {k: list(v) for k, v in groups.items()}

    matching = {
        category_id: [p for p in products if product_matches(p, needle)]
        for category_id, products in groups.items()
    }
    filtered = prune_tree(
        forest,
        lambda node: needle in node.name.casefold() or bool(matching.get(node.id)),
    )
    return filtered, matching
