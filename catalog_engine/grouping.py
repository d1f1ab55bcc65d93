"""Products partitioned by category for tree-with-products pickers."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from .diagnostics import DiagnosticCallback
from .schemas import Product, coerce_records
from .tree import CategoryNode, iter_tree, name_sort_key


def group_products(
    products: Iterable[Product | Mapping[str, Any]],
    category_ids: Iterable[str],
    on_diagnostic: DiagnosticCallback | None = None,
) -> dict[str, list[Product]]:
    """Partition products by category id.

    Every requested id becomes a key, even when no product is in it.
    Products without a category, or in a category that was not requested,
    are left out; there is no catch-all bucket. Buckets are sorted by name
    (case-insensitive, accents folded, see name_sort_key()).

    Args:
        products: Product records or raw mappings.
        category_ids: Ids to build buckets for, in output order.
        on_diagnostic: Optional callback for skipped invalid records.

    Returns:
        Mapping of category id to its products.
    """
    groups: dict[str, list[Product]] = {category_id: [] for category_id in category_ids}
    for product in coerce_records(products, Product, on_diagnostic):
        if product.category_id is not None and product.category_id in groups:
            groups[product.category_id].append(product)

    for bucket in groups.values():
        bucket.sort(key=lambda p: name_sort_key(p.name))
    return groups


def count_products(
    forest: Iterable[CategoryNode],
    groups: Mapping[str, Sequence[Product]],
    recursive: bool = False,
) -> dict[str, int]:
    """Product count per category in the forest.

    With `recursive`, each count includes the products of all descendants.
    """
    nodes = [node for node, _ in iter_tree(forest)]
    counts = {node.id: len(groups.get(node.id, ())) for node in nodes}
    if recursive:
        # Pre-order reversed visits children before their parents.
        for node in reversed(nodes):
            counts[node.id] += sum(counts[child.id] for child in node.children)
    return counts
