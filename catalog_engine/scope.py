"""Which category ids a product listing should match.

The scope set is handed to the product query layer as a
`category in (...)` filter; nothing here queries products.
"""

from __future__ import annotations

import logging
from collections import deque

from .index import CategoryIndex

logger = logging.getLogger(__name__)


def resolve_scope(category_id: str, recursive: bool, index: CategoryIndex) -> set[str]:
    """Resolve the closed set of category ids for a listing.

    The category's own include_subcategory_products flag is not consulted;
    see listing_scope() for that policy.

    Args:
        category_id: Category the listing is scoped to.
        recursive: Include every descendant when True.
        index: Index over the current category snapshot.

    Returns:
        `{category_id}` plus, when recursive, every descendant id. An id
        missing from the index resolves to `{category_id}`.
    """
    scope = {category_id}
    if not recursive:
        return scope

    if category_id not in index:
        logger.debug("Category %r not in index, scope limited to itself", category_id)
        return scope

    queue = deque([category_id])
    while queue:
        current = queue.popleft()
        for child in index.children_of(current):
            if child.id not in scope:
                scope.add(child.id)
                queue.append(child.id)

    logger.debug("Resolved scope of %r to %d categories", category_id, len(scope))
    return scope


def listing_scope(
    category_id: str,
    index: CategoryIndex,
    include_subcategories: bool | None = None,
) -> set[str]:
    """Scope for a product listing, applying the default-inclusion policy.

    An explicit `include_subcategories` wins. Without it the category's
    include_subcategory_products flag decides; an unknown category is
    never recursive.
    """
    if include_subcategories is None:
        category = index.by_id(category_id)
        include_subcategories = bool(category and category.include_subcategory_products)
    return resolve_scope(category_id, include_subcategories, index)
