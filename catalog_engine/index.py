"""Constant-time lookup over a flat, parent-referencing category list."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from shared.types import DiagnosticKind

from .diagnostics import Diagnostic, DiagnosticCallback, report
from .schemas import Category, coerce_records

logger = logging.getLogger(__name__)


class CategoryIndex:
    """Id lookup and children buckets built in a single pass.

    Policies applied while building (never raised):
        - Orphans: a category whose parent_id does not resolve to a present
          category is registered in the root bucket, exactly as if its
          parent_id were None.
        - Duplicate ids: the last record wins, a malformed_input diagnostic
          is reported.

    The index keeps references to the (frozen) records and never mutates
    the input sequence. Children buckets are in input order, unsorted.
    """

    def __init__(
        self,
        categories: dict[str, Category],
        children: dict[str | None, list[str]],
        parents: dict[str, str | None],
    ) -> None:
        self._categories = categories
        self._children = children
        self._parents = parents

    @classmethod
    def build(
        cls,
        categories: Iterable[Category | Mapping[str, Any]],
        on_diagnostic: DiagnosticCallback | None = None,
    ) -> CategoryIndex:
        """Build an index from a category snapshot.

        Args:
            categories: Category records or raw mappings from the API layer.
            on_diagnostic: Optional callback for recovered problems.

        Returns:
            A new CategoryIndex.
        """
        records: dict[str, Category] = {}
        for category in coerce_records(categories, Category, on_diagnostic):
            if category.id in records:
                report(
                    Diagnostic(
                        kind=DiagnosticKind.malformed_input,
                        category_id=category.id,
                        message=f"Duplicate category id {category.id!r}, keeping the last record",
                    ),
                    on_diagnostic,
                )
            records[category.id] = category

        children: dict[str | None, list[str]] = {None: []}
        parents: dict[str, str | None] = {}
        orphans = 0
        for category in records.values():
            parent_id = category.parent_id
            if parent_id is not None and parent_id not in records:
                parent_id = None
                orphans += 1
            parents[category.id] = parent_id
            children.setdefault(parent_id, []).append(category.id)

        logger.debug(
            "Indexed %d categories (%d roots, %d orphans)",
            len(records),
            len(children[None]),
            orphans,
        )
        return cls(records, children, parents)

    def __len__(self) -> int:
        return len(self._categories)

    def __contains__(self, category_id: object) -> bool:
        return category_id in self._categories

    def __iter__(self) -> Iterator[Category]:
        return iter(self._categories.values())

    def by_id(self, category_id: str) -> Category | None:
        """Category with this id, or None."""
        return self._categories.get(category_id)

    def children_of(self, category_id: str | None) -> list[Category]:
        """Direct children of a category, or the roots when given None."""
        return [self._categories[c] for c in self._children.get(category_id, ())]

    def roots(self) -> list[Category]:
        """Categories without a (resolvable) parent."""
        return self.children_of(None)

    def structural_parent(self, category_id: str) -> str | None:
        """Parent id after the orphan policy has been applied."""
        return self._parents.get(category_id)

    def ancestors(self, category_id: str) -> list[Category]:
        """Ancestor chain, nearest parent first.

        Stops at the first repeated id, so a parent cycle yields a finite
        chain.
        """
        chain: list[Category] = []
        seen = {category_id}
        parent_id = self._parents.get(category_id)
        while parent_id is not None and parent_id not in seen:
            seen.add(parent_id)
            chain.append(self._categories[parent_id])
            parent_id = self._parents.get(parent_id)
        return chain

    def path(self, category_id: str) -> list[Category]:
        """Root-to-node chain including the category itself (breadcrumbs)."""
        category = self._categories.get(category_id)
        if category is None:
            return []
        return [*reversed(self.ancestors(category_id)), category]

    def would_create_cycle(self, category_id: str, new_parent_id: str | None) -> bool:
        """Check whether re-parenting a category would close a cycle.

        True when the new parent is the category itself or one of its
        descendants. Moving to the root (None) never creates a cycle.
        """
        if new_parent_id is None:
            return False
        if new_parent_id == category_id:
            return True
        return any(c.id == category_id for c in self.ancestors(new_parent_id))
