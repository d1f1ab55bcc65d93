"""Pydantic schemas for the records and responses the engine consumes.

Catalog records arrive from the external API layer in camelCase
(`parentId`, `includeSubcategoryProducts`, ...). The models accept both the
wire names and the Python field names, and are frozen so the engine can hold
on to them without copying.

The bulk endpoint may answer in two shapes from the same call site:
an all-or-nothing boolean, or a list of per-id results. Both are parsed here.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from shared.types import DiagnosticKind, ErrorKind

from .diagnostics import Diagnostic, DiagnosticCallback, report


# =============================================================================
# Catalog records (API layer -> engine)
# =============================================================================


class Category(BaseModel):
    """A category as supplied by the API layer."""

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        coerce_numbers_to_str=True,
    )

    id: str
    name: str = Field(min_length=1)
    parent_id: str | None = Field(default=None, alias="parentId")
    level: int = Field(default=0, ge=0)
    order: int | None = None
    is_visible: bool = Field(default=True, alias="isVisible")
    include_subcategory_products: bool = Field(
        default=False, alias="includeSubcategoryProducts"
    )
    slug: str | None = None


class Product(BaseModel):
    """A product as supplied by the API layer.

    Only the fields the engine reads are declared; price, stock, images and
    the rest are kept as extras and passed through untouched.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        coerce_numbers_to_str=True,
        extra="allow",
    )

    id: str
    name: str
    sku: str = ""
    category_id: str | None = Field(default=None, alias="categoryId")


RecordT = TypeVar("RecordT", Category, Product)


def coerce_records(
    items: Iterable[RecordT | Mapping[str, Any]],
    model: type[RecordT],
    on_diagnostic: DiagnosticCallback | None = None,
) -> list[RecordT]:
    """Validate raw mappings into records, skipping the ones that don't fit.

    Model instances are passed through as-is. A mapping that fails
    validation is dropped and reported as a malformed_input diagnostic.
    """
    records: list[RecordT] = []
    for item in items:
        if isinstance(item, model):
            records.append(item)
            continue
        try:
            records.append(model.model_validate(item))
        except ValidationError as e:
            raw_id = item.get("id") if isinstance(item, Mapping) else None
            report(
                Diagnostic(
                    kind=DiagnosticKind.malformed_input,
                    category_id=str(raw_id) if raw_id is not None else None,
                    message=(
                        f"Skipped invalid {model.__name__.lower()} record: "
                        f"{e.error_count()} validation error(s)"
                    ),
                ),
                on_diagnostic,
            )
    return records


# =============================================================================
# Bulk endpoint (engine -> API layer -> engine)
# =============================================================================


class BulkItemResult(BaseModel):
    """Outcome for a single id in a per-id bulk response."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    success: bool
    error: str | None = None


class BulkResultList(BaseModel):
    """Per-id bulk response wrapped in an object."""

    results: list[BulkItemResult]


class BulkAck(BaseModel):
    """All-or-nothing bulk response wrapped in an object."""

    success: bool
    error: str | None = None


_item_list_adapter: TypeAdapter[list[BulkItemResult]] = TypeAdapter(list[BulkItemResult])


def parse_bulk_response(body: Any) -> BulkAck | list[BulkItemResult]:
    """Normalize any accepted bulk response body.

    Returns:
        BulkAck for all-or-nothing answers, a list of BulkItemResult for
        per-id answers.

    Raises:
        ValidationError: If the body matches none of the accepted shapes.
    """
    if isinstance(body, bool):
        return BulkAck(success=body)
    if isinstance(body, list):
        return _item_list_adapter.validate_python(body)
    if isinstance(body, Mapping) and "results" in body:
        return BulkResultList.model_validate(body).results
    return BulkAck.model_validate(body)


_ERROR_KIND_ALIASES: dict[str, ErrorKind] = {
    "notfound": ErrorKind.not_found,
    "missing": ErrorKind.not_found,
    "invalid": ErrorKind.validation,
    "validationerror": ErrorKind.validation,
    "badrequest": ErrorKind.validation,
    "unauthorized": ErrorKind.forbidden,
    "permissiondenied": ErrorKind.forbidden,
    "hasproducts": ErrorKind.conflict,
    "haschildren": ErrorKind.conflict,
}


def parse_error_kind(code: str | None) -> ErrorKind:
    """Map a backend error code to an ErrorKind.

    Accepts `NotFound`, `not_found`, `NOT_FOUND` and similar spellings.
    Unknown or missing codes map to ErrorKind.unknown.
    """
    if not code:
        return ErrorKind.unknown

    normalized = code.strip().replace("-", "_").replace(" ", "_")
    # CamelCase -> snake_case
    snake = "".join(
        f"_{c.lower()}" if c.isupper() and i and normalized[i - 1].islower() else c.lower()
        for i, c in enumerate(normalized)
    )
    if snake in {kind.value for kind in ErrorKind}:
        return ErrorKind(snake)

    return _ERROR_KIND_ALIASES.get(snake.replace("_", ""), ErrorKind.unknown)

