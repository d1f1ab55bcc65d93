"""Category tree and subcategory aggregation engine for the catalog admin."""

from .bulk import (
    BulkInvocation,
    BulkOperation,
    BulkOperationCoordinator,
    Delete,
    MoveToCategory,
    OutcomeReport,
    SetVisibility,
    split_outcome,
)
from .config import EngineConfig, load_config
from .diagnostics import Diagnostic, DiagnosticCallback
from .errors import CatalogEngineError, ConfigError, TransportFailure
from .filtering import (
    filter_tree,
    filter_tree_with_products,
    product_matches,
    prune_tree,
)
from .grouping import count_products, group_products
from .index import CategoryIndex
from .schemas import (
    BulkAck,
    BulkItemResult,
    Category,
    Product,
    parse_bulk_response,
    parse_error_kind,
)
from .scope import listing_scope, resolve_scope
from .transport import MutationTransport
from .tree import (
    CategoryNode,
    build_tree,
    collect_ids,
    copy_tree,
    default_expanded,
    iter_tree,
    name_sort_key,
    sibling_sort_key,
    toggle_expanded,
)

__all__ = [
    # Records
    "Category",
    "Product",
    "CategoryNode",
    # Pure operations
    "CategoryIndex",
    "build_tree",
    "filter_tree",
    "filter_tree_with_products",
    "resolve_scope",
    "listing_scope",
    "group_products",
    "count_products",
    # Tree helpers
    "iter_tree",
    "collect_ids",
    "copy_tree",
    "prune_tree",
    "default_expanded",
    "toggle_expanded",
    "product_matches",
    "name_sort_key",
    "sibling_sort_key",
    # Bulk operations
    "BulkOperationCoordinator",
    "BulkInvocation",
    "BulkOperation",
    "SetVisibility",
    "MoveToCategory",
    "Delete",
    "OutcomeReport",
    "split_outcome",
    "MutationTransport",
    "BulkAck",
    "BulkItemResult",
    "parse_bulk_response",
    "parse_error_kind",
    # Configuration
    "EngineConfig",
    "load_config",
    # Diagnostics and errors
    "Diagnostic",
    "DiagnosticCallback",
    "CatalogEngineError",
    "ConfigError",
    "TransportFailure",
]
