"""Shared type definitions for the catalog engine and its backend contract.

These enums inherit from both `str` and `Enum` to ensure JSON serializability.
This allows `json.dumps(BulkAction.delete)` to work directly without custom encoders.
"""

from enum import Enum


class BulkAction(str, Enum):
    """Mutation applied by a bulk operation.

    - set_visibility: Show or hide every selected entity
    - move_to_category: Reassign every selected entity to one category
    - delete: Remove every selected entity
    """

    set_visibility = "set_visibility"
    move_to_category = "move_to_category"
    delete = "delete"


class BulkStatus(str, Enum):
    """Status of a single bulk operation invocation.

    Lifecycle: pending -> applying -> completed | partially_failed | failed
    """

    pending = "pending"
    applying = "applying"
    completed = "completed"
    partially_failed = "partially_failed"
    failed = "failed"


class ErrorKind(str, Enum):
    """Why a single id failed inside a bulk operation."""

    not_found = "not_found"
    validation = "validation"
    conflict = "conflict"
    forbidden = "forbidden"
    transport = "transport"
    unknown = "unknown"


class DiagnosticKind(str, Enum):
    """Data-shape problems the pure operations recover from.

    - malformed_input: Duplicate id or a record that failed validation
    - cycle_detected: A parent cycle was found and broken
    """

    malformed_input = "malformed_input"
    cycle_detected = "cycle_detected"
