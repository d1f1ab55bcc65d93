"""Enums shared by the catalog engine and the backend contract it speaks."""

from .types import BulkAction, BulkStatus, DiagnosticKind, ErrorKind

__all__ = ["BulkAction", "BulkStatus", "ErrorKind", "DiagnosticKind"]
