"""Diagnostics emitted while recovering from malformed category data.

The pure operations never raise for data-shape problems. They apply a
fallback policy and report what they did through an optional callback.
Every diagnostic is also logged at WARNING level.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from shared.types import DiagnosticKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Diagnostic:
    """A recovered data-shape problem.

    Attributes:
        kind: malformed_input or cycle_detected.
        category_id: Offending category id, if known.
        message: Human readable description.
    """

    kind: DiagnosticKind
    category_id: str | None
    message: str


DiagnosticCallback = Callable[[Diagnostic], None]


def report(diagnostic: Diagnostic, on_diagnostic: DiagnosticCallback | None) -> None:
    """Log a diagnostic and forward it to the caller's callback, if any."""
    logger.warning("%s: %s", diagnostic.kind.value, diagnostic.message)
    if on_diagnostic is not None:
        on_diagnostic(diagnostic)
