"""Exceptions raised by the catalog engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .bulk import OutcomeReport


class CatalogEngineError(Exception):
    """Base class for catalog engine errors."""


class ConfigError(CatalogEngineError):
    """A configuration file exists but cannot be used."""


class TransportFailure(CatalogEngineError):
    """The bulk mutation endpoint could not be reached or answered garbage.

    Raised for the whole batch; per-id business failures never raise.
    Retrying is left to the caller.

    Attributes:
        report: Failed outcome with every requested id mapped to
            ErrorKind.transport. Set by the coordinator, None when raised
            directly by the transport.
    """

    def __init__(self, message: str, report: OutcomeReport | None = None) -> None:
        super().__init__(message)
        self.report = report
