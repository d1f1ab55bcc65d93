"""Bulk operations over a selection of catalog entities.

One mutation (visibility, category move, delete) is sent for the whole
selection as a single batched request. The backend may answer all-or-nothing
or per id; either way every requested id ends up in exactly one of
`succeeded_ids` or `failed_ids`.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar

import httpx
from pydantic import ValidationError

from shared.types import BulkAction, BulkStatus, ErrorKind

from .config import EngineConfig, load_config
from .errors import TransportFailure
from .schemas import BulkAck, BulkItemResult, parse_bulk_response, parse_error_kind
from .transport import MutationTransport

logger = logging.getLogger(__name__)


# =============================================================================
# Operations
# =============================================================================


@dataclass(frozen=True)
class SetVisibility:
    """Show or hide every selected entity."""

    is_visible: bool
    action: ClassVar[BulkAction] = BulkAction.set_visibility

    def payload(self) -> dict[str, Any]:
        return {"type": self.action.value, "isVisible": self.is_visible}


@dataclass(frozen=True)
class MoveToCategory:
    """Move every selected entity into one category (None = uncategorized)."""

    category_id: str | None
    action: ClassVar[BulkAction] = BulkAction.move_to_category

    def payload(self) -> dict[str, Any]:
        return {"type": self.action.value, "categoryId": self.category_id}


@dataclass(frozen=True)
class Delete:
    """Delete every selected entity."""

    action: ClassVar[BulkAction] = BulkAction.delete

    def payload(self) -> dict[str, Any]:
        return {"type": self.action.value}


BulkOperation = SetVisibility | MoveToCategory | Delete


# =============================================================================
# Outcome
# =============================================================================


@dataclass
class OutcomeReport:
    """Result of one bulk invocation.

    Attributes:
        status: completed, partially_failed or failed.
        succeeded_ids: Ids the backend applied the mutation to.
        failed_ids: Ids that failed, with the reason.
        started_at: When the request was issued.
        ended_at: When the outcome was known.
        duration_ms: Wall time of the invocation.
        error_message: Batch-level error, if any.
    """

    status: BulkStatus
    succeeded_ids: set[str] = field(default_factory=set)
    failed_ids: dict[str, ErrorKind] = field(default_factory=dict)
    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration_ms: int | None = None
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        """True when every id succeeded."""
        return self.status == BulkStatus.completed

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "succeeded_ids": sorted(self.succeeded_ids),
            "failed_ids": {k: v.value for k, v in sorted(self.failed_ids.items())},
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_ms": self.duration_ms,
            "error_message": self.error_message,
        }


_TRANSITIONS: dict[BulkStatus, frozenset[BulkStatus]] = {
    BulkStatus.pending: frozenset({BulkStatus.applying}),
    BulkStatus.applying: frozenset(
        {BulkStatus.completed, BulkStatus.partially_failed, BulkStatus.failed}
    ),
}


class BulkInvocation:
    """Lifecycle of a single apply() call.

    Lifecycle:
        1. Created in pending state
        2. begin() moves to applying and starts the clock
        3. finish() derives the final status and builds the OutcomeReport

    Nothing here is persisted; the invocation lives as long as the call.
    """

    def __init__(self, ids: Iterable[str], op: BulkOperation, entity: str) -> None:
        self._id = str(uuid.uuid4())
        self._ids = frozenset(ids)
        self._op = op
        self._entity = entity
        self._status = BulkStatus.pending
        self._started_at: datetime | None = None
        self._start_time_ns: int | None = None

    @property
    def id(self) -> str:
        """Invocation unique identifier (for logs)."""
        return self._id

    @property
    def ids(self) -> frozenset[str]:
        """Selected entity ids."""
        return self._ids

    @property
    def status(self) -> BulkStatus:
        """Current status."""
        return self._status

    def _transition(self, status: BulkStatus) -> None:
        if status not in _TRANSITIONS.get(self._status, frozenset()):
            raise RuntimeError(
                f"Illegal bulk status transition {self._status.value} -> {status.value}"
            )
        self._status = status

    def begin(self) -> None:
        self._transition(BulkStatus.applying)
        self._started_at = datetime.now(timezone.utc)
        self._start_time_ns = time.perf_counter_ns()
        logger.debug(
            "Bulk %s %s on %d %s",
            self._id,
            self._op.action.value,
            len(self._ids),
            self._entity,
        )

    def finish(
        self,
        succeeded: set[str],
        failed: dict[str, ErrorKind],
        error_message: str | None = None,
    ) -> OutcomeReport:
        if not failed:
            status = BulkStatus.completed
        elif not succeeded:
            status = BulkStatus.failed
        else:
            status = BulkStatus.partially_failed
        self._transition(status)

        ended_at = datetime.now(timezone.utc)
        duration_ms = None
        if self._start_time_ns is not None:
            duration_ms = (time.perf_counter_ns() - self._start_time_ns) // 1_000_000

        logger.debug(
            "Bulk %s finished %s: %d succeeded, %d failed",
            self._id,
            status.value,
            len(succeeded),
            len(failed),
        )
        return OutcomeReport(
            status=status,
            succeeded_ids=succeeded,
            failed_ids=failed,
            started_at=self._started_at,
            ended_at=ended_at,
            duration_ms=duration_ms,
            error_message=error_message,
        )


def split_outcome(
    ids: frozenset[str],
    response: BulkAck | list[BulkItemResult],
) -> tuple[set[str], dict[str, ErrorKind]]:
    """Assign every requested id to succeeded or failed.

    An all-or-nothing answer applies to every id. In a per-id answer the
    last entry for an id wins, ids that were not requested are ignored and
    requested ids the backend did not mention fail with ErrorKind.unknown.
    """
    if isinstance(response, BulkAck):
        if response.success:
            return set(ids), {}
        kind = parse_error_kind(response.error)
        return set(), {i: kind for i in ids}

    succeeded: set[str] = set()
    failed: dict[str, ErrorKind] = {}
    for item in response:
        if item.id not in ids:
            logger.warning("Ignoring bulk result for unrequested id %r", item.id)
            continue
        if item.success:
            succeeded.add(item.id)
            failed.pop(item.id, None)
        else:
            failed[item.id] = parse_error_kind(item.error)
            succeeded.discard(item.id)

    missing = ids - succeeded - failed.keys()
    if missing:
        logger.warning("Bulk response did not mention %d requested id(s)", len(missing))
        failed.update({i: ErrorKind.unknown for i in missing})

    return succeeded, failed


# =============================================================================
# Coordinator
# =============================================================================


class BulkOperationCoordinator:
    """Applies one mutation across a selection and reports per-id outcomes.

    - One batched request per apply() call; no retries.
    - Per-id business failures are reported, never raised.
    - Transport problems raise TransportFailure carrying a failed report.
    - If the caller cancels apply(), the request already on the wire is
      left to complete and its whole result is discarded.
    - Concurrent apply() calls on overlapping selections are not
      serialized; callers must do that themselves.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        entity: str = "products",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or load_config()
        self._entity = entity
        self._transport = MutationTransport(self._config, client=client)
        self._in_flight: set[asyncio.Task[Any]] = set()

    @property
    def entity(self) -> str:
        """Entity collection this coordinator mutates (e.g. products)."""
        return self._entity

    @property
    def in_flight(self) -> int:
        """Number of requests still on the wire."""
        return len(self._in_flight)

    async def __aenter__(self) -> BulkOperationCoordinator:
        await self._transport.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    async def apply(self, ids: Iterable[str], op: BulkOperation) -> OutcomeReport:
        """Apply `op` to every id in the selection.

        Args:
            ids: Selected entity ids. Duplicates collapse.
            op: SetVisibility, MoveToCategory or Delete.

        Returns:
            OutcomeReport with every id in exactly one of succeeded_ids or
            failed_ids.

        Raises:
            TransportFailure: Endpoint unreachable, HTTP error status or an
                unrecognized response; `report` marks every id as failed.
        """
        invocation = BulkInvocation(ids, op, self._entity)
        invocation.begin()
        if not invocation.ids:
            return invocation.finish(set(), {})

        payload = {"ids": sorted(invocation.ids), "op": op.payload()}
        path = self._config.bulk_path.format(entity=self._entity)

        request = asyncio.ensure_future(self._transport.post_json(path, payload))
        self._in_flight.add(request)
        request.add_done_callback(self._in_flight.discard)

        try:
            body = await asyncio.shield(request)
        except asyncio.CancelledError:
            logger.warning(
                "Bulk %s abandoned by caller; result of the in-flight request will be discarded",
                invocation.id,
            )
            request.add_done_callback(_log_discarded(invocation.id))
            raise
        except TransportFailure as e:
            raise self._fail(invocation, str(e)) from e

        try:
            response = parse_bulk_response(body)
        except ValidationError as e:
            raise self._fail(invocation, f"Unrecognized bulk response from {path}") from e

        succeeded, failed = split_outcome(invocation.ids, response)
        return invocation.finish(succeeded, failed)

    def _fail(self, invocation: BulkInvocation, message: str) -> TransportFailure:
        report = invocation.finish(
            set(),
            {i: ErrorKind.transport for i in invocation.ids},
            error_message=message,
        )
        return TransportFailure(message, report=report)

    async def shutdown(self, timeout: float | None = None) -> None:
        """Wait for in-flight requests, then close the transport.

        Args:
            timeout: Max seconds to wait (default: config.shutdown_timeout).
        """
        if self._in_flight:
            wait = self._config.shutdown_timeout if timeout is None else timeout
            logger.debug("Waiting for %d in-flight bulk request(s)", len(self._in_flight))
            _, pending = await asyncio.wait(set(self._in_flight), timeout=wait)
            for task in pending:
                task.cancel()
        await self._transport.shutdown()


def _log_discarded(invocation_id: str) -> Callable[[asyncio.Task[Any]], None]:
    def callback(task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Abandoned bulk %s failed: %s", invocation_id, error)
        else:
            logger.info("Discarded result of abandoned bulk %s", invocation_id)

    return callback
