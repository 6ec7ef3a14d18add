"""Slice Collector.

Issues one request per slice index, all without waiting, then reports each
response as it arrives. Completion is detected with an explicit tally of
responses (success or failure), never by comparing against a loop variable.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, Generic, List, Optional, TypeVar

from slicecourier.lib.acquirer import FileHandle
from slicecourier.lib.errors import SliceError, TransferError
from slicecourier.lib.host import AsyncResult, request

if TYPE_CHECKING:
    from slicecourier.lib.report import TransferListener

logger = logging.getLogger(__name__)

__all__ = [
    "Slice",
    "CollectionResult",
    "CompletionTally",
    "ReorderBuffer",
    "SliceCollector",
]

T = TypeVar("T")


@dataclass(frozen=True)
class Slice:
    """One received slice of the document."""

    index: int
    size_bytes: int
    payload: bytes = field(repr=False)

    def encoded(self) -> str:
        """Payload as base64 text, for display."""
        return base64.b64encode(self.payload).decode("ascii")


@dataclass
class CollectionResult:
    """Outcome of collecting every slice of one handle.

    ``slices`` is in arrival order.
    """

    slice_count: int
    requested: int = 0
    slices: List[Slice] = field(default_factory=list)
    errors: List[SliceError] = field(default_factory=list)

    @property
    def received(self) -> int:
        return len(self.slices) + len(self.errors)

    @property
    def complete(self) -> bool:
        """True when every slice arrived successfully."""
        return len(self.slices) == self.slice_count and not self.errors

    @property
    def total_bytes(self) -> int:
        return sum(s.size_bytes for s in self.slices)

    def ordered_slices(self) -> List[Slice]:
        return sorted(self.slices, key=lambda s: s.index)

    def assemble(self) -> bytes:
        """Rebuild the document from its slices.

        Raises:
            TransferError: If any slice is missing
        """
        if not self.complete:
            missing = sorted(e.index for e in self.errors)
            raise TransferError(
                "Cannot reassemble document with missing slices",
                details={"missing_slices": missing},
            )
        return b"".join(s.payload for s in self.ordered_slices())


class CompletionTally:
    """Counts slice responses and signals completion exactly once.

    Example:
        tally = CompletionTally(3, on_complete=lambda t: print("done"))
        tally.record(2, ok=True)
        tally.record(0, ok=False)
        tally.record(1, ok=True)   # prints "done"
        await tally.wait()
    """

    def __init__(
        self,
        expected: int,
        on_complete: Optional[Callable[["CompletionTally"], None]] = None,
    ) -> None:
        if expected < 1:
            raise ValueError(f"expected must be at least 1, got {expected}")
        self.expected = expected
        self.succeeded = 0
        self.failed = 0
        self._seen: set[int] = set()
        self._on_complete = on_complete
        self._done = asyncio.Event()

    @property
    def received(self) -> int:
        return self.succeeded + self.failed

    @property
    def complete(self) -> bool:
        return self._done.is_set()

    def record(self, index: int, *, ok: bool) -> bool:
        """Record the response for ``index``.

        Returns:
            True if this response completed the tally

        Raises:
            ValueError: If index is out of range or already recorded
        """
        if not 0 <= index < self.expected:
            raise ValueError(f"Slice index {index} out of range [0, {self.expected})")
        if index in self._seen:
            raise ValueError(f"Slice index {index} already recorded")

        self._seen.add(index)
        if ok:
            self.succeeded += 1
        else:
            self.failed += 1

        if self.received < self.expected:
            return False

        self._done.set()
        if self._on_complete is not None:
            self._on_complete(self)
        return True

    async def wait(self) -> None:
        await self._done.wait()


class ReorderBuffer(Generic[T]):
    """Releases out-of-order arrivals in index order.

    ``None`` marks an index that will never carry an item (a failed
    slice); it still advances the buffer.
    """

    def __init__(self) -> None:
        self._next = 0
        self._pending: Dict[int, Optional[T]] = {}

    @property
    def waiting(self) -> int:
        return len(self._pending)

    def push(self, index: int, item: Optional[T]) -> List[Optional[T]]:
        if index < self._next or index in self._pending:
            raise ValueError(f"Index {index} already pushed")
        self._pending[index] = item

        ready: List[Optional[T]] = []
        while self._next in self._pending:
            ready.append(self._pending.pop(self._next))
            self._next += 1
        return ready


class SliceCollector:
    """Fetches slices of an opened document."""

    def __init__(self, *, document: Optional[str] = None) -> None:
        self.document = document

    async def fetch_slice(self, handle: FileHandle, index: int) -> Slice:
        """Fetch a single slice.

        Raises:
            SliceError: If the index is out of range or the host fails
        """
        return await self._receive(index, self._request(handle, index))

    async def collect(
        self,
        handle: FileHandle,
        listener: Optional["TransferListener"] = None,
        *,
        ordered: bool = False,
    ) -> CollectionResult:
        """Request every slice of ``handle`` and wait for all responses.

        Requests go out in increasing index order before any response is
        awaited. Each response is handed to ``listener`` as it arrives (or
        in index order when ``ordered`` is set). A failed slice is reported
        through ``listener.on_error`` and does not stop the others.
        ``listener.on_complete`` fires exactly once, after the last
        response.

        An exception raised by a listener hook is re-raised only once
        every response has been recorded.
        """
        if listener is None:
            from slicecourier.lib.report import TransferListener

            listener = TransferListener()

        outcome = CollectionResult(slice_count=handle.slice_count)
        buffer: Optional[ReorderBuffer[Slice]] = ReorderBuffer() if ordered else None
        tally = CompletionTally(
            handle.slice_count,
            on_complete=lambda _tally: listener.on_complete(outcome),
        )

        pending = [self._request(handle, index) for index in range(handle.slice_count)]
        outcome.requested = len(pending)
        logger.debug("Issued %d slice request(s)", outcome.requested)

        delivered = await asyncio.gather(
            *(
                self._deliver(index, fut, tally, listener, buffer, outcome)
                for index, fut in enumerate(pending)
            ),
            return_exceptions=True,
        )
        await tally.wait()

        # A failing listener hook surfaces only after the last response
        for delivery in delivered:
            if isinstance(delivery, BaseException):
                raise delivery

        logger.info(
            "Collected %d/%d slice(s), %d failed",
            len(outcome.slices),
            outcome.slice_count,
            len(outcome.errors),
        )
        return outcome

    def _request(self, handle: FileHandle, index: int) -> "asyncio.Future[AsyncResult]":
        if handle.released:
            raise SliceError("File handle already released", index=index, document=self.document)
        if not 0 <= index < handle.slice_count:
            raise SliceError(
                f"Slice index out of range (slice count {handle.slice_count})",
                index=index,
                document=self.document,
            )
        return request(lambda cb: handle.host_file.get_slice_async(index, cb))

    async def _receive(self, index: int, pending: "asyncio.Future[AsyncResult]") -> Slice:
        result = await pending
        if not result.succeeded:
            message = result.error.message if result.error else "Unknown host error"
            raise SliceError(message, index=index, document=self.document)

        host_slice = result.value
        if host_slice.index != index:
            logger.warning("Requested slice %d but host answered with %d", index, host_slice.index)
        return Slice(
            index=host_slice.index,
            size_bytes=host_slice.size,
            payload=bytes(host_slice.data),
        )

    async def _deliver(
        self,
        index: int,
        pending: "asyncio.Future[AsyncResult]",
        tally: CompletionTally,
        listener: "TransferListener",
        buffer: Optional[ReorderBuffer[Slice]],
        outcome: CollectionResult,
    ) -> None:
        item: Optional[Slice] = None
        try:
            try:
                item = await self._receive(index, pending)
            except SliceError as exc:
                logger.warning("Slice %d failed: %s", index, exc.message)
                outcome.errors.append(exc)
                listener.on_error(exc)
            else:
                outcome.slices.append(item)

            if buffer is None:
                ready: List[Optional[Slice]] = [item]
            else:
                ready = buffer.push(index, item)
            for received in ready:
                if received is not None:
                    listener.on_slice(received)
        finally:
            tally.record(index, ok=item is not None)
