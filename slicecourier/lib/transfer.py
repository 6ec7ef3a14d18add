"""Transfer orchestration: open, collect every slice, release.

The handle is released only after every slice response (success or
failure) has arrived, never while requests are still in flight.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union

from slicecourier.lib.acquirer import FileAcquirer, FileHandle
from slicecourier.lib.collector import CollectionResult, SliceCollector
from slicecourier.lib.errors import AcquisitionError, ReleaseError, TransferError
from slicecourier.lib.host import DocumentHost, FileType
from slicecourier.lib.observability import TransferMetrics, get_transfer_logger
from slicecourier.lib.report import Report, TransferListener
from slicecourier.lib.sizes import mb_to_bytes

__all__ = ["TransferResult", "SliceTransfer", "transmit_chunk"]


@dataclass
class TransferResult:
    """Outcome of one transfer."""

    chunk_size_bytes: int
    handle: Optional[FileHandle] = None
    collection: Optional[CollectionResult] = None
    errors: List[TransferError] = field(default_factory=list)
    released: bool = False

    @property
    def opened(self) -> bool:
        return self.handle is not None

    @property
    def succeeded(self) -> bool:
        return (
            self.collection is not None
            and self.collection.complete
            and self.released
            and not self.errors
        )

    @property
    def size_bytes(self) -> Optional[int]:
        return self.handle.size_bytes if self.handle else None

    @property
    def slice_count(self) -> Optional[int]:
        return self.handle.slice_count if self.handle else None


class SliceTransfer:
    """Runs the full slicing protocol against a host.

    Every failure is handed to ``listener.on_error`` and recorded on the
    result; none of them aborts the slices still in flight.

    Example:
        report = Report()
        transfer = SliceTransfer(FsspecDocumentHost("deck.pptx"), report)
        result = await transfer.run(4 * 1024 * 1024)
    """

    def __init__(
        self,
        host: DocumentHost,
        listener: Optional[TransferListener] = None,
        *,
        file_type: FileType = FileType.COMPRESSED,
        ordered: bool = False,
        document: Optional[str] = None,
    ) -> None:
        self.listener = listener if listener is not None else TransferListener()
        self.ordered = ordered
        self.document = document
        self.acquirer = FileAcquirer(host, file_type, document=document)
        self.collector = SliceCollector(document=document)
        self.logger = get_transfer_logger(__name__)

    async def run(self, chunk_size_bytes: int) -> TransferResult:
        """Transfer the document in slices of at most ``chunk_size_bytes``.

        Raises:
            ConfigurationError: If chunk_size_bytes is not a positive integer
        """
        self.logger.set_context(document=self.document, chunk_size_bytes=chunk_size_bytes)
        try:
            return await self._run(chunk_size_bytes)
        finally:
            self.logger.clear_context()

    async def _run(self, chunk_size_bytes: int) -> TransferResult:
        result = TransferResult(chunk_size_bytes=chunk_size_bytes)
        metrics = TransferMetrics(document=self.document)
        self.listener.on_start()

        try:
            with metrics.time_phase("open"):
                handle = await self.acquirer.open(chunk_size_bytes)
        except AcquisitionError as exc:
            self.logger.error("Could not open document: %s", exc.message)
            self._fail(result, exc)
            return result

        result.handle = handle
        self.logger.debug(
            "Opened document: %d bytes in %d slice(s)", handle.size_bytes, handle.slice_count
        )
        self.listener.on_file_opened(handle)

        try:
            with metrics.time_phase("collect"):
                result.collection = await self.collector.collect(
                    handle, self.listener, ordered=self.ordered
                )
            result.errors.extend(result.collection.errors)
        finally:
            await self._release(handle, result)

        metrics.finish()
        metrics.record("slices_received", len(result.collection.slices))
        metrics.record("slices_failed", len(result.collection.errors))
        metrics.record("bytes_received", result.collection.total_bytes)
        self.logger.metric("transfer_duration", round(metrics.total_duration, 3), unit="seconds")
        log = self.logger.warning if result.errors else self.logger.info
        log(
            "Transfer finished: %d/%d slice(s) received",
            len(result.collection.slices),
            handle.slice_count,
            extra=metrics.to_log_dict(),
        )
        return result

    async def _release(self, handle: FileHandle, result: TransferResult) -> None:
        try:
            await self.acquirer.close(handle)
        except ReleaseError as exc:
            self.logger.error("Could not release document: %s", exc.message)
            self._fail(result, exc)
        else:
            result.released = True

    def _fail(self, result: TransferResult, error: TransferError) -> None:
        result.errors.append(error)
        self.listener.on_error(error)


async def transmit_chunk(
    host: DocumentHost,
    chunk_size_mb: Union[int, float],
    report: Optional[Report] = None,
    *,
    ordered: bool = False,
    document: Optional[str] = None,
) -> TransferResult:
    """Transfer a document using a chunk size given in megabytes.

    Args:
        host: Document host to read from
        chunk_size_mb: Chunk size as presented to users, in MB
        report: Report to populate (a fresh one if omitted)
        ordered: Report slices in index order instead of arrival order
        document: Document name used in errors and logs

    Returns:
        TransferResult for the run
    """
    listener = report if report is not None else Report()
    transfer = SliceTransfer(host, listener, ordered=ordered, document=document)
    return await transfer.run(mb_to_bytes(chunk_size_mb))
