"""Transfer report: the consumer side of the slicing protocol.

``TransferListener`` is the event contract the core calls into. ``Report``
turns those events into an append-only list of human-readable entries and
error notifications, and ``RawDataViewer`` exposes each slice's payload
on demand.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from slicecourier.lib.errors import TransferError
from slicecourier.lib.sizes import bytes_to_kb, bytes_to_mb, trim_size

if TYPE_CHECKING:
    from slicecourier.lib.acquirer import FileHandle
    from slicecourier.lib.collector import CollectionResult, Slice

__all__ = [
    "COMPLETION_MESSAGE",
    "EntryKind",
    "ReportEntry",
    "Notification",
    "TransferListener",
    "Report",
    "RawDataViewer",
]

COMPLETION_MESSAGE = "File has been sent!"


class TransferListener:
    """Receives transfer events. All hooks default to no-ops."""

    def on_start(self) -> None:
        pass

    def on_file_opened(self, handle: "FileHandle") -> None:
        pass

    def on_slice(self, received: "Slice") -> None:
        pass

    def on_error(self, error: TransferError) -> None:
        pass

    def on_complete(self, outcome: "CollectionResult") -> None:
        pass


class EntryKind(Enum):
    FILE_SIZE = "file_size"
    SLICE_COUNT = "slice_count"
    SLICE = "slice"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ReportEntry:
    kind: EntryKind
    text: str
    index: Optional[int] = None


@dataclass(frozen=True)
class Notification:
    title: str
    message: str


class RawDataViewer:
    """Shows a slice's raw (base64) payload on demand.

    Payloads are registered per slice index. ``show`` waits until the
    viewer is ready, which happens once ``load`` has run.

    Example:
        viewer = RawDataViewer()
        viewer.register(slice_)
        viewer.load(render=print)
        await viewer.show(0)
    """

    def __init__(self, render: Optional[Callable[[int, str], None]] = None) -> None:
        self._render = render
        self._payloads: Dict[int, str] = {}
        self._ready = asyncio.Event()

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    @property
    def indices(self) -> List[int]:
        return sorted(self._payloads)

    def register(self, received: "Slice") -> None:
        self._payloads[received.index] = received.encoded()

    def clear(self) -> None:
        self._payloads.clear()

    def load(self, render: Optional[Callable[[int, str], None]] = None) -> None:
        """Install the renderer and mark the viewer ready."""
        if render is not None:
            self._render = render
        self._ready.set()

    async def show(self, index: int, timeout: Optional[float] = None) -> str:
        """Render and return the encoded payload of slice ``index``.

        Waits for ``load`` if the viewer is not ready yet.

        Raises:
            KeyError: If no slice with that index was received
            asyncio.TimeoutError: If the viewer is not loaded within ``timeout``
        """
        encoded = self._payloads[index]
        await asyncio.wait_for(self._ready.wait(), timeout)
        if self._render is not None:
            self._render(index, encoded)
        return encoded


class Report(TransferListener):
    """Append-only transfer report.

    Entries appear in the order events arrive: file size, slice count,
    one entry per received slice, then the completion marker.
    """

    def __init__(self, viewer: Optional[RawDataViewer] = None) -> None:
        self.entries: List[ReportEntry] = []
        self.notifications: List[Notification] = []
        self.viewer = viewer if viewer is not None else RawDataViewer()

    def reset(self) -> None:
        self.entries.clear()
        self.notifications.clear()
        self.viewer.clear()

    def on_start(self) -> None:
        self.reset()

    @property
    def lines(self) -> List[str]:
        return [entry.text for entry in self.entries]

    @property
    def completed(self) -> bool:
        return any(entry.kind is EntryKind.COMPLETE for entry in self.entries)

    def notify(self, title: str, message: str) -> None:
        self.notifications.append(Notification(title=title, message=message))

    def on_file_opened(self, handle: "FileHandle") -> None:
        self.entries.append(
            ReportEntry(
                EntryKind.FILE_SIZE,
                f"Total file size: {trim_size(bytes_to_mb(handle.size_bytes))} MB",
            )
        )
        self.entries.append(
            ReportEntry(EntryKind.SLICE_COUNT, f"Number of slices: {handle.slice_count}")
        )

    def on_slice(self, received: "Slice") -> None:
        self.viewer.register(received)
        self.entries.append(
            ReportEntry(
                EntryKind.SLICE,
                f"Sending slice {received.index + 1}: "
                f"{trim_size(bytes_to_kb(received.size_bytes))} KB",
                index=received.index,
            )
        )

    def on_error(self, error: TransferError) -> None:
        self.notify("Error", error.message)

    def on_complete(self, outcome: "CollectionResult") -> None:
        if outcome.errors:
            text = f"File transfer finished with {len(outcome.errors)} failed slice(s)"
        else:
            text = COMPLETION_MESSAGE
        self.entries.append(ReportEntry(EntryKind.COMPLETE, text))
