"""Host Document API.

The host exposes an opened document only as fixed-size slices. Every call
is asynchronous and callback-style: the callback receives an
``AsyncResult`` whose ``status`` is ``"succeeded"`` or ``"failed"``, with
``error.message`` set on failure.

``FsspecDocumentHost`` implements the contract on top of any
fsspec-compatible filesystem (local files, ``memory://``, ``s3://`` ...),
so the transfer protocol can run outside of an add-in sandbox.
"""

from __future__ import annotations

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

import fsspec
from fsspec.spec import AbstractFileSystem

logger = logging.getLogger(__name__)

__all__ = [
    "SUCCEEDED",
    "FAILED",
    "DEFAULT_MAX_SLICE_BYTES",
    "FileType",
    "HostError",
    "AsyncResult",
    "HostSlice",
    "HostFile",
    "DocumentHost",
    "FsspecDocumentHost",
    "get_fsspec_filesystem",
    "request",
]

SUCCEEDED = "succeeded"
FAILED = "failed"

# Largest slice the host hands out (4 MiB)
DEFAULT_MAX_SLICE_BYTES = 4 * 1024 * 1024


class FileType(Enum):
    """Document encodings a host may be asked for."""

    COMPRESSED = "compressed"
    TEXT = "text"
    PDF = "pdf"


@dataclass(frozen=True)
class HostError:
    """Error payload attached to a failed host call."""

    message: str
    name: str = "HostError"


@dataclass(frozen=True)
class AsyncResult:
    """Outcome delivered to every host callback."""

    status: str
    value: Any = None
    error: Optional[HostError] = None

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED

    @classmethod
    def ok(cls, value: Any = None) -> "AsyncResult":
        return cls(status=SUCCEEDED, value=value)

    @classmethod
    def failed(cls, message: str) -> "AsyncResult":
        return cls(status=FAILED, error=HostError(message))


Callback = Callable[[AsyncResult], None]


@dataclass(frozen=True)
class HostSlice:
    """One slice as returned by the host."""

    index: int
    size: int
    data: bytes


class HostFile(ABC):
    """An opened document. Holds host resources until closed."""

    size: int
    slice_count: int

    @abstractmethod
    def get_slice_async(self, index: int, callback: Callback) -> None:
        """Request slice ``index``; ``callback`` receives a ``HostSlice``."""

    @abstractmethod
    def close_async(self, callback: Callback) -> None:
        """Release the host-side resources held for this file."""


class DocumentHost(ABC):
    """Entry point of the host API."""

    @abstractmethod
    def get_file_async(
        self,
        file_type: FileType,
        options: Dict[str, Any],
        callback: Callback,
    ) -> None:
        """Open the document; ``callback`` receives a ``HostFile``.

        ``options["slice_size"]`` is the maximum slice size in bytes.
        """


def request(start: Callable[[Callback], None]) -> "asyncio.Future[AsyncResult]":
    """Issue a callback-style host call and return a future for its result.

    ``start`` is invoked immediately with the callback to hand to the host,
    so the call is issued before this function returns. The callback may
    fire from any thread.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[AsyncResult] = loop.create_future()

    def _resolve(result: AsyncResult) -> None:
        if not future.done():
            future.set_result(result)

    def callback(result: AsyncResult) -> None:
        loop.call_soon_threadsafe(_resolve, result)

    start(callback)
    return future


def get_fsspec_filesystem(path: str, **storage_options: Any) -> AbstractFileSystem:
    """Get an fsspec filesystem for the given path.

    Args:
        path: Document path, optionally with a protocol prefix (s3://, memory://)
        **storage_options: Protocol-specific options (credentials, etc.)

    Returns:
        Configured fsspec filesystem instance
    """
    if "://" in path:
        protocol = path.split("://")[0]
    else:
        protocol = "file"

    return fsspec.filesystem(protocol, **storage_options)


class _HostFailure(Exception):
    """Raised inside host work to produce a failed ``AsyncResult``."""


class FsspecHostFile(HostFile):
    """A document opened through ``FsspecDocumentHost``."""

    def __init__(self, host: "FsspecDocumentHost", size: int, slice_size: int) -> None:
        self._host = host
        self.size = size
        self.slice_size = slice_size
        self.slice_count = max(1, math.ceil(size / slice_size))
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def get_slice_async(self, index: int, callback: Callback) -> None:
        self._host._dispatch(lambda: self._read_slice(index), callback)

    def close_async(self, callback: Callback) -> None:
        self._host._dispatch(self._close, callback)

    def _read_slice(self, index: int) -> HostSlice:
        if self._closed:
            raise _HostFailure("File is closed")
        if not 0 <= index < self.slice_count:
            raise _HostFailure("Invalid slice index")

        start = index * self.slice_size
        end = min(start + self.slice_size, self.size)
        data = b""
        if end > start:
            data = self._host.fs.cat_file(self._host.path, start=start, end=end)
        return HostSlice(index=index, size=len(data), data=data)

    def _close(self) -> None:
        if self._closed:
            raise _HostFailure("File is closed")
        self._closed = True


class FsspecDocumentHost(DocumentHost):
    """Host serving a single document from an fsspec filesystem.

    Host work runs on an executor and callbacks fire from the worker
    thread, so completions can arrive in any order.

    Example:
        >>> host = FsspecDocumentHost("./decks/quarterly.pptx")
        >>> host = FsspecDocumentHost("s3://decks/quarterly.pptx", anon=True)
    """

    def __init__(
        self,
        path: str,
        *,
        max_slice_bytes: int = DEFAULT_MAX_SLICE_BYTES,
        executor: Optional[Executor] = None,
        **storage_options: Any,
    ) -> None:
        self.path = path
        self.max_slice_bytes = max_slice_bytes
        self.storage_options = storage_options
        self._executor = executor
        self._fs: Optional[AbstractFileSystem] = None

    @property
    def fs(self) -> AbstractFileSystem:
        """Lazy-load the filesystem."""
        if self._fs is None:
            self._fs = get_fsspec_filesystem(self.path, **self.storage_options)
        return self._fs

    def get_file_async(
        self,
        file_type: FileType,
        options: Dict[str, Any],
        callback: Callback,
    ) -> None:
        slice_size = options.get("slice_size", self.max_slice_bytes)
        self._dispatch(lambda: self._open(file_type, slice_size), callback)

    def _open(self, file_type: FileType, slice_size: Any) -> FsspecHostFile:
        if file_type is not FileType.COMPRESSED:
            raise _HostFailure(f"Unsupported file type: {file_type.value}")
        if (
            not isinstance(slice_size, int)
            or slice_size <= 0
            or slice_size > self.max_slice_bytes
        ):
            raise _HostFailure(f"Invalid slice size: {slice_size}")

        size = self.fs.size(self.path)
        if size is None:
            raise _HostFailure(f"Unable to determine size of {self.path}")

        logger.debug("Opened %s (%d bytes, slice size %d)", self.path, size, slice_size)
        return FsspecHostFile(self, int(size), slice_size)

    def _dispatch(self, work: Callable[[], Any], callback: Callback) -> None:
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, work)

        def _done(fut: "asyncio.Future[Any]") -> None:
            if fut.cancelled():
                callback(AsyncResult.failed("Operation cancelled"))
                return
            exc = fut.exception()
            if exc is not None:
                logger.debug("Host call failed: %s", exc)
                callback(AsyncResult.failed(str(exc) or type(exc).__name__))
                return
            callback(AsyncResult.ok(fut.result()))

        future.add_done_callback(_done)
