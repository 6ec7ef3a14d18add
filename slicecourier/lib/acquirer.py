"""File Acquirer: opens a document as slices and releases it again."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from slicecourier.lib.errors import AcquisitionError, ConfigurationError, ReleaseError
from slicecourier.lib.host import DocumentHost, FileType, HostFile, request

logger = logging.getLogger(__name__)

__all__ = ["FileHandle", "FileAcquirer"]


@dataclass
class FileHandle:
    """An opened document.

    ``slice_count`` is fixed when the document is opened. The handle must
    be released exactly once, after every slice request has been issued.
    """

    size_bytes: int
    slice_count: int
    chunk_size_bytes: int
    host_file: HostFile = field(repr=False)
    released: bool = False


class FileAcquirer:
    """Opens documents on a host and releases their handles.

    Example:
        acquirer = FileAcquirer(host)
        handle = await acquirer.open(4 * 1024 * 1024)
        ...
        await acquirer.close(handle)
    """

    def __init__(
        self,
        host: DocumentHost,
        file_type: FileType = FileType.COMPRESSED,
        *,
        document: Optional[str] = None,
    ) -> None:
        self.host = host
        self.file_type = file_type
        self.document = document

    async def open(self, chunk_size_bytes: int) -> FileHandle:
        """Open the document, sliced at ``chunk_size_bytes``.

        Args:
            chunk_size_bytes: Upper bound on each slice, in bytes

        Returns:
            FileHandle with the document size and slice count

        Raises:
            ConfigurationError: If chunk_size_bytes is not a positive integer
            AcquisitionError: If the host fails to open the document
        """
        if (
            not isinstance(chunk_size_bytes, int)
            or isinstance(chunk_size_bytes, bool)
            or chunk_size_bytes <= 0
        ):
            raise ConfigurationError(
                "Chunk size must be a positive number of bytes",
                field="chunk_size_bytes",
                value=chunk_size_bytes,
                document=self.document,
            )

        logger.debug("Requesting %s file with %d-byte slices", self.file_type.value, chunk_size_bytes)
        result = await request(
            lambda cb: self.host.get_file_async(
                self.file_type, {"slice_size": chunk_size_bytes}, cb
            )
        )
        if not result.succeeded:
            message = result.error.message if result.error else "Unknown host error"
            raise AcquisitionError(
                message,
                chunk_size_bytes=chunk_size_bytes,
                document=self.document,
            )

        host_file: HostFile = result.value
        handle = FileHandle(
            size_bytes=host_file.size,
            slice_count=host_file.slice_count,
            chunk_size_bytes=chunk_size_bytes,
            host_file=host_file,
        )
        logger.info(
            "Opened document: %d bytes in %d slice(s)",
            handle.size_bytes,
            handle.slice_count,
        )
        return handle

    async def close(self, handle: FileHandle) -> None:
        """Release ``handle``.

        Raises:
            ReleaseError: If the handle was already released or the host
                fails to release it
        """
        if handle.released:
            raise ReleaseError("File handle already released", document=self.document)

        # Released at most once, even when the host call fails
        handle.released = True
        result = await request(handle.host_file.close_async)
        if not result.succeeded:
            message = result.error.message if result.error else "Unknown host error"
            raise ReleaseError(message, document=self.document)

        logger.debug("Released file handle")
