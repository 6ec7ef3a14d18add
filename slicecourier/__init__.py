"""Chunked document transfer over a slice-only host API.

A host exposes an opened document only in fixed-size slices. This
package opens the document, requests every slice concurrently, reports
each one as it arrives and releases the handle once all responses are in.

Usage:
    python -m slicecourier ./decks/quarterly.pptx --chunk-size-mb 4
"""

from slicecourier.lib.acquirer import FileAcquirer, FileHandle
from slicecourier.lib.collector import Slice, SliceCollector
from slicecourier.lib.errors import AcquisitionError, ReleaseError, SliceError, TransferError
from slicecourier.lib.host import FileType, FsspecDocumentHost
from slicecourier.lib.report import Report
from slicecourier.lib.transfer import SliceTransfer, TransferResult, transmit_chunk

__all__ = [
    "FileAcquirer",
    "FileHandle",
    "Slice",
    "SliceCollector",
    "TransferError",
    "AcquisitionError",
    "SliceError",
    "ReleaseError",
    "FileType",
    "FsspecDocumentHost",
    "Report",
    "SliceTransfer",
    "TransferResult",
    "transmit_chunk",
]
