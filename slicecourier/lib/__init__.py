"""Transfer library modules.

This package contains the host contract, the slicing protocol and the
ambient utilities (errors, logging, configuration) around it.
"""

from slicecourier.lib.acquirer import FileAcquirer, FileHandle
from slicecourier.lib.collector import (
    CollectionResult,
    CompletionTally,
    ReorderBuffer,
    Slice,
    SliceCollector,
)
from slicecourier.lib.config_loader import (
    TransferConfig,
    load_transfer_config,
    transfer_config_from_dict,
)
from slicecourier.lib.env import expand_config_values, expand_env_vars, load_env_file
from slicecourier.lib.errors import (
    AcquisitionError,
    ConfigurationError,
    ReleaseError,
    SliceError,
    TransferError,
)
from slicecourier.lib.host import (
    AsyncResult,
    DocumentHost,
    FileType,
    FsspecDocumentHost,
    HostError,
    HostFile,
    HostSlice,
)
from slicecourier.lib.observability import (
    JSONFormatter,
    PhaseTimer,
    TransferLogger,
    TransferMetrics,
    get_transfer_logger,
    setup_logging,
)
from slicecourier.lib.report import (
    EntryKind,
    Notification,
    RawDataViewer,
    Report,
    ReportEntry,
    TransferListener,
)
from slicecourier.lib.sizes import bytes_to_kb, bytes_to_mb, mb_to_bytes, trim_size
from slicecourier.lib.transfer import SliceTransfer, TransferResult, transmit_chunk

__all__ = [
    # Core protocol
    "FileAcquirer",
    "FileHandle",
    "SliceCollector",
    "Slice",
    "CollectionResult",
    "CompletionTally",
    "ReorderBuffer",
    "SliceTransfer",
    "TransferResult",
    "transmit_chunk",
    # Host
    "DocumentHost",
    "HostFile",
    "HostSlice",
    "HostError",
    "AsyncResult",
    "FileType",
    "FsspecDocumentHost",
    # Report
    "TransferListener",
    "Report",
    "ReportEntry",
    "EntryKind",
    "Notification",
    "RawDataViewer",
    # Errors
    "TransferError",
    "AcquisitionError",
    "SliceError",
    "ReleaseError",
    "ConfigurationError",
    # Config
    "TransferConfig",
    "load_transfer_config",
    "transfer_config_from_dict",
    "expand_env_vars",
    "expand_config_values",
    "load_env_file",
    # Observability
    "JSONFormatter",
    "PhaseTimer",
    "TransferLogger",
    "TransferMetrics",
    "get_transfer_logger",
    "setup_logging",
    # Sizes
    "bytes_to_kb",
    "bytes_to_mb",
    "mb_to_bytes",
    "trim_size",
]
