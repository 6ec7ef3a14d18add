"""Scriptable in-process host for protocol tests.

Responses are delivered through the running event loop. Slice responses
can be given an explicit arrival order, and any call can be scripted to
fail with a host message.
"""

from __future__ import annotations

import asyncio
import math
from typing import Any, Dict, List, Optional, Sequence

from slicecourier.lib.host import (
    AsyncResult,
    DocumentHost,
    FileType,
    HostFile,
    HostSlice,
)

# Gap between scripted slice arrivals, in seconds
ARRIVAL_STEP = 0.001


def make_document(size: int) -> bytes:
    """Deterministic document content of ``size`` bytes."""
    pattern = bytes(range(256))
    return (pattern * (size // len(pattern) + 1))[:size]


class FakeHostFile(HostFile):
    def __init__(self, host: "FakeHost", slice_size: int) -> None:
        self._host = host
        self.size = len(host.document)
        self.slice_size = slice_size
        self.slice_count = max(1, math.ceil(self.size / slice_size))

    def get_slice_async(self, index: int, callback: Any) -> None:
        host = self._host
        host.slice_requests.append(index)

        if index in host.slice_errors:
            result = AsyncResult.failed(host.slice_errors[index])
        else:
            start = index * self.slice_size
            data = host.document[start:start + self.slice_size]
            echoed = host.echo_index.get(index, index)
            result = AsyncResult.ok(HostSlice(index=echoed, size=len(data), data=data))

        delay = host.arrival_delay(index, self.slice_count)
        asyncio.get_running_loop().call_later(delay, host._respond, callback, result)

    def close_async(self, callback: Any) -> None:
        host = self._host
        host.close_calls += 1
        host.responses_at_close.append(host.slice_responses)
        if host.close_error is not None:
            result = AsyncResult.failed(host.close_error)
        else:
            result = AsyncResult.ok()
        asyncio.get_running_loop().call_soon(callback, result)


class FakeHost(DocumentHost):
    """Host serving an in-memory document.

    Args:
        document: Document bytes
        open_error: Host message to fail ``get_file_async`` with
        slice_errors: Host message per failing slice index
        close_error: Host message to fail ``close_async`` with
        arrival_order: Slice indices in the order their responses arrive
        echo_index: Index the host reports back, per requested index
    """

    def __init__(
        self,
        document: bytes,
        *,
        open_error: Optional[str] = None,
        slice_errors: Optional[Dict[int, str]] = None,
        close_error: Optional[str] = None,
        arrival_order: Optional[Sequence[int]] = None,
        echo_index: Optional[Dict[int, int]] = None,
    ) -> None:
        self.document = document
        self.open_error = open_error
        self.slice_errors = slice_errors or {}
        self.close_error = close_error
        self.arrival_order = list(arrival_order) if arrival_order is not None else None
        self.echo_index = echo_index or {}

        self.open_calls: List[Dict[str, Any]] = []
        self.slice_requests: List[int] = []
        self.slice_responses = 0
        self.close_calls = 0
        self.responses_at_close: List[int] = []

    def arrival_delay(self, index: int, slice_count: int) -> float:
        if self.arrival_order is None:
            return 0.0
        return (self.arrival_order.index(index) + 1) * ARRIVAL_STEP

    def get_file_async(self, file_type: FileType, options: Dict[str, Any], callback: Any) -> None:
        self.open_calls.append(dict(options, file_type=file_type))
        if self.open_error is not None:
            result = AsyncResult.failed(self.open_error)
        else:
            result = AsyncResult.ok(FakeHostFile(self, options["slice_size"]))
        asyncio.get_running_loop().call_soon(callback, result)

    def _respond(self, callback: Any, result: AsyncResult) -> None:
        self.slice_responses += 1
        callback(result)
