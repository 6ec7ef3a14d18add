"""Structured exception hierarchy for slice transfers.

Each failure mode of the transfer protocol has its own type so callers
can tell an open failure from a single failed slice or a failed release.
Every error carries the host-provided message plus optional context.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "TransferError",
    "AcquisitionError",
    "SliceError",
    "ReleaseError",
    "ConfigurationError",
]


class TransferError(Exception):
    """Base exception for all transfer errors.

    Provides structured error information for debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        document: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.message = message
        self.document = document
        self.details = details or {}
        self.suggestion = suggestion

        parts = [message]

        if document:
            parts.insert(0, f"[{document}]")

        if details:
            detail_lines = [f"  {k}: {v}" for k, v in details.items()]
            parts.append("\nDetails:")
            parts.extend(detail_lines)

        if suggestion:
            parts.append(f"\nSuggestion: {suggestion}")

        super().__init__("\n".join(parts) if len(parts) > 1 else message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "document": self.document,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class AcquisitionError(TransferError):
    """The host refused to open the document.

    No slice collection may follow an acquisition failure.
    """

    def __init__(
        self,
        message: str,
        *,
        chunk_size_bytes: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        self.chunk_size_bytes = chunk_size_bytes

        details = kwargs.pop("details", {})
        if chunk_size_bytes is not None:
            details["chunk_size_bytes"] = chunk_size_bytes

        super().__init__(message, details=details, **kwargs)


class SliceError(TransferError):
    """A single slice fetch failed.

    Terminal for that slice only; other in-flight requests keep going.
    """

    def __init__(self, message: str, *, index: int, **kwargs: Any) -> None:
        self.index = index

        details = kwargs.pop("details", {})
        details["slice_index"] = index

        super().__init__(message, details=details, **kwargs)


class ReleaseError(TransferError):
    """Closing the file handle failed or was attempted twice."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = "Host-side resources for the document may still be held."

        super().__init__(message, suggestion=suggestion, **kwargs)


class ConfigurationError(TransferError):
    """Invalid transfer configuration or argument."""

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value

        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(message, details=details, **kwargs)
