"""Byte-size conversion and display helpers."""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal
from typing import Union

__all__ = [
    "BYTES_PER_KB",
    "BYTES_PER_MB",
    "bytes_to_kb",
    "bytes_to_mb",
    "mb_to_bytes",
    "trim_size",
]

BYTES_PER_KB = 1024
BYTES_PER_MB = 1024 * 1024

_TWO_PLACES = Decimal("0.01")


def bytes_to_kb(size_bytes: int) -> float:
    return size_bytes / BYTES_PER_KB


def bytes_to_mb(size_bytes: int) -> float:
    return size_bytes / BYTES_PER_MB


def mb_to_bytes(size_mb: Union[int, float]) -> int:
    """Convert a megabyte figure (as shown to users) to a byte count."""
    return int(size_mb * BYTES_PER_MB)


def trim_size(size: Union[int, float]) -> str:
    """Render a size with exactly two decimal digits.

    Extra digits are cut off, never rounded:

        >>> trim_size(3)
        '3.00'
        >>> trim_size(3.1)
        '3.10'
        >>> trim_size(12.345)
        '12.34'
    """
    # str() keeps the shortest repr, so 12.345 is not seen as 12.3449999...
    value = Decimal(str(size)).quantize(_TWO_PLACES, rounding=ROUND_DOWN)
    return format(value, "f")
