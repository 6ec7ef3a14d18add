"""Observability utilities for slice transfers.

Combines phase timing and transfer metrics with structured logging
helpers, so a transfer run can emit JSON-friendly logs and a metrics
summary from the same module.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional

__all__ = [
    "PhaseTimer",
    "TransferMetrics",
    "JSONFormatter",
    "TransferLogger",
    "get_transfer_logger",
    "setup_logging",
]


@dataclass
class PhaseTimer:
    """Timer tracking a named transfer phase."""

    name: str
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    def stop(self) -> float:
        """Stop the timer and return the duration (seconds)."""
        self.end_time = time.time()
        return self.duration

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        end = self.end_time or time.time()
        return end - self.start_time


class TransferMetrics:
    """Phase timings and counters for one transfer."""

    def __init__(self, document: Optional[str] = None):
        self.document = document
        self._start_time = time.time()
        self._end_time: Optional[float] = None
        self._phases: List[PhaseTimer] = []
        self._values: Dict[str, Any] = {}

    @contextmanager
    def time_phase(self, name: str) -> Generator[PhaseTimer, None, None]:
        """Context manager that tracks a phase duration."""
        timer = PhaseTimer(name=name)
        self._phases.append(timer)
        try:
            yield timer
        finally:
            timer.stop()

    def record(self, name: str, value: Any) -> None:
        self._values[name] = value

    def finish(self) -> None:
        """Mark the transfer as complete."""
        self._end_time = time.time()

    @property
    def total_duration(self) -> float:
        """Total duration in seconds."""
        end = self._end_time or time.time()
        return end - self._start_time

    def to_log_dict(self) -> Dict[str, Any]:
        """Flatten metrics for structured logging."""
        result: Dict[str, Any] = {
            "document": self.document,
            "total_duration_seconds": round(self.total_duration, 3),
        }
        for phase in self._phases:
            result[f"phase_{phase.name}_seconds"] = round(phase.duration, 3)
        for name, value in self._values.items():
            result[f"metric_{name}"] = value
        return result


class JSONFormatter(logging.Formatter):
    """Formatter that outputs log records as JSON.

    Example output:
        {"timestamp": "2025-01-15T10:30:00.123Z", "level": "INFO",
         "logger": "slicecourier.lib.collector", "message": "Collected 3/3 slice(s), 0 failed"}
    """

    _RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
        "message",
        "asctime",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.pathname:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Attributes set via extra=
        extra_attrs = {k: v for k, v in record.__dict__.items() if k not in self._RESERVED}
        if extra_attrs:
            log_data["extra"] = extra_attrs

        return json.dumps(log_data, default=str)


class TransferLogger:
    """Logger that attaches transfer context to every record.

    Example:
        logger = TransferLogger(__name__)
        logger.set_context(document="deck.pptx", chunk_size_bytes=4194304)
        logger.info("Starting transfer")
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)
        self._context: Dict[str, Any] = {}

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self._context)

    def set_context(self, **kwargs: Any) -> None:
        self._context.update(kwargs)

    def clear_context(self) -> None:
        self._context.clear()

    def _log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        extra = kwargs.pop("extra", {})
        extra.update(self._context)
        self._logger.log(level, msg, *args, extra=extra, **kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, *args, **kwargs)

    def metric(self, name: str, value: Any, unit: Optional[str] = None, **tags: Any) -> None:
        """Log a metric value.

        Args:
            name: Metric name (e.g., "slices_received", "duration_seconds")
            value: Metric value
            unit: Optional unit (e.g., "slices", "seconds", "bytes")
            **tags: Additional tags for the metric
        """
        extra: Dict[str, Any] = {
            "metric_name": name,
            "metric_value": value,
        }
        if unit:
            extra["metric_unit"] = unit
        extra.update(self._context)
        extra.update(tags)
        self._logger.info(f"METRIC {name}={value}", extra=extra)


def get_transfer_logger(name: str) -> TransferLogger:
    return TransferLogger(name)


def setup_logging(
    verbose: bool = False,
    json_format: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure logging for a transfer run.

    Args:
        verbose: Enable debug-level logging
        json_format: Use JSON output format (for log aggregation)
        log_file: Optional file path to write logs to
    """
    level = logging.DEBUG if verbose else logging.INFO

    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Logs go to stderr so stdout carries only the report
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Suppress noisy loggers
    logging.getLogger("fsspec").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
