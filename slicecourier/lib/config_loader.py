"""YAML configuration loader for slice transfers.

Example YAML (quarterly.yaml):
    document: "${DECK_ROOT}/quarterly.pptx"
    chunk_size_mb: 4
    file_type: compressed
    ordered_report: false
    storage_options:
      anon: true

Usage:
    from slicecourier.lib.config_loader import load_transfer_config
    config = load_transfer_config("./quarterly.yaml")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from slicecourier.lib.env import expand_config_values
from slicecourier.lib.errors import ConfigurationError
from slicecourier.lib.host import DEFAULT_MAX_SLICE_BYTES, FileType
from slicecourier.lib.sizes import BYTES_PER_MB, mb_to_bytes

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_CHUNK_SIZE_MB",
    "TransferConfig",
    "load_transfer_config",
    "transfer_config_from_dict",
]

DEFAULT_CHUNK_SIZE_MB = 4

FILE_TYPE_MAP = {
    "compressed": FileType.COMPRESSED,
    "text": FileType.TEXT,
    "pdf": FileType.PDF,
}

_KNOWN_KEYS = {
    "document",
    "chunk_size_mb",
    "file_type",
    "ordered_report",
    "max_slice_mb",
    "storage_options",
}


@dataclass
class TransferConfig:
    """Settings for one transfer."""

    document: str
    chunk_size_mb: float = DEFAULT_CHUNK_SIZE_MB
    file_type: FileType = FileType.COMPRESSED
    ordered_report: bool = False
    max_slice_mb: float = DEFAULT_MAX_SLICE_BYTES / BYTES_PER_MB
    storage_options: Dict[str, Any] = field(default_factory=dict)

    @property
    def chunk_size_bytes(self) -> int:
        return mb_to_bytes(self.chunk_size_mb)

    @property
    def max_slice_bytes(self) -> int:
        return mb_to_bytes(self.max_slice_mb)

    def validate(self) -> None:
        """Check field values.

        Raises:
            ConfigurationError: Naming the first invalid field
        """
        if not self.document:
            raise ConfigurationError("A document path is required", field="document")
        for name in ("chunk_size_mb", "max_slice_mb"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ConfigurationError(
                    f"{name} must be a positive number",
                    field=name,
                    value=value,
                )
        if self.chunk_size_bytes < 1:
            raise ConfigurationError(
                "chunk_size_mb is smaller than one byte",
                field="chunk_size_mb",
                value=self.chunk_size_mb,
            )
        if self.chunk_size_bytes > self.max_slice_bytes:
            raise ConfigurationError(
                "chunk_size_mb exceeds the host's maximum slice size",
                field="chunk_size_mb",
                value=self.chunk_size_mb,
                suggestion=f"Use at most {self.max_slice_mb} MB",
            )
        if not isinstance(self.storage_options, dict):
            raise ConfigurationError(
                "storage_options must be a mapping",
                field="storage_options",
                value=self.storage_options,
            )


def transfer_config_from_dict(config: Dict[str, Any]) -> TransferConfig:
    """Build and validate a TransferConfig from a plain dict.

    Environment references in ``document`` and ``storage_options`` are expanded.
    """
    unknown = set(config) - _KNOWN_KEYS
    if unknown:
        raise ConfigurationError(
            "Unknown configuration keys",
            field=", ".join(sorted(unknown)),
        )

    expanded = expand_config_values(config)

    file_type_name = str(expanded.get("file_type", "compressed")).lower()
    if file_type_name not in FILE_TYPE_MAP:
        raise ConfigurationError(
            "Unsupported file_type",
            field="file_type",
            value=file_type_name,
            suggestion=f"Use one of: {', '.join(sorted(FILE_TYPE_MAP))}",
        )

    kwargs: Dict[str, Any] = {
        "document": expanded.get("document", ""),
        "file_type": FILE_TYPE_MAP[file_type_name],
        "ordered_report": bool(expanded.get("ordered_report", False)),
        "storage_options": expanded.get("storage_options") or {},
    }
    for name in ("chunk_size_mb", "max_slice_mb"):
        if name in expanded:
            kwargs[name] = expanded[name]

    transfer_config = TransferConfig(**kwargs)
    transfer_config.validate()
    return transfer_config


def load_transfer_config(path: Union[str, Path]) -> TransferConfig:
    """Load a transfer configuration from a YAML file.

    Relative document paths starting with "./" or "../" are resolved
    against the config file's directory.

    Raises:
        ConfigurationError: If the file is missing, unparseable or invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}", field="config")

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}", field="config") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file must contain a mapping: {config_path}",
            field="config",
        )

    document = data.get("document")
    if isinstance(document, str) and document.startswith(("./", "../")):
        data["document"] = str(config_path.parent / document)

    logger.debug("Loaded transfer config from %s", config_path)
    return transfer_config_from_dict(data)
