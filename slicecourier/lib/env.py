"""Environment references in transfer configs.

Only ``document`` and ``storage_options`` are expanded: those are where
host locations and remote credentials live, usually supplied through a
``.env`` file passed with ``--env-file``.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dotenv import load_dotenv

__all__ = ["EXPANDED_KEYS", "expand_env_vars", "expand_config_values", "load_env_file"]

EXPANDED_KEYS = frozenset({"document", "storage_options"})

# ${VAR_NAME} or $VAR_NAME
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def load_env_file(path: Optional[Union[str, Path]] = None, *, override: bool = False) -> bool:
    """Load a .env file into the process environment.

    Returns:
        False when no file was found.
    """
    return load_dotenv(dotenv_path=path, override=override)


def expand_env_vars(value: str) -> str:
    """Substitute environment references in ``value``.

    Unset variables are left as written, so a document path such as
    ``s3://bucket/${QUARTER}.pptx`` fails at open time with its reference
    still visible.
    """
    return ENV_VAR_PATTERN.sub(
        lambda match: os.environ.get(match.group(1) or match.group(2), match.group(0)),
        value,
    )


def _expand(value: Any) -> Any:
    if isinstance(value, str):
        return expand_env_vars(value)
    if isinstance(value, dict):
        return {key: _expand(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand(item) for item in value]
    return value


def expand_config_values(config: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a raw transfer config with its location values expanded.

    Example:
        >>> os.environ["DECK_ROOT"] = "/srv/decks"
        >>> expand_config_values({"document": "${DECK_ROOT}/q1.pptx", "chunk_size_mb": 2})
        {'document': '/srv/decks/q1.pptx', 'chunk_size_mb': 2}
    """
    return {
        key: _expand(value) if key in EXPANDED_KEYS else value
        for key, value in config.items()
    }
