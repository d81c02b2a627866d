"""
Whole-document JSON persistence for the small bounded lists.

Alerts, analytics entries, timers and the settings document are each kept
as one JSON file that is rewritten on every mutation. Writes go to a
``.tmp`` sibling first and are then moved over the target with
``os.replace`` so a crash mid-write leaves either the old or the new
document on disk, never a truncated one.

CHANGELOG:
- 2026-10-03: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def load_json(path: str | Path, default: Any) -> Any:
    """Load a JSON document, returning *default* if it is missing or corrupt.

    Args:
        path: Document path.
        default: Value returned when the file does not exist or cannot be
            parsed. Returned as-is, so pass a fresh object per call.

    Returns:
        The parsed JSON value, or *default*.
    """
    path = Path(path)
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("Failed to load %s, using defaults", path, exc_info=True)
        return default


def save_json(path: str | Path, data: Any) -> None:
    """Atomically write *data* as pretty-printed JSON to *path*.

    Raises:
        OSError: If the temp file cannot be written or moved into place.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(path.name + ".tmp")
    with open(temp_path, "w", encoding="utf-8") as handle:
        json.dump(data, handle, indent=2)
    os.replace(temp_path, path)
