"""
Front-end code version tracking for wall-display hot reload.

The version is the first 8 hex digits of the MD5 of ``index.html`` in the
public directory. The scheduler calls :meth:`CodeVersion.check`
periodically; when the hash moves, displays are told to reload via a
``code-update`` stream event and the ``changed`` flag is raised until a
display acknowledges it.

CHANGELOG:
- 2026-10-08: Initial creation

TODO:
- None
"""

from __future__ import annotations

import hashlib
import logging
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

HASH_LENGTH = 8
_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def compute_code_hash(index_html: Path) -> str:
    """Return the short MD5 of *index_html*, or ``""`` if it cannot be read."""
    try:
        content = index_html.read_bytes()
    except FileNotFoundError:
        return ""
    except OSError:
        logger.error("Error calculating code hash for %s", index_html, exc_info=True)
        return ""
    return hashlib.md5(content, usedforsecurity=False).hexdigest()[:HASH_LENGTH]


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


class CodeVersion:
    """Current front-end hash plus the pending-reload flag.

    Args:
        index_html: Path to the front-end entry page.
    """

    def __init__(self, index_html: str | Path) -> None:
        self._index_html = Path(index_html)
        self._file_hash = compute_code_hash(self._index_html)
        self.hash = self._file_hash
        self.timestamp = _now_iso()
        self.changed = False

    def check(self) -> bool:
        """Recompute the hash. Returns True if it changed since the last check."""
        new_hash = compute_code_hash(self._index_html)
        if new_hash == self._file_hash:
            return False
        self._file_hash = new_hash
        self.hash = new_hash
        self.timestamp = _now_iso()
        self.changed = True
        logger.info("Front-end code change detected, hash: %s", new_hash)
        return True

    def acknowledge(self) -> None:
        self.changed = False

    def force_refresh(self) -> str:
        """Mark a reload as pending with a fresh time-based hash."""
        self.hash = _base36(int(time.time() * 1000))
        self.timestamp = _now_iso()
        self.changed = True
        logger.info("Force refresh triggered, hash: %s", self.hash)
        return self.hash

    def snapshot(self) -> dict[str, Any]:
        return {"hash": self.hash, "timestamp": self.timestamp, "changed": self.changed}
