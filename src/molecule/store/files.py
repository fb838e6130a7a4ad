"""
=============================================================================
JSON ARRAY FILES
=============================================================================

Every persisted file in the store is a single JSON array, read and
rewritten in full:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    READ-MODIFY-WRITE CYCLE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   read_array(path)  ──►  [ {...}, {...} ]                           │
    │                                 │                                    │
    │                                 ▼  append / remove in memory         │
    │                          [ {...}, {...}, {...} ]                     │
    │                                 │                                    │
    │   write_array(path) ◄───────────┘  whole file rewritten             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There is no atomic replace: a failed write leaves the file in whatever
state the underlying write() left it. Callers serialize cycles on the
same file with the locks in store.locks.
"""

import json
import logging
from pathlib import Path
from typing import Any, List

from .errors import StoreError


logger = logging.getLogger(__name__)


def read_array(path: Path) -> List[Any]:
    """
    Read and parse a JSON array file.

    Raises:
        StoreError: If the file is missing, unreadable, not JSON, or not
                    an array.
    """
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise StoreError(f"Failed to read {path}: {e}", path=path) from e

    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StoreError(f"Failed to parse {path}: {e}", path=path) from e

    if not isinstance(value, list):
        raise StoreError(f"Expected a JSON array in {path}", path=path)

    return value


def write_array(path: Path, items: List[Any]) -> None:
    """
    Serialize items as a JSON array and overwrite the file.

    Raises:
        StoreError: If the file cannot be written.
    """
    data = json.dumps(items).encode("utf-8")
    try:
        path.write_bytes(data)
    except OSError as e:
        raise StoreError(f"Failed to write {path}: {e}", path=path) from e

    logger.debug(f"Wrote {len(items)} entries to {path}")
