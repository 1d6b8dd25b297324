"""orjson helpers for the JSON documents the monitor persists.

Every persisted document (processed-state mapping, matter list, status
snapshot) is read and written whole:

- read_json_file: parse a file, returning a default when it is missing.
- write_json_file: serialize and atomically replace a file.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import orjson


def safe_loads(data: str | bytes) -> Any:
    """Parse JSON text or bytes with orjson."""
    return orjson.loads(data)


def dumps_pretty(value: Any) -> bytes:
    return orjson.dumps(value, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS)


def read_json_file(path: Path, default: Any = None) -> Any:
    """Return the parsed content of ``path`` or ``default`` if it does not exist.

    Parse errors propagate as ``orjson.JSONDecodeError`` (a ``ValueError``) so
    callers can decide how to treat a corrupt file.
    """
    if not path.exists():
        return default
    return safe_loads(path.read_bytes())


def write_json_file(path: Path, value: Any) -> None:
    """Write ``value`` to ``path`` through a temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_bytes(dumps_pretty(value))
    os.replace(tmp, path)


__all__ = ["safe_loads", "dumps_pretty", "read_json_file", "write_json_file"]
