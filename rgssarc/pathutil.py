from __future__ import annotations

import os
from typing import Optional


def from_archive_name(raw: bytes) -> str:
    """Decode a stored name and convert backslashes to slashes.

    Raises UnicodeDecodeError on malformed UTF-8.
    """
    return raw.decode("utf-8").replace("\\", "/")


def to_archive_name(name: str) -> bytes:
    """Encode a name for storage: slashes become backslashes."""
    return name.replace("/", "\\").encode("utf-8")


def norm_path(p: str) -> str:
    """Canonical forward-slash form used for lookups."""
    return p.replace("\\", "/")


def safe_join(root: str, name: str) -> Optional[str]:
    """Join an archive name under ``root``.

    Returns None when the name is absolute or has a '..' segment, since it
    would land outside ``root``.
    """
    p = norm_path(name)
    parts = [q for q in p.split("/") if q not in ("", ".")]
    if not parts or p.startswith("/") or any(q == ".." for q in parts):
        return None
    if os.path.splitdrive(parts[0])[0]:
        return None
    return os.path.join(root, *parts)
