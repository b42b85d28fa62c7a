from __future__ import annotations

import struct
from typing import BinaryIO

from .constants import HEADER_MAGIC, HEADER_SIZE, SUPPORTED_VERSIONS
from .errors import InvalidHeaderError, InvalidVersionError


_HEADER_STRUCT = struct.Struct("<6s B B")
# magic[6], reserved NUL u8, version u8


def check_version(version: int) -> int:
    if version not in SUPPORTED_VERSIONS:
        raise InvalidVersionError(f"Unsupported archive version {version} (must be 1-3)")
    return version


def pack_header(version: int) -> bytes:
    return _HEADER_STRUCT.pack(HEADER_MAGIC, 0, check_version(version))


def read_header(f: BinaryIO, path: str = "<stream>") -> int:
    """Read and validate the 8-byte header, returning the format version."""
    f.seek(0)
    raw = f.read(HEADER_SIZE)
    if len(raw) != HEADER_SIZE:
        raise InvalidHeaderError(f"{path}: file too short for an archive header")
    magic, _reserved, version = _HEADER_STRUCT.unpack(raw)
    if magic != HEADER_MAGIC:
        raise InvalidHeaderError(f"{path}: header mismatch, not an RGSSAD archive")
    try:
        return check_version(version)
    except InvalidVersionError as exc:
        raise InvalidVersionError(f"{path}: {exc}") from None
