from __future__ import annotations

import io
import struct
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, Tuple

from .cipher import xor_name
from .constants import (
    HEADER_SIZE,
    LEGACY_TABLE_MAGIC,
    MODERN_ENTRY_MAGIC,
    MODERN_RECORD_FIXED_SIZE,
    MODERN_SEED_SIZE,
    MODERN_TERMINATOR_SIZE,
    U32_MAX,
)
from .errors import FieldOverflowError, MagicReadFailedError, TruncatedArchiveError
from .keystream import KeyStream, advance_table
from .pathutil import from_archive_name, to_archive_name


_U32 = struct.Struct("<I")
_MODERN_FIELDS = struct.Struct("<III")   # size, entry magic, name_len (offset read first)
_MODERN_RECORD = struct.Struct("<IIII")  # offset, size, entry magic, name_len


@dataclass
class Entry:
    name: str
    offset: int = 0
    size: int = 0
    magic: int = 0
    # filesystem path read at flush time (writer only)
    source: Optional[str] = field(default=None, repr=False, compare=False)


def check_u32(value: int, what: str) -> int:
    if value < 0 or value > U32_MAX:
        raise FieldOverflowError(f"{what} {value} does not fit in a 32-bit field")
    return value


def checked_add(a: int, b: int, what: str = "archive offset") -> int:
    return check_u32(a + b, what)


def _read_u32(f: BinaryIO) -> Optional[int]:
    raw = f.read(4)
    if len(raw) != 4:
        return None
    return _U32.unpack(raw)[0]


def _read_name(f: BinaryIO, name_len: int, archive_size: int, path: str) -> bytes:
    pos = f.tell()
    # bound the request first; a garbage length must not trigger a huge read
    if name_len > archive_size - pos:
        raise TruncatedArchiveError(
            f"{path}: entry name of {name_len} bytes at offset {pos} runs past end of archive"
        )
    raw = f.read(name_len)
    if len(raw) != name_len:
        raise TruncatedArchiveError(f"{path}: short read of entry name at offset {pos}")
    return raw


def read_legacy_table(f: BinaryIO, archive_size: int, path: str = "<stream>") -> Tuple[List[Entry], int]:
    """
    Parse a version 1/2 index, where records are interleaved with data.

    Each record is ``name_len, name, size`` followed by ``size`` bytes of
    data. The table generator advances once per u32 field and once per name
    byte; the data of an entry is ciphered from the generator state reached
    right after its size field.

    The loop ends without error on a short length/size read, on a name that
    is not valid UTF-8, or on an entry that would extend past the end of the
    archive. Short name bytes after a decoded length raise
    ``TruncatedArchiveError``.
    """
    stream = KeyStream(LEGACY_TABLE_MAGIC)
    entries: List[Entry] = []
    f.seek(HEADER_SIZE)
    while True:
        name_len = _read_u32(f)
        if name_len is None:
            break
        name_len ^= stream.next_word()
        raw = bytearray(_read_name(f, name_len, archive_size, path))
        for i in range(name_len):
            raw[i] ^= stream.next_byte()
        try:
            name = from_archive_name(bytes(raw))
        except UnicodeDecodeError:
            break
        size = _read_u32(f)
        if size is None:
            break
        size ^= stream.next_word()
        offset = f.tell()
        if offset + size > archive_size:
            break
        entries.append(Entry(name=name, offset=offset, size=size, magic=stream.state))
        f.seek(size, io.SEEK_CUR)
    return entries, stream.state


def read_modern_table(f: BinaryIO, archive_size: int, path: str = "<stream>") -> Tuple[List[Entry], int]:
    """
    Parse a version 3 index.

    The seed word after the header is stepped once with the 9/3 generator to
    give the table magic, which masks every field of every record. A record
    whose decoded offset is 0 terminates the table.
    """
    f.seek(HEADER_SIZE)
    seed = _read_u32(f)
    if seed is None:
        raise MagicReadFailedError(f"{path}: magic number read failed")
    table_magic = advance_table(seed)
    entries: List[Entry] = []
    while True:
        offset = _read_u32(f)
        if offset is None:
            break
        offset ^= table_magic
        if offset == 0:
            break
        raw = f.read(_MODERN_FIELDS.size)
        if len(raw) != _MODERN_FIELDS.size:
            break
        size, magic, name_len = (v ^ table_magic for v in _MODERN_FIELDS.unpack(raw))
        name_raw = _read_name(f, name_len, archive_size, path)
        try:
            name = from_archive_name(xor_name(name_raw, table_magic))
        except UnicodeDecodeError:
            break
        if offset + size > archive_size:
            break
        entries.append(Entry(name=name, offset=offset, size=size, magic=magic))
    return entries, table_magic


def write_legacy_record(f: BinaryIO, stream: KeyStream, name: str, size: int) -> int:
    """Write one v1/v2 record header and return the magic for its data."""
    raw = to_archive_name(name)
    name_len = check_u32(len(raw), f"name length of {name!r}")
    check_u32(size, f"size of {name!r}")
    f.write(_U32.pack(name_len ^ stream.next_word()))
    f.write(bytes(b ^ stream.next_byte() for b in raw))
    f.write(_U32.pack(size ^ stream.next_word()))
    return stream.state


def layout_modern(entries: List[Entry], start: int = HEADER_SIZE) -> int:
    """Assign data offsets and magics for a v3 archive.

    Layout is header, seed, records, terminator, then every entry's data in
    table order. Returns the offset where data begins.
    """
    off = start + MODERN_SEED_SIZE
    for e in entries:
        name_len = check_u32(len(to_archive_name(e.name)), f"name length of {e.name!r}")
        off = checked_add(off, MODERN_RECORD_FIXED_SIZE + name_len, "table size")
    off = checked_add(off, MODERN_TERMINATOR_SIZE, "table size")
    data_start = off
    for e in entries:
        e.offset = off
        e.magic = MODERN_ENTRY_MAGIC
        off = checked_add(off, e.size, f"data offset after {e.name!r}")
    return data_start


def pack_modern_table(entries: List[Entry], seed: int) -> Tuple[bytes, int]:
    """Serialize the v3 table (seed, records, terminator) for laid-out entries."""
    table_magic = advance_table(seed)
    out = bytearray(_U32.pack(seed))
    for e in entries:
        raw = to_archive_name(e.name)
        out += _MODERN_RECORD.pack(
            e.offset ^ table_magic,
            e.size ^ table_magic,
            e.magic ^ table_magic,
            len(raw) ^ table_magic,
        )
        out += xor_name(raw, table_magic)
    out += _U32.pack(0 ^ table_magic)
    return bytes(out), table_magic
