from __future__ import annotations

import os
from typing import BinaryIO, Callable, List, Optional

from .cipher import ByteCipher
from .constants import (
    DEFAULT_BUFFER_SIZE,
    LEGACY_TABLE_MAGIC,
    LEGACY_VERSIONS,
    MODERN_TABLE_SEED,
    U32_MASK,
    VERSION_RGSSAD,
)
from .errors import TruncatedArchiveError
from .header import check_version, pack_header
from .keystream import KeyStream
from .pathutil import to_archive_name
from .table import (
    Entry,
    check_u32,
    layout_modern,
    pack_modern_table,
    write_legacy_record,
)


class ArchiveWriter:
    """Builds a new archive from a list of pending entries.

    Entries are collected with :meth:`add`/:meth:`add_file`; nothing but the
    header is written until :meth:`flush`, because the table must be fully
    known before the first byte of file data.
    """

    def __init__(
        self,
        out_path: str,
        version: int = VERSION_RGSSAD,
        seed: int = MODERN_TABLE_SEED,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        self.out_path = str(out_path)
        self.version = check_version(version)
        self.f: Optional[BinaryIO] = None
        if self.version in LEGACY_VERSIONS:
            self.table_magic = LEGACY_TABLE_MAGIC
        else:
            # written as-is and stepped once at flush time
            self.table_magic = seed & U32_MASK
        if buffer_size <= 0 or buffer_size % 4:
            raise ValueError("buffer_size must be a positive multiple of 4")
        self.buffer_size = buffer_size
        self.entries: List[Entry] = []
        self.flushed = False

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return
        self.f = open(self.out_path, "wb")
        self.f.write(pack_header(self.version))

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None

    def add(self, name: str, size: int, source: Optional[str] = None) -> Entry:
        """Queue an entry of ``size`` bytes stored under ``name``."""
        if self.flushed:
            raise RuntimeError("Archive already flushed")
        check_u32(len(to_archive_name(name)), f"name length of {name!r}")
        check_u32(size, f"size of {name!r}")
        e = Entry(name=name, size=size, source=source)
        self.entries.append(e)
        return e

    def add_file(self, name: str, fs_path: str) -> Entry:
        return self.add(name, os.path.getsize(fs_path), source=str(fs_path))

    def flush(self, root_dir: Optional[str] = None, on_entry: Optional[Callable[[Entry], None]] = None):
        """
        Write the entry table and every entry's ciphered data.

        Source bytes come from ``entry.source`` or ``root_dir/name``. Any
        failure aborts the flush and leaves a partial archive on disk.
        """
        if self.f is None:
            raise RuntimeError("Archive not open")
        if self.flushed:
            raise RuntimeError("Archive already flushed")
        self.flushed = True
        if self.version in LEGACY_VERSIONS:
            self._flush_legacy(root_dir, on_entry)
        else:
            self._flush_modern(root_dir, on_entry)
        self.f.flush()

    # internals
    def _flush_legacy(self, root_dir, on_entry):
        assert self.f is not None
        stream = KeyStream(self.table_magic)
        for e in self.entries:
            if on_entry is not None:
                on_entry(e)
            e.magic = write_legacy_record(self.f, stream, e.name, e.size)
            e.offset = self.f.tell()
            self._copy_data(e, root_dir)
        self.table_magic = stream.state

    def _flush_modern(self, root_dir, on_entry):
        assert self.f is not None
        layout_modern(self.entries, start=self.f.tell())
        table, self.table_magic = pack_modern_table(self.entries, self.table_magic)
        self.f.write(table)
        for e in self.entries:
            if on_entry is not None:
                on_entry(e)
            self._copy_data(e, root_dir)

    def _source_path(self, e: Entry, root_dir: Optional[str]) -> str:
        if e.source is not None:
            return e.source
        if root_dir is None:
            raise ValueError(f"No source for entry {e.name!r}; pass root_dir")
        return os.path.join(root_dir, e.name)

    def _copy_data(self, e: Entry, root_dir: Optional[str]) -> None:
        assert self.f is not None
        src = self._source_path(e, root_dir)
        cipher = ByteCipher(e.magic)
        remaining = e.size
        with open(src, "rb") as rf:
            while remaining > 0:
                chunk = rf.read(min(self.buffer_size, remaining))
                if not chunk:
                    raise TruncatedArchiveError(
                        f"{src}: source ended {remaining} bytes short of recorded size {e.size}"
                    )
                self.f.write(cipher.apply(chunk))
                remaining -= len(chunk)
