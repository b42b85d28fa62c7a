from __future__ import annotations

import io
import os
from typing import BinaryIO, Dict, List, Optional, Union

from .cipher import ByteCipher
from .constants import DEFAULT_BUFFER_SIZE, LEGACY_VERSIONS
from .errors import EntryNotFoundError, RgssError, TruncatedArchiveError
from .header import read_header
from .pathutil import norm_path
from .table import Entry, read_legacy_table, read_modern_table


class EntryReader(io.RawIOBase):
    """Bounded, deciphering reader over one entry's data region.

    Owns its own file handle and cipher state, so several readers over the
    same archive do not interfere. Never yields more than ``entry.size``
    bytes.
    """

    def __init__(self, path: str, entry: Entry):
        super().__init__()
        self.entry = entry
        self._fh: Optional[BinaryIO] = None
        self._fh = open(path, "rb")
        self._fh.seek(entry.offset)
        self._cipher = ByteCipher(entry.magic)
        self._remaining = entry.size
        self._path = path

    def readable(self) -> bool:
        return True

    @property
    def remaining(self) -> int:
        return self._remaining

    def readinto(self, b) -> int:
        if self._fh is None:
            raise ValueError("I/O operation on closed entry reader")
        limit = min(len(b), self._remaining)
        if limit == 0:
            return 0
        raw = self._fh.read(limit)
        if not raw:
            raise TruncatedArchiveError(
                f"{self._path}: data of {self.entry.name!r} ends "
                f"{self._remaining} bytes short of its recorded size"
            )
        n = len(raw)
        b[:n] = self._cipher.apply(raw)
        self._remaining -= n
        return n

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
        super().close()


class ArchiveReader:
    def __init__(self, path: str):
        self.path = str(path)
        self.f: Optional[BinaryIO] = None
        self.version: int = 0
        self.table_magic: int = 0
        self.archive_size: int = 0
        self.entries: List[Entry] = []
        self.by_name: Dict[str, Entry] = {}

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, name: str) -> bool:
        return norm_path(name) in self.by_name

    def open(self):
        """Read the header and the whole entry table."""
        if self.f is not None:
            return
        self.f = open(self.path, "rb")
        try:
            self.archive_size = os.fstat(self.f.fileno()).st_size
            self.version = read_header(self.f, self.path)
            if self.version in LEGACY_VERSIONS:
                entries, magic = read_legacy_table(self.f, self.archive_size, self.path)
            else:
                entries, magic = read_modern_table(self.f, self.archive_size, self.path)
            self.entries = entries
            self.table_magic = magic
            # later duplicates shadow earlier ones
            self.by_name = {e.name: e for e in entries}
            self.f.seek(0)
        except (RgssError, OSError, ValueError):
            # Ensure file handle is closed on failure to avoid leaks
            self.close()
            raise

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None

    def list(self) -> List[Entry]:
        return self.entries

    def get(self, name: str) -> Entry:
        try:
            return self.by_name[norm_path(name)]
        except KeyError:
            raise EntryNotFoundError(f"{self.path}: no entry named {name!r}") from None

    def extract(self, entry: Union[Entry, str]) -> EntryReader:
        """Open a bounded reader producing the plaintext of ``entry``."""
        if self.f is None:
            raise RuntimeError("Archive not open")
        if not isinstance(entry, Entry):
            entry = self.get(entry)
        return EntryReader(self.path, entry)

    def read(self, entry: Union[Entry, str]) -> bytes:
        with self.extract(entry) as r:
            return r.readall()

    def copy_entry(self, entry: Union[Entry, str], out: BinaryIO, buffer_size: int = DEFAULT_BUFFER_SIZE) -> int:
        """Stream an entry's plaintext into an open, writable file object."""
        written = 0
        buf = bytearray(buffer_size)
        with self.extract(entry) as r:
            while True:
                n = r.readinto(buf)
                if not n:
                    break
                out.write(memoryview(buf)[:n])
                written += n
        return written
