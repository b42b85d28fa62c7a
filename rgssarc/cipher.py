from __future__ import annotations

import struct
from typing import Tuple

from Cryptodome.Util.strxor import strxor

from .keystream import keystream_words


def _keystream_bytes(state: int, skip: int, length: int) -> Tuple[bytes, list, int]:
    """Keystream bytes for ``length`` bytes starting ``skip`` bytes into the current word."""
    count = (skip + length + 3) // 4
    words, state = keystream_words(state, count)
    raw = struct.pack("<%dI" % count, *words)
    return raw[skip : skip + length], words, state


def xor_words(data: bytes, state: int) -> Tuple[bytes, int]:
    """Cipher a whole buffer that starts at stream offset 0.

    Returns the transformed bytes and the generator state after the last
    complete word; a trailing partial word does not advance the state.
    """
    cipher = ByteCipher(state)
    out = cipher.apply(data)
    return out, cipher.state


def xor_name(data: bytes, table_magic: int) -> bytes:
    """Mask a v3 name: byte ``i`` against byte ``i % 4`` of the fixed table magic."""
    if not data:
        return b""
    mask = struct.pack("<I", table_magic) * ((len(data) + 3) // 4)
    return strxor(bytes(data), mask[: len(data)])


class ByteCipher:
    """Streaming XOR cipher for one entry's data region.

    Byte ``i`` of the stream is XORed with byte ``i % 4`` (little-endian) of
    the generator state after ``i // 4`` advances from ``magic``. ``position``
    counts bytes already processed so calls may start and stop anywhere
    inside a word. The transformation is its own inverse.
    """

    def __init__(self, magic: int):
        self.magic = magic
        self.state = magic
        self.position = 0

    def apply(self, data: bytes) -> bytes:
        length = len(data)
        if length == 0:
            return b""
        skip = self.position & 3
        ks, words, end_state = _keystream_bytes(self.state, skip, length)
        completed = (skip + length) // 4
        # the last word is still in use when the buffer stops mid-word
        self.state = words[completed] if completed < len(words) else end_state
        self.position += length
        return strxor(bytes(data), ks)
