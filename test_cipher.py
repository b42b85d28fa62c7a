from __future__ import annotations

import os
import random
import struct
import unittest

from rgssarc.cipher import ByteCipher, xor_name, xor_words
from rgssarc.keystream import KeyStream, advance, advance_table, keystream_words


def _reference_cipher(data: bytes, magic: int) -> bytes:
    # byte-at-a-time definition of the data cipher
    out = bytearray(data)
    state = magic
    for i in range(len(out)):
        out[i] ^= (state >> (8 * (i % 4))) & 0xFF
        if i % 4 == 3:
            state = (state * 7 + 3) & 0xFFFFFFFF
    return bytes(out)


def _apply_in_chunks(data: bytes, magic: int, sizes) -> bytes:
    cipher = ByteCipher(magic)
    out = bytearray()
    pos = 0
    for n in sizes:
        out += cipher.apply(data[pos : pos + n])
        pos += n
    assert pos == len(data)
    return bytes(out)


class KeystreamTests(unittest.TestCase):
    def test_advance_wraps(self):
        self.assertEqual(advance(0), (0, 3))
        self.assertEqual(advance(0xFFFFFFFF), (0xFFFFFFFF, 0xFFFFFFFC))
        self.assertEqual(advance(0xFFFFFFFF, 9), (0xFFFFFFFF, 0xFFFFFFFA))

    def test_advance_table(self):
        self.assertEqual(advance_table(0), 3)
        self.assertEqual(advance_table(1), 12)
        self.assertEqual(advance_table(0xFFFFFFFF), 0xFFFFFFFA)

    def test_keystream_emits_old_state(self):
        ks = KeyStream(0xDEADCAFE)
        self.assertEqual(ks.next_word(), 0xDEADCAFE)
        self.assertEqual(ks.state, (0xDEADCAFE * 7 + 3) & 0xFFFFFFFF)
        self.assertEqual(ks.next_byte(), ((0xDEADCAFE * 7 + 3) & 0xFFFFFFFF) & 0xFF)

    def test_keystream_words_deterministic(self):
        a, sa = keystream_words(12345, 20)
        b, sb = keystream_words(12345, 20)
        self.assertEqual(a, b)
        self.assertEqual(sa, sb)
        ks = KeyStream(12345)
        self.assertEqual(a, [ks.next_word() for _ in range(20)])
        self.assertEqual(sa, ks.state)


class ByteCipherTests(unittest.TestCase):
    def test_matches_reference(self):
        for length in range(0, 33):
            data = bytes(range(length))
            out, _ = xor_words(data, 0xDEADCAFE)
            self.assertEqual(out, _reference_cipher(data, 0xDEADCAFE))

    def test_self_inverse(self):
        data = os.urandom(1001)
        for seed in (0, 1, 0xDEADCAFE, 0xFFFFFFFF):
            enc, _ = xor_words(data, seed)
            dec, _ = xor_words(enc, seed)
            self.assertEqual(dec, data)

    def test_ten_bytes_one_call_vs_six_plus_four(self):
        data = b"0123456789"
        whole = _apply_in_chunks(data, 0xCAFEBABE, [10])
        split = _apply_in_chunks(data, 0xCAFEBABE, [6, 4])
        self.assertEqual(whole, split)

    def test_every_two_way_split(self):
        data = os.urandom(23)
        expected = _reference_cipher(data, 0x12345678)
        for cut in range(len(data) + 1):
            got = _apply_in_chunks(data, 0x12345678, [cut, len(data) - cut])
            self.assertEqual(got, expected, f"split at {cut}")

    def test_random_splits_and_roundtrip(self):
        rng = random.Random(7)
        data = bytes(rng.randrange(256) for _ in range(777))
        expected = _reference_cipher(data, 0xDEADCAFE)
        for _ in range(20):
            sizes = []
            left = len(data)
            while left:
                n = min(left, rng.randrange(0, 13))
                sizes.append(n)
                left -= n
            enc = _apply_in_chunks(data, 0xDEADCAFE, sizes)
            self.assertEqual(enc, expected)
            self.assertEqual(_apply_in_chunks(enc, 0xDEADCAFE, list(reversed(sizes))), data)

    def test_state_tracks_completed_words(self):
        c = ByteCipher(5)
        c.apply(b"abc")
        self.assertEqual((c.state, c.position), (5, 3))
        c.apply(b"d")
        self.assertEqual((c.state, c.position), (38, 4))
        _, state = xor_words(b"abcde", 5)
        self.assertEqual(state, 38)

    def test_empty_buffer_is_noop(self):
        c = ByteCipher(0xDEADCAFE)
        c.apply(b"xy")
        before = (c.state, c.position)
        self.assertEqual(c.apply(b""), b"")
        self.assertEqual((c.state, c.position), before)
        self.assertEqual(xor_words(b"", 99), (b"", 99))

    def test_name_mask_cycles_fixed_word(self):
        magic = 0x11223344
        data = b"abcdefghij"
        mask = struct.pack("<I", magic)
        expected = bytes(b ^ mask[i % 4] for i, b in enumerate(data))
        self.assertEqual(xor_name(data, magic), expected)
        self.assertEqual(xor_name(expected, magic), data)
        self.assertEqual(xor_name(b"", magic), b"")


if __name__ == "__main__":
    unittest.main()
