# Magic and versions
HEADER_MAGIC = b"RGSSAD"        # 6 bytes, followed by a NUL and the version byte
HEADER_SIZE = 8

VERSION_RGSSAD = 1
VERSION_RGSS2A = 2
VERSION_RGSS3A = 3

LEGACY_VERSIONS = (VERSION_RGSSAD, VERSION_RGSS2A)
SUPPORTED_VERSIONS = (VERSION_RGSSAD, VERSION_RGSS2A, VERSION_RGSS3A)


# Keystream generator parameters
U32_MASK = 0xFFFFFFFF
U32_MAX = U32_MASK

DATA_MULTIPLIER = 7
TABLE_MULTIPLIER = 9
INCREMENT = 3


# Cipher seeds
LEGACY_TABLE_MAGIC = 0xDEADCAFE
MODERN_TABLE_SEED = 0
MODERN_ENTRY_MAGIC = 0xDEADCAFE


# v3 table layout: offset, size, magic, name_len (4 x u32) + name bytes
MODERN_RECORD_FIXED_SIZE = 16
MODERN_SEED_SIZE = 4
MODERN_TERMINATOR_SIZE = 4


DEFAULT_BUFFER_SIZE = 8192  # must stay a multiple of 4

EXTENSION_VERSIONS = {
    ".rgssad": VERSION_RGSSAD,
    ".rgss2a": VERSION_RGSS2A,
    ".rgss3a": VERSION_RGSS3A,
}
