"""
rgssarc: reader and writer for RGSSAD game archives

Handles the three generations of the format:

- version 1 (.rgssad) and version 2 (.rgss2a): records interleaved with data,
  index fields ciphered with a running 7/3 generator seeded at 0xDEADCAFE
- version 3 (.rgss3a): index ahead of the data, masked with a fixed table
  magic derived from a stored seed, each entry ciphered from its own seed

The cipher is a reversible obfuscation, not encryption.
"""

__version__ = "0.1.4"

__all__ = [
    "constants",
    "errors",
    "keystream",
    "cipher",
    "table",
    "reader",
    "writer",
]

# Programmatic API lives in rgssarc.reader/rgssarc.writer; the CLI functions in
# rgssarc.cli (cmd_pack/cmd_unpack) take normal parameters.
