from __future__ import annotations

import os
import re
import sys
import time
import argparse

from typing import List, Optional, Tuple

from rgssarc import __version__
from rgssarc.constants import EXTENSION_VERSIONS, VERSION_RGSSAD
from rgssarc.errors import (
    RgssError,
    InvalidHeaderError,
    InvalidVersionError,
    MagicReadFailedError,
    TruncatedArchiveError,
)
from rgssarc.pathutil import safe_join
from rgssarc.reader import ArchiveReader
from rgssarc.writer import ArchiveWriter


def _walk_tree(root: str) -> List[Tuple[str, int]]:
    """Collect ``(relative_path, size)`` pairs for every file under ``root``.

    Paths use forward slashes and are visited in sorted order so the same
    tree always packs to the same archive.
    """
    files: List[Tuple[str, int]] = []
    for cur, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for fn in sorted(filenames):
            full = os.path.join(cur, fn)
            rel = os.path.relpath(full, start=root).replace(os.sep, "/")
            files.append((rel, os.path.getsize(full)))
    return files


def infer_version(archive: str) -> int:
    """Pick the format version from the archive file extension."""
    ext = os.path.splitext(archive)[1].lower()
    return EXTENSION_VERSIONS.get(ext, VERSION_RGSSAD)


def cmd_list(archive: str) -> bool:
    """List archive entries.

    Args:
        archive: Path to an .rgssad/.rgss2a/.rgss3a file.
    """
    with ArchiveReader(archive) as r:
        for e in r.list():
            print(f"{e.size}\t{e.offset}\t{e.magic:08x}\t{e.name}")
    return True


def cmd_info(archive: str) -> bool:
    """Show archive information.

    Args:
        archive: Path to the archive.
    """
    with ArchiveReader(archive) as r:
        print(f"Archive: {archive}")
        print(f"  Version: {r.version}")
        print(f"  Size: {r.archive_size}")
        print(f"  Table magic: {r.table_magic:08x}")
        print(f"  Entries: {len(r.entries)}")
        print(f"  Data bytes: {sum(e.size for e in r.entries)}")
    return True


def cmd_unpack(archive: str, outdir: str, pattern: str = ".*", *, quiet: bool = False) -> bool:
    """Extract entries whose names match ``pattern`` into ``outdir``.

    Args:
        archive: Archive path.
        outdir: Destination directory, created as needed.
        pattern: Regular expression searched in each entry name.
        quiet: Limit output to the final summary.
    """
    try:
        flt = re.compile(pattern)
    except re.error as exc:
        raise ValueError(f"Invalid regex filter {pattern!r}: {exc}") from None

    t0 = time.time()
    extracted = 0
    skipped = 0
    total_bytes = 0
    with ArchiveReader(archive) as r:
        for e in r.list():
            if not flt.search(e.name):
                continue
            dst = safe_join(outdir, e.name)
            if dst is None:
                print(f"Warning: skipping unsafe entry name {e.name!r}", file=sys.stderr)
                skipped += 1
                continue
            if not quiet:
                print(f"Extracting: {e.name}")
            os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
            with open(dst, "wb") as wf:
                total_bytes += r.copy_entry(e, wf)
            extracted += 1
    dt = max(0.000001, time.time() - t0)
    mib = total_bytes / (1024.0 * 1024.0)
    print(f"Done: extracted {extracted} files ({mib:.2f} MiB) in {dt:.1f}s; skipped={skipped}")
    return True


def cmd_pack(src: str, archive: str, version: Optional[int] = None, *, quiet: bool = False) -> bool:
    """Pack every file below ``src`` into a new archive.

    Args:
        src: Source directory; entry names are relative to it.
        archive: Output archive path.
        version: Format version 1-3; inferred from the extension when None.
        quiet: Limit output to the final summary.
    """
    if not os.path.isdir(src):
        raise ValueError(f"Source is not a directory: {src}")
    if version is None:
        version = infer_version(archive)

    def _progress(e):
        if not quiet:
            print(f"Packing: {e.name}")

    t0 = time.time()
    files = _walk_tree(src)
    with ArchiveWriter(archive, version=version) as w:
        for rel, size in files:
            w.add(rel, size)
        w.flush(src, on_entry=_progress)
    dt = max(0.000001, time.time() - t0)
    mib = sum(sz for _, sz in files) / (1024.0 * 1024.0)
    print(f"Done: {len(files)} files; {mib:.2f} MiB in {dt:.1f}s; version={version}")
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="rgssarc",
        description="Extract and build rgssad/rgss2a/rgss3a archives",
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    sub.add_parser("version", help="Show tool version")

    ap_list = sub.add_parser("list", help="List archive contents")
    ap_list.add_argument("archive", help="Archive path")

    ap_info = sub.add_parser("info", help="Show archive information")
    ap_info.add_argument("archive", help="Archive path")

    ap_unpack = sub.add_parser("unpack", help="Extract files")
    ap_unpack.add_argument("archive", help="Archive path")
    ap_unpack.add_argument("folder", help="Output directory")
    ap_unpack.add_argument("filter", nargs="?", default=".*", help="Regex matched against entry names (default: .*)")
    ap_unpack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_pack = sub.add_parser("pack", help="Create an archive from a directory")
    ap_pack.add_argument("folder", help="Source directory")
    ap_pack.add_argument("archive", help="Output archive path")
    ap_pack.add_argument(
        "version",
        nargs="?",
        type=int,
        help="Format version 1-3 (default: from extension; .rgss3a=3, .rgss2a=2, otherwise 1)",
    )
    ap_pack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    args = ap.parse_args(argv)
    try:
        if args.cmd == "version":
            print(f"version: {__version__}")
        elif args.cmd == "list":
            cmd_list(args.archive)
        elif args.cmd == "info":
            cmd_info(args.archive)
        elif args.cmd == "unpack":
            cmd_unpack(args.archive, args.folder, args.filter, quiet=args.quiet)
        elif args.cmd == "pack":
            cmd_pack(args.folder, args.archive, args.version, quiet=args.quiet)
        else:
            raise RuntimeError("Unknown command")
    except (InvalidHeaderError, InvalidVersionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (MagicReadFailedError, TruncatedArchiveError) as e:
        print(f"Error: archive appears truncated or corrupt: {e}", file=sys.stderr)
        sys.exit(2)
    except (RgssError, OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
