"""
Basic source validation.

Goal: fast, side-effect-free checks that a path *looks* like a readable CSV
source (optionally gzip or zstd compressed) before we spend CPU parsing it.

We DO NOT parse the CSV here, just existence, size and magic bytes,
because the decompressor and row reader will do deeper checks later.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final, Literal

from ..errors import SourceReadError

Compressor = Literal["none", "gzip", "zstd"]

# --- Magic numbers (as they appear on disk) ---
MAGIC_GZIP: Final[bytes] = bytes.fromhex("1f 8b".replace(" ", ""))
MAGIC_ZSTD: Final[bytes] = bytes.fromhex("28 b5 2f fd".replace(" ", ""))

COMP_SUFFIXES: Final[tuple[tuple[str, Compressor], ...]] = (
    (".zst", "zstd"),
    (".zstd", "zstd"),
    (".gz", "gzip"),
)


def infer_compressor(path: str | os.PathLike) -> Compressor:
    """Infer compression from the filename suffix; the magic check confirms it."""
    lower = str(path).lower()
    for suffix, comp in COMP_SUFFIXES:
        if lower.endswith(suffix):
            return comp
    return "none"


def _read_head(path: Path, n: int) -> bytes:
    with open(path, "rb") as f:
        return f.read(n)


def check_source(path: str | os.PathLike) -> Compressor:
    """
    Validate a source path and return its compressor.

    Checks:
    - Path exists and is a regular file.
    - If compressed (by suffix): magic bytes match the compressor.

    Raises SourceReadError naming the path on any failure.
    """
    p = Path(path)
    try:
        st = os.stat(p)
    except FileNotFoundError:
        raise SourceReadError(str(p), "file not found") from None
    except OSError as e:
        raise SourceReadError(str(p), str(e)) from e

    if not p.is_file():
        raise SourceReadError(str(p), "not a regular file")

    comp = infer_compressor(p)
    if comp == "none":
        return comp

    if st.st_size == 0:
        raise SourceReadError(str(p), f"empty {comp} file")

    try:
        head = _read_head(p, 4)
    except OSError as e:
        raise SourceReadError(str(p), str(e)) from e

    if comp == "gzip" and head[:2] != MAGIC_GZIP:
        raise SourceReadError(str(p), "suffix says gzip but magic bytes do not match")
    if comp == "zstd" and head[:4] != MAGIC_ZSTD:
        raise SourceReadError(str(p), "suffix says zstd but magic bytes do not match")
    return comp
