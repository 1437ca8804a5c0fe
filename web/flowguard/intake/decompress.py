"""
Compressed source opener.

Provides a single entry point `open_source_stream(path)` that returns a
text file-like object over the CSV bytes, regardless of whether the
underlying file is uncompressed, gzip-compressed, or zstd-compressed.

This module does not parse CSV; it only handles decompression and decoding.
"""

from __future__ import annotations

import gzip
import io
import os
from contextlib import contextmanager
from typing import IO, Generator

import zstandard  # type: ignore

from .validator import Compressor, infer_compressor


@contextmanager
def open_source_stream(
    path: str | os.PathLike,
    *,
    compressor: Compressor | None = None,
    encoding: str = "utf-8",
) -> Generator[IO[str], None, None]:
    """
    Context manager yielding a readable text stream for the given source.

    - compressor == "none": open() in text mode
    - compressor == "gzip": gzip.open(..., 'rt')
    - compressor == "zstd": zstd stream reader wrapped in a TextIOWrapper

    `compressor` defaults to the value inferred from the filename suffix.
    """
    comp = compressor or infer_compressor(path)

    if comp == "gzip":
        f = gzip.open(path, "rt", encoding=encoding, newline="")
        try:
            yield f
        finally:
            f.close()
        return

    if comp == "zstd":
        raw = open(path, "rb")
        dctx = zstandard.ZstdDecompressor()
        stream = dctx.stream_reader(raw)
        text = io.TextIOWrapper(stream, encoding=encoding, newline="")
        try:
            yield text
        finally:
            try:
                text.close()
            finally:
                raw.close()
        return

    f = open(path, "r", encoding=encoding, newline="")
    try:
        yield f
    finally:
        f.close()
