"""Chunked reading of a byte stream up to a fixed length."""

from __future__ import annotations

from typing import BinaryIO, Iterator

DEFAULT_CHUNK_SIZE = 4096


def length_limited_chunks(reader: BinaryIO, limit: int, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """Yield chunks read from ``reader`` until ``limit`` bytes or end of stream."""
    remaining = limit
    while remaining > 0:
        chunk = reader.read(chunk_size)
        if not chunk:
            return
        chunk = chunk[:remaining]
        remaining -= len(chunk)
        yield bytes(chunk)