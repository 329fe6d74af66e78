from __future__ import annotations
import sys
from pathlib import Path
from typing import Callable, Optional, Union

import blake3
import xxhash

from .config import BLOCK_SIZE

PathLike = Union[str, Path]
LogCallback = Callable[[str], None]


def emit_log(message: str, log_cb: Optional[LogCallback] = None) -> None:
    print(message, file=sys.stderr)
    if not log_cb:
        return
    try:
        log_cb(message)
    except Exception:
        pass


def full_hash(path: PathLike, block_size: int = BLOCK_SIZE) -> int:
    """Stream the whole file through xxh64, one block at a time."""
    h = xxhash.xxh64()
    with open(path, "rb") as f:
        while True:
            b = f.read(block_size)
            if not b:
                break
            h.update(b)
    return h.intdigest()


def sparse_hash(path: PathLike, size: int, skip_blocks: int, block_size: int = BLOCK_SIZE) -> int:
    """Hash one block every ``block_size * skip_blocks`` bytes.

    Only the blocks starting at offsets 0, stride, 2*stride, ... contribute to
    the digest; bytes in between are never read. A short final block is hashed
    as far as it goes.
    """
    stride = block_size * skip_blocks
    h = xxhash.xxh64()
    with open(path, "rb") as f:
        for offset in range(0, size, stride):
            f.seek(offset)
            b = f.read(block_size)
            if not b:
                break
            h.update(b)
    return h.intdigest()


def fingerprint(
    path: PathLike,
    size: int,
    size_threshold: int,
    skip_blocks: int,
    block_size: int = BLOCK_SIZE,
) -> int:
    """Return the 64-bit content fingerprint for ``path``.

    Files under ``size_threshold`` are hashed in full; anything at or above it
    gets the sampled pass. Read errors propagate as ``OSError``.
    """
    if size < size_threshold:
        return full_hash(path, block_size)
    return sparse_hash(path, size, skip_blocks, block_size)


def blake3_file(path: PathLike, chunk_size: int = 2 * 1024 * 1024) -> str:
    """Compute the BLAKE3 digest for a file."""
    hasher = blake3.blake3()
    with open(path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            hasher.update(chunk)
    return hasher.hexdigest()
