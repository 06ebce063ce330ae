"""Checksums over encoded entry bytes.

Links and shared cache entries use these digests to notice that a
stored entry changed after it was written or cached.
"""

from __future__ import annotations

import zlib
from pathlib import Path


def checksum_bytes(data: bytes) -> int:
    """Return the Adler-32 checksum of a byte sequence.

    Args:
        data: Exact encoded bytes of an entry file.

    Returns:
        Unsigned 32-bit checksum.
    """
    return zlib.adler32(data) & 0xFFFFFFFF


def checksum_file(path: Path) -> int | None:
    """Return the checksum of a file, or None when it cannot be read."""
    try:
        data = path.read_bytes()
    except OSError:
        return None
    return checksum_bytes(data)
