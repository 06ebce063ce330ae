"""Shared typed models.

This module defines immutable option and report models used by the
store manager, the resolution context and the link hooks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping


@dataclass(frozen=True)
class WriteOptions:
    """Options controlling one top-level write and all nested link writes.

    Attributes:
        emit_checksum: Include the checksum of the written component in links.
        pretty: Ask the format adapter for human-formatted bytes.
        overwrite: Replace existing files at the target path.
        flatten: Embed linked components inline instead of writing links.
        adjust_names: Write to the first free ``<name>_<n>`` on collisions.
        aliases: Entry name replacements applied at write time.
    """

    emit_checksum: bool = True
    pretty: bool = False
    overwrite: bool = False
    flatten: bool = False
    adjust_names: bool = False
    aliases: Mapping[str, str] = field(default_factory=dict)

    def stored_name(self, name: str) -> str:
        """Return the name an entry is stored under after aliasing."""
        return self.aliases.get(name, name)


@dataclass(frozen=True)
class ChecksumMismatch:
    """A link whose checksum differs from the file it points to.

    Attributes:
        entry_type: Type name of the linked entry.
        name: Linked entry name.
        link_checksum: Checksum recorded in the link.
        file_checksum: Checksum of the file as loaded.
        file_path: Path of the loaded file.
    """

    entry_type: str
    name: str
    link_checksum: int
    file_checksum: int
    file_path: Path


@dataclass(frozen=True)
class WriteReport:
    """Files touched by one recursive write."""

    created_files: tuple[Path, ...] = ()
    kept_files: tuple[Path, ...] = ()
    overwritten_files: tuple[Path, ...] = ()


@dataclass(frozen=True)
class ReadReport:
    """Observations collected during one recursive read.

    Attributes:
        checksum_mismatches: Links that disagreed with the files on disk.
        refreshed_cache_keys: Shared cache keys replaced because they were stale.
    """

    checksum_mismatches: tuple[ChecksumMismatch, ...] = ()
    refreshed_cache_keys: tuple[tuple[str, str], ...] = ()
