"""Public SDK surface for Mosaic.

This module provides a stable import path for library users.
It re-exports the store manager, entry and link types, and options.
"""

from __future__ import annotations

from core.config import MosaicConfig
from core.errors import (
    EntryNotFoundError,
    InvalidNameError,
    LinkNotFoundError,
    MosaicDecodeError,
    MosaicEncodeError,
    MosaicError,
    MosaicIOError,
    UnknownEntryTypeError,
    WriteConflictError,
)
from core.types import ReadReport, WriteOptions, WriteReport
from store.entry import Entry, EntryRegistry, register_entry
from store.formats import Format, JsonFormat, YamlFormat
from store.links import EntryLink, Link, OptionalLink, OptionalSharedLink, SharedLink
from store.shared_cache import CacheEntry, SharedCache
from store.store_manager import StoreManager

__all__ = [
    "CacheEntry",
    "Entry",
    "EntryLink",
    "EntryNotFoundError",
    "EntryRegistry",
    "Format",
    "InvalidNameError",
    "JsonFormat",
    "Link",
    "LinkNotFoundError",
    "MosaicConfig",
    "MosaicDecodeError",
    "MosaicEncodeError",
    "MosaicError",
    "MosaicIOError",
    "OptionalLink",
    "OptionalSharedLink",
    "ReadReport",
    "SharedCache",
    "SharedLink",
    "StoreManager",
    "UnknownEntryTypeError",
    "WriteConflictError",
    "WriteOptions",
    "WriteReport",
    "YamlFormat",
    "register_entry",
]
