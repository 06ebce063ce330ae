"""Shared-instance cache for entries read through shared links.

The cache maps (type name, entry name) to one in-memory instance and the
checksum of the bytes it was decoded from. Reads through the same manager
reuse that instance until a link reports a different checksum.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Iterator

from core.errors import MosaicDecodeError
from core.logging_config import get_logger
from store.entry import Entry, EntryT

_LOGGER = get_logger(__name__)

CacheKey = tuple[str, str]


@dataclass
class CacheEntry:
    """A cached instance and the checksum observed when it was loaded.

    Attributes:
        instance: Shared entry instance handed out to every reader.
        checksum: Checksum of the source bytes; None for manual inserts,
            which are trusted regardless of link checksums.
    """

    instance: Entry
    checksum: int | None = None


class SharedCache:
    """Thread-safe table of shared entry instances.

    Lookups, inserts and stale replacements for a key happen under one
    re-entrant lock, so nested resolution on the same thread can recurse
    while other threads wait instead of loading divergent copies.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[CacheKey]:
        with self._lock:
            return iter(list(self._entries))

    def get(self, entry_type: type[Entry] | str, name: str) -> CacheEntry | None:
        """Return the cache entry for a key, if any."""
        return self._entries.get(_cache_key(entry_type, name))

    def insert(self, instance: Entry, checksum: int | None = None) -> Entry | None:
        """Insert an instance so shared links resolve to it.

        Args:
            instance: Entry to share; keyed by its type name and entry name.
            checksum: Checksum of its source bytes; None means always trusted.

        Returns:
            The previously cached instance for the key, if any.
        """
        key = _cache_key(type(instance), instance.entry_name())
        with self._lock:
            previous = self._entries.get(key)
            self._entries[key] = CacheEntry(instance=instance, checksum=checksum)
        return previous.instance if previous is not None else None

    def remove(self, entry_type: type[Entry] | str, name: str) -> CacheEntry | None:
        """Drop and return the cache entry for a key."""
        with self._lock:
            return self._entries.pop(_cache_key(entry_type, name), None)

    def clear(self) -> None:
        """Drop every cached instance."""
        with self._lock:
            self._entries.clear()

    def resolve(
        self,
        entry_type: type[EntryT],
        name: str,
        link_checksum: int | None,
        load: Callable[[], tuple[EntryT, int]],
    ) -> tuple[EntryT, bool]:
        """Return the shared instance for a link, loading it when needed.

        Args:
            entry_type: Statically known component type.
            name: Linked entry name.
            link_checksum: Checksum carried by the link, if any.
            load: Reads and decodes the entry, returning it with its checksum.

        Returns:
            Pair of shared instance and whether a stale entry was replaced.
        """
        key = _cache_key(entry_type, name)
        with self._lock:
            cached = self._entries.get(key)
            if cached is None:
                instance, checksum = load()
                self._entries[key] = CacheEntry(instance=instance, checksum=checksum)
                _LOGGER.debug("shared_cache_miss", entry_type=key[0], name=name, checksum=checksum)
                return instance, False
            if _is_stale(cached, link_checksum):
                instance, checksum = load()
                self._entries[key] = CacheEntry(instance=instance, checksum=checksum)
                _LOGGER.info(
                    "shared_cache_refresh",
                    entry_type=key[0],
                    name=name,
                    cached_checksum=cached.checksum,
                    link_checksum=link_checksum,
                    loaded_checksum=checksum,
                )
                return instance, True
        if not isinstance(cached.instance, entry_type):
            raise MosaicDecodeError(
                f"Cached entry {key[0]}/{name} is a {type(cached.instance).__name__}, "
                f"expected {entry_type.__name__}. Remove the conflicting cache entry.",
                entry_type=key[0],
                name=name,
            )
        return cached.instance, False


def _cache_key(entry_type: type[Entry] | str, name: str) -> CacheKey:
    type_name = entry_type if isinstance(entry_type, str) else entry_type.type_name()
    return type_name, name


def _is_stale(cached: CacheEntry, link_checksum: int | None) -> bool:
    if link_checksum is None or cached.checksum is None:
        return False
    return link_checksum != cached.checksum
