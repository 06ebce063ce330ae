"""Mosaic exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each failure mode of the store raises a specific error type.
"""

from __future__ import annotations


class MosaicError(Exception):
    """Base exception for all Mosaic failures."""


class MosaicConfigError(MosaicError):
    """Raised for invalid runtime configuration."""


class MosaicDependencyError(MosaicError):
    """Raised when an optional runtime dependency is missing."""


class MosaicIOError(MosaicError):
    """Raised when a database path cannot be created, read, written or removed."""


class InvalidNameError(MosaicError):
    """Raised when an entry or type name is unsafe as a path segment, or empty."""


class WriteConflictError(MosaicError):
    """Raised when a write would replace an existing file without permission."""


class EntryNotFoundError(MosaicError):
    """Raised when an entry file does not exist."""

    def __init__(self, message: str, entry_type: str, name: str) -> None:
        super().__init__(message)
        self.entry_type = entry_type
        self.name = name


class LinkNotFoundError(EntryNotFoundError):
    """Raised when a link refers to an entry file that does not exist."""


class _TaggedEntryError(MosaicError):
    """Codec failure tagged with the entry it happened on."""

    def __init__(self, message: str, entry_type: str, name: str | None = None) -> None:
        super().__init__(message)
        self.entry_type = entry_type
        self.name = name


class MosaicEncodeError(_TaggedEntryError):
    """Raised when an entry cannot be encoded into bytes."""


class MosaicDecodeError(_TaggedEntryError):
    """Raised when stored bytes cannot be decoded into an entry."""


class UnknownEntryTypeError(MosaicDecodeError):
    """Raised when an envelope names a type that is not registered."""
