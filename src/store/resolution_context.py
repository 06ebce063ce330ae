"""Ambient, call-scoped resolution context.

A StoreManager binds a ResolutionContext for the duration of each write
or read. Link hooks deep inside pydantic's traversal look it up with
active_context() instead of receiving it as an argument. The binding is
a ContextVar, so it is local to the current thread or task, and nested
bindings restore the outer one on exit.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from core.errors import MosaicError
from core.types import ChecksumMismatch, ReadReport, WriteOptions, WriteReport

if TYPE_CHECKING:
    from store.store_manager import StoreManager

_ACTIVE_CONTEXT: ContextVar["ResolutionContext | None"] = ContextVar(
    "mosaic_resolution_context", default=None
)


@dataclass
class ResolutionContext:
    """State shared by all link hooks of one top-level manager call.

    Attributes:
        manager: Manager whose root, format and cache resolve links.
        writing: True inside write calls, False inside read calls.
        options: Write options for the call; defaults for reads.
        failure: First domain error raised inside a hook, kept so the
            manager can surface it even if the traversal wraps it.
    """

    manager: "StoreManager"
    writing: bool
    options: WriteOptions = field(default_factory=WriteOptions)
    failure: MosaicError | None = None
    created_files: list[Path] = field(default_factory=list)
    kept_files: list[Path] = field(default_factory=list)
    overwritten_files: list[Path] = field(default_factory=list)
    checksum_mismatches: list[ChecksumMismatch] = field(default_factory=list)
    refreshed_cache_keys: list[tuple[str, str]] = field(default_factory=list)

    def record_failure(self, error: MosaicError) -> None:
        if self.failure is None:
            self.failure = error

    def write_report(self) -> WriteReport:
        return WriteReport(
            created_files=tuple(self.created_files),
            kept_files=tuple(self.kept_files),
            overwritten_files=tuple(self.overwritten_files),
        )

    def read_report(self) -> ReadReport:
        return ReadReport(
            checksum_mismatches=tuple(self.checksum_mismatches),
            refreshed_cache_keys=tuple(self.refreshed_cache_keys),
        )


def active_context() -> ResolutionContext | None:
    """Return the context bound by the innermost running manager call."""
    return _ACTIVE_CONTEXT.get()


@contextmanager
def bind_context(context: ResolutionContext) -> Iterator[ResolutionContext]:
    """Bind a context for the enclosed block and restore the previous one.

    Args:
        context: Context to make active.

    Yields:
        The bound context.
    """
    token = _ACTIVE_CONTEXT.set(context)
    try:
        yield context
    finally:
        _ACTIVE_CONTEXT.reset(token)
