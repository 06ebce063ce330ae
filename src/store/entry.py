"""Storable entry models and the polymorphic envelope.

Every value written as its own file derives from Entry. A stored file
wraps the entry payload in a single-key mapping keyed by the type name,
and an EntryRegistry maps that discriminator back to a model class.
"""

from __future__ import annotations

import threading
from typing import ClassVar, Mapping, TypeVar

from pydantic import BaseModel

from core.constants import FORBIDDEN_NAME_CHARACTERS, RESERVED_NAMES
from core.errors import InvalidNameError, MosaicDecodeError, UnknownEntryTypeError

EntryT = TypeVar("EntryT", bound="Entry")


class Entry(BaseModel):
    """A pydantic model that can be stored as a standalone database entry.

    The storage key defaults to the ``name`` field; override ``entry_name``
    for models keyed differently. The folder and envelope discriminator
    default to the class name; set ``entry_type_name`` to override it.
    """

    entry_type_name: ClassVar[str] = ""

    def entry_name(self) -> str:
        """Return the storage key of this instance."""
        name = getattr(self, "name", None)
        if not isinstance(name, str):
            raise InvalidNameError(
                f"{type(self).__name__} has no string 'name' field. "
                "Override entry_name() to provide a storage key."
            )
        return name

    @classmethod
    def type_name(cls) -> str:
        """Return the folder name and envelope discriminator of this type."""
        explicit_name = cls.__dict__.get("entry_type_name")
        if isinstance(explicit_name, str) and explicit_name:
            return explicit_name
        return cls.__name__


def validate_name(name: str, kind: str = "entry") -> str:
    """Check that a name is usable as a single path segment.

    Args:
        name: Entry or type name.
        kind: Label used in the error message.

    Returns:
        The unchanged name.

    Raises:
        InvalidNameError: If the name is empty, reserved or escapes its folder.
    """
    if not name:
        raise InvalidNameError(f"The {kind} name is empty. Provide a non-empty name.")
    if name in RESERVED_NAMES or any(char in name for char in FORBIDDEN_NAME_CHARACTERS):
        raise InvalidNameError(
            f"The {kind} name '{name}' is not a valid path segment. "
            "Remove path separators and NUL characters."
        )
    return name


class EntryRegistry:
    """Dispatch table from type discriminators to entry model classes."""

    def __init__(self) -> None:
        self._entry_types: dict[str, type[Entry]] = {}
        self._lock = threading.Lock()

    def register(self, entry_type: type[EntryT]) -> type[EntryT]:
        """Register an entry class under its type name.

        Args:
            entry_type: Entry subclass.

        Returns:
            The same class, so this can be used as a decorator.

        Raises:
            InvalidNameError: If the type name is unsafe or taken by another class.
        """
        type_name = validate_name(entry_type.type_name(), kind="type")
        with self._lock:
            registered = self._entry_types.get(type_name)
            if registered is not None and registered is not entry_type:
                raise InvalidNameError(
                    f"Type name '{type_name}' is already registered for "
                    f"{registered.__module__}.{registered.__qualname__}. "
                    "Set entry_type_name to disambiguate."
                )
            self._entry_types[type_name] = entry_type
        return entry_type

    def lookup(self, type_name: str) -> type[Entry]:
        """Return the class registered under a type name.

        Raises:
            UnknownEntryTypeError: If nothing is registered under the name.
        """
        entry_type = self._entry_types.get(type_name)
        if entry_type is None:
            raise UnknownEntryTypeError(
                f"No entry type registered under '{type_name}'. "
                "Decorate the model with register_entry before reading it.",
                entry_type=type_name,
            )
        return entry_type

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._entry_types

    def wrap(self, entry: Entry, payload: object) -> dict[str, object]:
        """Wrap an encoded entry payload with its type discriminator."""
        return {type(entry).type_name(): payload}

    def unwrap(
        self,
        envelope: object,
        expected_type: type[EntryT] | None = None,
    ) -> tuple[type[EntryT], object]:
        """Split an envelope into the entry class and the inner payload.

        Args:
            envelope: Decoded file payload.
            expected_type: Statically known type; accepted without registration.

        Returns:
            Pair of entry class and inner payload.

        Raises:
            MosaicDecodeError: If the envelope is malformed or of the wrong type.
            UnknownEntryTypeError: If the discriminator is not registered.
        """
        expected_name = expected_type.type_name() if expected_type is not None else "Entry"
        if not isinstance(envelope, Mapping) or len(envelope) != 1:
            raise MosaicDecodeError(
                f"Expected a single-key mapping keyed by the type name for {expected_name}, "
                f"got {type(envelope).__name__}.",
                entry_type=expected_name,
            )
        type_name, payload = next(iter(envelope.items()))
        if not isinstance(type_name, str):
            raise MosaicDecodeError(
                f"Envelope key must be a type name string, got {type(type_name).__name__}.",
                entry_type=expected_name,
            )
        if expected_type is not None and type_name == expected_type.type_name():
            return expected_type, payload
        entry_type = self.lookup(type_name)
        if expected_type is not None and not issubclass(entry_type, expected_type):
            raise MosaicDecodeError(
                f"Stored entry has type '{type_name}', expected '{expected_name}'.",
                entry_type=expected_name,
            )
        return entry_type, payload  # type: ignore[return-value]


DEFAULT_REGISTRY = EntryRegistry()


def register_entry(entry_type: type[EntryT]) -> type[EntryT]:
    """Register an entry class in the default registry."""
    return DEFAULT_REGISTRY.register(entry_type)
