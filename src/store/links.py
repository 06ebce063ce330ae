"""Link field annotations for entry models.

Annotating a field of an Entry model with one of the forms below turns the
nested component into a standalone entry at write time and resolves it
back at read time::

    class Shirt(Entry):
        name: str
        material: Link[Material]
        label: OptionalSharedLink[Label] = None

Inside a StoreManager call the field is stored as ``{name, checksum}`` and
the component gets its own file. Outside any manager call the hooks are
transparent and the component is dumped and validated inline.

``Link`` and ``OptionalLink`` yield an independent copy on every read.
``SharedLink`` and ``OptionalSharedLink`` return the manager's cached
instance, so every composite read through one manager shares it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Annotated, Any, Callable

from pydantic import (
    SerializerFunctionWrapHandler,
    ValidatorFunctionWrapHandler,
    WrapSerializer,
    WrapValidator,
)

from core.constants import LINK_CHECKSUM_KEY, LINK_KEYS, LINK_NAME_KEY
from core.errors import InvalidNameError, MosaicEncodeError, MosaicError
from store.entry import Entry
from store.resolution_context import ResolutionContext, active_context


@dataclass(frozen=True)
class EntryLink:
    """Serialized stand-in for a linked component.

    Attributes:
        name: Stored entry name; empty means no value.
        checksum: Checksum of the component file when the link was written.
    """

    name: str
    checksum: int | None = None

    @property
    def is_empty(self) -> bool:
        return not self.name

    def to_payload(self) -> dict[str, object]:
        """Return the wire mapping of this link."""
        payload: dict[str, object] = {LINK_NAME_KEY: self.name}
        if self.checksum is not None:
            payload[LINK_CHECKSUM_KEY] = self.checksum
        return payload

    @classmethod
    def from_payload(cls, payload: object) -> "EntryLink | None":
        """Parse a wire mapping, returning None when it is not link-shaped."""
        if not isinstance(payload, Mapping):
            return None
        if LINK_NAME_KEY not in payload or not set(payload) <= LINK_KEYS:
            return None
        name = payload[LINK_NAME_KEY]
        checksum = payload.get(LINK_CHECKSUM_KEY)
        if not isinstance(name, str):
            return None
        if checksum is not None and (isinstance(checksum, bool) or not isinstance(checksum, int)):
            return None
        return cls(name=name, checksum=checksum)


EMPTY_LINK = EntryLink(name="")


def _writing_context() -> ResolutionContext | None:
    context = active_context()
    if context is None or not context.writing or context.options.flatten:
        return None
    return context


def _reading_context() -> ResolutionContext | None:
    context = active_context()
    if context is None or context.writing:
        return None
    return context


def _link_serializer(component_type: type[Entry]) -> Callable[..., Any]:
    def serialize(value: Any, handler: SerializerFunctionWrapHandler) -> Any:
        context = _writing_context()
        if context is None:
            return handler(value)
        if value is None:
            return EMPTY_LINK.to_payload()
        try:
            if not isinstance(value, component_type):
                raise MosaicEncodeError(
                    f"Linked field holds a {type(value).__name__}, which is not a "
                    f"{component_type.__name__}. Only {component_type.__name__} entries "
                    "can be stored behind this link.",
                    entry_type=component_type.type_name(),
                )
            link = context.manager.write_linked(value, component_type, context)
        except MosaicError as error:
            context.record_failure(error)
            raise
        return link.to_payload()

    return serialize


def _link_validator(component_type: type[Entry], shared: bool, optional: bool) -> Callable[..., Any]:
    def validate(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        if optional and value is None:
            return None
        link = EntryLink.from_payload(value)
        if optional and link is not None and link.is_empty:
            return None
        context = _reading_context()
        if link is None or context is None:
            return handler(value)
        try:
            if link.is_empty:
                raise InvalidNameError(
                    f"Link to {component_type.type_name()} has an empty name, "
                    "but the field is not optional."
                )
            if shared:
                return context.manager.read_shared(component_type, link, context)
            return context.manager.read_linked(component_type, link, context)
        except MosaicError as error:
            context.record_failure(error)
            raise

    return validate


def _link_annotation(component_type: Any, shared: bool, optional: bool) -> Any:
    if not isinstance(component_type, type) or not issubclass(component_type, Entry):
        raise TypeError(f"Link targets must be Entry subclasses, got {component_type!r}.")
    validator = WrapValidator(_link_validator(component_type, shared, optional))
    serializer = WrapSerializer(_link_serializer(component_type))
    if optional:
        return Annotated[component_type | None, validator, serializer]
    return Annotated[component_type, validator, serializer]


class Link:
    """Owned link; every read yields a fresh component."""

    def __class_getitem__(cls, component_type: Any) -> Any:
        return _link_annotation(component_type, shared=False, optional=False)


class OptionalLink:
    """Owned link that may be absent; None is stored as an empty link."""

    def __class_getitem__(cls, component_type: Any) -> Any:
        return _link_annotation(component_type, shared=False, optional=True)


class SharedLink:
    """Shared link; reads return the manager's cached instance."""

    def __class_getitem__(cls, component_type: Any) -> Any:
        return _link_annotation(component_type, shared=True, optional=False)


class OptionalSharedLink:
    """Shared link that may be absent."""

    def __class_getitem__(cls, component_type: Any) -> Any:
        return _link_annotation(component_type, shared=True, optional=True)
