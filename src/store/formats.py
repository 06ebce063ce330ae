"""Format adapters for entry files.

A format adapter turns a JSON-safe payload into bytes and back, and names
the file extension used inside the database. Adapters are stateless, so
one instance can be shared across managers.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from types import ModuleType

from core.constants import (
    JSON_FILE_EXTENSION,
    JSON_PRETTY_INDENT,
    SUPPORTED_FORMAT_NAMES,
    TEXT_ENCODING,
    YAML_FILE_EXTENSION,
)
from core.errors import MosaicConfigError, MosaicDependencyError


class Format(ABC):
    """Serialization syntax used by a store manager."""

    @property
    @abstractmethod
    def extension(self) -> str:
        """File extension without a leading dot; empty for none."""

    @abstractmethod
    def encode(self, payload: object, pretty: bool = False) -> bytes:
        """Encode a JSON-safe payload into bytes.

        Args:
            payload: Nested dicts, lists and scalars.
            pretty: Request human-formatted output.

        Returns:
            Encoded bytes.
        """

    @abstractmethod
    def decode(self, data: bytes) -> object:
        """Decode bytes back into a JSON-safe payload."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class YamlFormat(Format):
    """YAML documents via PyYAML safe dump/load."""

    @property
    def extension(self) -> str:
        return YAML_FILE_EXTENSION

    def encode(self, payload: object, pretty: bool = False) -> bytes:
        yaml = _yaml_module()
        text = yaml.safe_dump(
            payload,
            sort_keys=False,
            allow_unicode=True,
            explicit_start=pretty,
            default_flow_style=False if pretty else None,
        )
        return text.encode(TEXT_ENCODING)

    def decode(self, data: bytes) -> object:
        yaml = _yaml_module()
        return yaml.safe_load(data.decode(TEXT_ENCODING))


class JsonFormat(Format):
    """JSON documents via the json module."""

    @property
    def extension(self) -> str:
        return JSON_FILE_EXTENSION

    def encode(self, payload: object, pretty: bool = False) -> bytes:
        if pretty:
            text = json.dumps(payload, indent=JSON_PRETTY_INDENT, ensure_ascii=False) + "\n"
        else:
            text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        return text.encode(TEXT_ENCODING)

    def decode(self, data: bytes) -> object:
        return json.loads(data.decode(TEXT_ENCODING))


_FORMATS_BY_NAME: dict[str, type[Format]] = {
    "yaml": YamlFormat,
    "json": JsonFormat,
}


def resolve_format(format_name: str) -> Format:
    """Return a format adapter by name.

    Args:
        format_name: One of the supported format names.

    Returns:
        Format adapter instance.

    Raises:
        MosaicConfigError: If the name is unknown.
    """
    format_type = _FORMATS_BY_NAME.get(format_name.strip().lower())
    if format_type is None:
        supported_rows = ", ".join(SUPPORTED_FORMAT_NAMES)
        raise MosaicConfigError(
            f"Unsupported format '{format_name}'. Use one of: {supported_rows}."
        )
    return format_type()


def _yaml_module() -> ModuleType:
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as error:  # pragma: no cover - dependency failure
        raise MosaicDependencyError(
            "YAML entry files require PyYAML. Install with 'pip install pyyaml'."
        ) from error
    return yaml
