"""Runtime configuration model for Mosaic.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_DB_ROOT,
    DEFAULT_FORMAT_NAME,
    ENV_DB_ROOT,
    ENV_EMIT_CHECKSUM,
    ENV_FORMAT,
    ENV_PRETTY,
    FALSY_VALUES,
    SUPPORTED_FORMAT_NAMES,
    TRUTHY_VALUES,
)
from core.errors import MosaicConfigError
from core.types import WriteOptions


@dataclass(frozen=True)
class MosaicConfig:
    """Validated runtime configuration.

    Attributes:
        db_root: Root directory of the entry database.
        format_name: Name of the default format adapter.
        emit_checksum: Default for writing checksums into links.
        pretty: Default for human-formatted output files.
    """

    db_root: Path
    format_name: str
    emit_checksum: bool
    pretty: bool

    @classmethod
    def from_env(cls) -> "MosaicConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            MosaicConfigError: If environment values are invalid.
        """
        db_root_value = os.getenv(ENV_DB_ROOT, str(DEFAULT_DB_ROOT))
        format_name = _parse_format_name(os.getenv(ENV_FORMAT, DEFAULT_FORMAT_NAME))
        emit_checksum = _parse_flag(ENV_EMIT_CHECKSUM, os.getenv(ENV_EMIT_CHECKSUM, "true"))
        pretty = _parse_flag(ENV_PRETTY, os.getenv(ENV_PRETTY, "false"))
        return cls(
            db_root=Path(db_root_value).expanduser().resolve(),
            format_name=format_name,
            emit_checksum=emit_checksum,
            pretty=pretty,
        )

    def write_options(self) -> WriteOptions:
        """Return write options seeded from this config."""
        return WriteOptions(emit_checksum=self.emit_checksum, pretty=self.pretty)


def _parse_format_name(raw_value: str) -> str:
    """Parse the format environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Normalized format name.

    Raises:
        MosaicConfigError: If the format is not supported.
    """
    normalized_value = raw_value.strip().lower()
    if normalized_value in SUPPORTED_FORMAT_NAMES:
        return normalized_value
    supported_rows = ", ".join(SUPPORTED_FORMAT_NAMES)
    raise MosaicConfigError(
        f"Invalid {ENV_FORMAT} value: got '{raw_value}'. Set {ENV_FORMAT} to one of: {supported_rows}."
    )


def _parse_flag(variable_name: str, raw_value: str) -> bool:
    normalized_value = raw_value.strip().lower()
    if normalized_value in TRUTHY_VALUES:
        return True
    if normalized_value in FALSY_VALUES:
        return False
    raise MosaicConfigError(
        f"Invalid {variable_name} value: expected boolean, got '{raw_value}'. "
        f"Set {variable_name} to true or false."
    )
