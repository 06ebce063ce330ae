"""Core constants used across Mosaic modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DB_ROOT = Path(".mosaic")
DEFAULT_FORMAT_NAME = "yaml"
YAML_FILE_EXTENSION = "yaml"
JSON_FILE_EXTENSION = "json"
SUPPORTED_FORMAT_NAMES = ("yaml", "json")
LINK_NAME_KEY = "name"
LINK_CHECKSUM_KEY = "checksum"
LINK_KEYS = frozenset({LINK_NAME_KEY, LINK_CHECKSUM_KEY})
ADJUSTED_NAME_SEPARATOR = "_"
FORBIDDEN_NAME_CHARACTERS = ("/", "\\", "\x00")
RESERVED_NAMES = (".", "..")
TEXT_ENCODING = "utf-8"
JSON_PRETTY_INDENT = 2
ENV_DB_ROOT = "MOSAIC_DB_ROOT"
ENV_FORMAT = "MOSAIC_FORMAT"
ENV_EMIT_CHECKSUM = "MOSAIC_EMIT_CHECKSUM"
ENV_PRETTY = "MOSAIC_PRETTY"
TRUTHY_VALUES = ("1", "true", "yes", "on")
FALSY_VALUES = ("0", "false", "no", "off")
