"""Unit tests for core config parsing."""

from __future__ import annotations

import os

import pytest

from core.config import MosaicConfig
from core.errors import MosaicConfigError


def test_from_env_reads_db_root(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should resolve database root from environment."""
    monkeypatch.setenv("MOSAIC_DB_ROOT", "./.tmp-mosaic")

    config = MosaicConfig.from_env()

    assert config.db_root.name == ".tmp-mosaic"


def test_from_env_defaults_to_yaml(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should default to the YAML format."""
    monkeypatch.delenv("MOSAIC_FORMAT", raising=False)

    config = MosaicConfig.from_env()

    assert config.format_name == "yaml"


def test_from_env_normalizes_format(monkeypatch: pytest.MonkeyPatch) -> None:
    """Format names should be case-insensitive."""
    monkeypatch.setenv("MOSAIC_FORMAT", " JSON ")

    config = MosaicConfig.from_env()

    assert config.format_name == "json"


def test_from_env_raises_for_unknown_format(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for unsupported formats."""
    monkeypatch.setenv("MOSAIC_FORMAT", "toml")

    with pytest.raises(MosaicConfigError):
        MosaicConfig.from_env()

    assert os.getenv("MOSAIC_FORMAT") == "toml"


def test_from_env_raises_for_invalid_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for non-boolean flag values."""
    monkeypatch.setenv("MOSAIC_PRETTY", "sometimes")

    with pytest.raises(MosaicConfigError):
        MosaicConfig.from_env()


def test_write_options_follow_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    """Default write options should be seeded from config flags."""
    monkeypatch.setenv("MOSAIC_EMIT_CHECKSUM", "off")
    monkeypatch.setenv("MOSAIC_PRETTY", "yes")

    options = MosaicConfig.from_env().write_options()

    assert options.emit_checksum is False
    assert options.pretty is True
    assert options.overwrite is False
