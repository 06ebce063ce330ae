"""Unit tests for the public Mosaic SDK module."""

from __future__ import annotations

import mosaic


class Bulb(mosaic.Entry):
    name: str
    watts: int


class Lamp(mosaic.Entry):
    name: str
    bulb: mosaic.SharedLink[Bulb]


def test_sdk_exports_resolve() -> None:
    """Every name in __all__ should be importable from the SDK."""
    missing = [name for name in mosaic.__all__ if not hasattr(mosaic, name)]

    assert missing == []


def test_sdk_round_trip_without_registration(tmp_path) -> None:
    """Unregistered entries can be read back by class."""
    manager = mosaic.StoreManager.open(tmp_path, mosaic.JsonFormat())
    lamp = Lamp(name="desk", bulb=Bulb(name="warm", watts=40))

    manager.write(lamp)

    assert manager.read(Lamp, "desk") == lamp
    assert manager.exists(Bulb, "warm")
