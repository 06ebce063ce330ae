"""Unit tests for the ambient resolution context."""

from __future__ import annotations

import threading

import pytest

from core.errors import EntryNotFoundError
from store.resolution_context import ResolutionContext, active_context, bind_context
from store.store_manager import StoreManager
from tests.entry_models import Cup


def test_no_context_outside_manager_calls() -> None:
    """Code outside manager calls should see no context."""
    assert active_context() is None


def test_nested_binding_restores_outer_context(tmp_path) -> None:
    """Inner bindings should not end the outer binding."""
    manager = StoreManager.open(tmp_path)
    outer = ResolutionContext(manager=manager, writing=True)
    inner = ResolutionContext(manager=manager, writing=False)

    with bind_context(outer):
        with bind_context(inner):
            assert active_context() is inner
        assert active_context() is outer

    assert active_context() is None


def test_binding_is_released_on_error(tmp_path) -> None:
    """A failing block should still restore the previous context."""
    manager = StoreManager.open(tmp_path)

    with pytest.raises(RuntimeError):
        with bind_context(ResolutionContext(manager=manager, writing=False)):
            raise RuntimeError("boom")

    assert active_context() is None


def test_binding_is_local_to_thread(tmp_path) -> None:
    """Other threads should not observe this thread's context."""
    manager = StoreManager.open(tmp_path)
    observed: list[object] = []

    with bind_context(ResolutionContext(manager=manager, writing=False)):
        thread = threading.Thread(target=lambda: observed.append(active_context()))
        thread.start()
        thread.join()

    assert observed == [None]


def test_failed_read_leaves_no_context(tmp_path) -> None:
    """Manager failures should tear down the context they bound."""
    manager = StoreManager.open(tmp_path)

    with pytest.raises(EntryNotFoundError):
        manager.read(Cup, "missing")

    assert active_context() is None


def test_report_collects_file_events(tmp_path) -> None:
    """Reports should be snapshots of the collected events."""
    context = ResolutionContext(manager=StoreManager.open(tmp_path), writing=True)
    context.created_files.append(tmp_path / "Cup" / "mug.yaml")

    report = context.write_report()
    context.created_files.clear()

    assert report.created_files == (tmp_path / "Cup" / "mug.yaml",)
    assert context.read_report().checksum_mismatches == ()
