"""Integration tests for writing and reading linked entry graphs."""

from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor

import pytest
import yaml

from core.errors import LinkNotFoundError
from core.types import WriteOptions
from store.shared_cache import SharedCache
from store.store_manager import StoreManager
from tests.entry_models import Material, Shovel, Stool, User, pure_cotton, steel


def _georgs_shovel(blade: Material | None = None) -> Shovel:
    return Shovel(name="georgs_shovel", shaft=pure_cotton(), blade=blade or steel())


def _count_loads(monkeypatch: pytest.MonkeyPatch) -> Counter:
    loads: Counter = Counter()
    original = StoreManager._load_entry

    def counting_load(self, entry_type, name, context, linked):
        loads[(entry_type.type_name(), name)] += 1
        return original(self, entry_type, name, context, linked)

    monkeypatch.setattr(StoreManager, "_load_entry", counting_load)
    return loads


@pytest.mark.parametrize("format_name", ["yaml", "json"])
def test_round_trip_equals_original(tmp_path, format_name: str) -> None:
    """A fresh manager should read back an equal entry graph."""
    StoreManager.open(tmp_path, format_name).write(User(name="georg", shovel=_georgs_shovel()))

    user = StoreManager.open(tmp_path, format_name).read(User, "georg")

    assert user == User(name="georg", shovel=_georgs_shovel())
    assert sorted(path.name for path in tmp_path.rglob(f"*.{format_name}")) == [
        f"georg.{format_name}",
        f"georgs_shovel.{format_name}",
        f"pure_cotton.{format_name}",
        f"steel.{format_name}",
    ]


def test_writing_shared_component_twice_keeps_file(tmp_path) -> None:
    """Composites sharing a component should not conflict on write."""
    manager = StoreManager.open(tmp_path)
    shovel = _georgs_shovel()

    manager.write(User(name="georg", shovel=shovel))
    _, report = manager.write_verbose(User(name="anna", shovel=shovel))

    assert report.created_files == (tmp_path / "User" / "anna.yaml",)
    assert tmp_path / "Shovel" / "georgs_shovel.yaml" in report.kept_files


def test_shared_links_alias_across_reads(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Two composites linking one shared component should hold one instance."""
    manager = StoreManager.open(tmp_path)
    shovel = _georgs_shovel()
    manager.write(User(name="georg", shovel=shovel))
    manager.write(User(name="anna", shovel=shovel))
    loads = _count_loads(monkeypatch)

    georg = manager.read(User, "georg")
    anna = manager.read(User, "anna")

    assert georg.shovel is anna.shovel
    assert loads[("Shovel", "georgs_shovel")] == 1
    assert ("Shovel", "georgs_shovel") in manager.cache


def test_owned_links_are_independent(tmp_path) -> None:
    """Owned components should be fresh copies on every read."""
    manager = StoreManager.open(tmp_path)
    manager.write(_georgs_shovel())
    manager.cache.clear()

    first = manager.read(Shovel, "georgs_shovel")
    second = manager.read(Shovel, "georgs_shovel")

    assert first is not second
    assert first.blade is not second.blade
    assert first.shaft is second.shaft


def test_separate_caches_do_not_share(tmp_path) -> None:
    """Managers with their own caches should not alias instances."""
    StoreManager.open(tmp_path).write(User(name="georg", shovel=_georgs_shovel()))

    first = StoreManager.open(tmp_path).read(User, "georg")
    second = StoreManager.open(tmp_path).read(User, "georg")
    shared_cache = SharedCache()
    third = StoreManager.open(tmp_path, cache=shared_cache).read(User, "georg")
    fourth = StoreManager.open(tmp_path, cache=shared_cache).read(User, "georg")

    assert first.shovel is not second.shovel
    assert third.shovel is fourth.shovel


def test_changed_checksum_refreshes_shared_instance(tmp_path) -> None:
    """A link whose checksum differs from the cached one should reload."""
    manager = StoreManager.open(tmp_path)
    manager.write(User(name="georg", shovel=_georgs_shovel()))
    old_shovel = manager.read(User, "georg").shovel
    bronze = Material(name="bronze", cotton_content=0.5)

    manager.write(User(name="georg", shovel=_georgs_shovel(bronze)), WriteOptions(overwrite=True))
    user, report = manager.read_verbose(User, "georg")

    assert user.shovel is not old_shovel
    assert user.shovel.blade == bronze
    assert report.refreshed_cache_keys == (("Shovel", "georgs_shovel"),)
    assert manager.cache.get(Shovel, "georgs_shovel").instance is user.shovel


def test_links_without_checksum_trust_cache(tmp_path) -> None:
    """Links without a checksum should never invalidate the cache."""
    manager = StoreManager.open(tmp_path)
    options = WriteOptions(emit_checksum=False, overwrite=True)
    manager.write(User(name="georg", shovel=_georgs_shovel()), options)
    old_shovel = manager.read(User, "georg").shovel

    manager.write(
        User(name="georg", shovel=_georgs_shovel(Material(name="tin", cotton_content=0.0))),
        options,
    )
    user, report = manager.read_verbose(User, "georg")

    assert user.shovel is old_shovel
    assert user.shovel.blade == steel()
    assert report.refreshed_cache_keys == ()


def test_manual_cache_insert_is_trusted(tmp_path) -> None:
    """Instances inserted by hand should win over files on disk."""
    manager = StoreManager.open(tmp_path)
    manager.write(User(name="georg", shovel=_georgs_shovel()))
    replacement = _georgs_shovel(Material(name="wood", cotton_content=0.0))
    manager.cache.insert(replacement)

    user = manager.read(User, "georg")

    assert user.shovel is replacement


def test_optional_links_store_empty_links(tmp_path) -> None:
    """Absent optional components should round-trip through empty links."""
    manager = StoreManager.open(tmp_path)

    path = manager.write(Stool(name="bare"))
    stool = manager.read(Stool, "bare")

    assert yaml.safe_load(path.read_text(encoding="utf-8")) == {
        "Stool": {"name": "bare", "seat": {"name": ""}, "legs": {"name": ""}}
    }
    assert stool.seat is None
    assert stool.legs is None


def test_optional_links_resolve_present_components(tmp_path) -> None:
    """Present optional components should be linked like required ones."""
    manager = StoreManager.open(tmp_path)
    manager.write(Stool(name="padded", seat=pure_cotton(), legs=steel()))

    stool = manager.read(Stool, "padded")

    assert stool.seat == pure_cotton()
    assert stool.legs is manager.cache.get(Material, "steel").instance


def test_missing_shared_target_is_not_cached(tmp_path) -> None:
    """A failed shared load should leave no cache entry behind."""
    manager = StoreManager.open(tmp_path)
    manager.write(User(name="georg", shovel=_georgs_shovel()))
    manager.remove(Shovel, "georgs_shovel")

    with pytest.raises(LinkNotFoundError):
        manager.read(User, "georg")

    assert ("Shovel", "georgs_shovel") not in manager.cache


def test_concurrent_reads_share_one_instance(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Parallel reads through one manager should decode a shared component once."""
    manager = StoreManager.open(tmp_path)
    shovel = _georgs_shovel()
    names = [f"user_{index}" for index in range(8)]
    for name in names:
        manager.write(User(name=name, shovel=shovel))
    loads = _count_loads(monkeypatch)

    with ThreadPoolExecutor(max_workers=4) as executor:
        users = list(executor.map(lambda name: manager.read(User, name), names))

    assert len({id(user.shovel) for user in users}) == 1
    assert loads[("Shovel", "georgs_shovel")] == 1
