"""Cartridge 三级索引测试"""

from __future__ import annotations

from pathlib import Path

from cartrepo.core.cartridge.index import WILDCARD, CartridgeIndex
from cartrepo.core.cartridge.models import Cartridge


def _cart(
    name: str = "php", versions: tuple[str, ...] = ("5.3", "5.4"), cv: str = "1.0",
    path: Path | None = None,
) -> Cartridge:
    return Cartridge(
        name=name, vendor="redhat", versions=list(versions), version=versions[-1],
        cartridge_version=cv, repository_path=path,
    )


class TestLookup:
    def test_all_key_shapes_resolve(self) -> None:
        idx = CartridgeIndex()
        php = idx.insert(_cart())
        assert idx.lookup("php") is php
        assert idx.lookup("php", "5.3") is php
        assert idx.lookup("php", "5.4") is php
        assert idx.lookup("php", "5.3", "1.0") is php
        assert idx.lookup("php", "5.4", "1.0") is php

    def test_latest_by_version_key_not_insertion_order(self) -> None:
        idx = CartridgeIndex()
        newer = idx.insert(_cart(cv="1.10"))
        idx.insert(_cart(cv="1.9"))
        assert idx.lookup("php") is newer
        assert idx.lookup("php", "5.3") is newer

    def test_latest_software_version(self) -> None:
        idx = CartridgeIndex()
        old = idx.insert(_cart(versions=("5.3",), cv="2.0"))
        new = idx.insert(_cart(versions=("5.4",), cv="1.0"))
        assert idx.lookup("php") is new
        assert idx.lookup("php", "5.3") is old

    def test_misses(self) -> None:
        idx = CartridgeIndex()
        idx.insert(_cart())
        assert idx.lookup("ruby") is None
        assert idx.lookup("php", "5.5") is None
        assert idx.lookup("php", "5.3", "9.9") is None
        assert idx.lookup("php", None, "1.0") is None
        assert not idx.exists("php", "5.5")
        assert idx.exists("php")
        assert "php" in idx


class TestRemoveIdentity:
    def test_removes_every_slot_of_object(self) -> None:
        idx = CartridgeIndex()
        php = idx.insert(_cart())
        assert idx.remove_identity(php) == 2
        assert idx.lookup("php") is None
        assert "php" not in idx
        assert len(idx) == 0

    def test_sibling_with_equal_fields_survives(self) -> None:
        idx = CartridgeIndex()
        first = idx.insert(_cart(cv="1.0"))
        twin = _cart(cv="1.0")
        idx.remove_identity(twin)
        assert idx.lookup("php", "5.3", "1.0") is first

    def test_sibling_revision_unaffected(self) -> None:
        idx = CartridgeIndex()
        r1 = idx.insert(_cart(cv="1.0"))
        r2 = idx.insert(_cart(cv="1.1"))
        idx.remove_identity(r2)
        assert idx.lookup("php") is r1
        assert idx.lookup("php", "5.4") is r1
        assert idx.lookup("php", "5.4", "1.1") is None
        assert len(idx) == 1


class TestInsert:
    def test_same_repository_path_replaces_owner(self, tmp_path: Path) -> None:
        idx = CartridgeIndex()
        path = tmp_path / "redhat-php" / "1.0"
        idx.insert(_cart(path=path))
        fresh = idx.insert(_cart(path=path))
        assert len(idx) == 1
        assert idx.lookup("php") is fresh

    def test_size_counts_identities_not_slots(self) -> None:
        idx = CartridgeIndex()
        idx.insert(_cart(versions=("5.3", "5.4", "5.5")))
        idx.insert(_cart(name="ruby", versions=("1.9",)))
        assert len(idx) == 2
        assert [c.name for c in idx.unique()] == ["php", "ruby"]

    def test_rows_include_wildcards(self) -> None:
        idx = CartridgeIndex()
        php = idx.insert(_cart(versions=("5.4",)))
        assert idx.rows() == [
            ("php", WILDCARD, WILDCARD, php),
            ("php", "5.4", WILDCARD, php),
            ("php", "5.4", "1.0", php),
        ]

    def test_clear(self) -> None:
        idx = CartridgeIndex()
        idx.insert(_cart())
        idx.clear()
        assert len(idx) == 0
