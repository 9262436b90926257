"""Cartridge 内存索引

三级映射: name -> 软件版本 -> cartridge 版本 -> Cartridge

缺省（None）的版本槽位表示"最新":
  - lookup(name)              -> 最大软件版本下的最大 cartridge 版本
  - lookup(name, ver)         -> 该软件版本下的最大 cartridge 版本
  - lookup(name, ver, cv)     -> 精确匹配

"最新"不依赖插入顺序，每次插入/删除后对该 name 显式重算。
本类不加锁，由 CartridgeRepository 在持锁状态下调用。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from cartrepo.core.cartridge.models import Cartridge, version_key

logger = logging.getLogger(__name__)

WILDCARD = "*"


@dataclass
class _NameEntry:
    """单个 cartridge name 下的全部版本及各级"最新"缓存"""

    slots: dict[str, dict[str, Cartridge]] = field(default_factory=dict)
    latest_by_version: dict[str, Cartridge] = field(default_factory=dict)
    latest: Cartridge | None = None

    def refresh(self) -> None:
        self.latest_by_version = {
            ver: revisions[max(revisions, key=version_key)]
            for ver, revisions in self.slots.items()
        }
        if self.slots:
            best_ver = max(self.slots, key=version_key)
            self.latest = self.latest_by_version[best_ver]
        else:
            self.latest = None


class CartridgeIndex:
    """显式三级索引，支持缺省版本解析和按对象身份删除"""

    def __init__(self) -> None:
        self._entries: dict[str, _NameEntry] = {}

    def clear(self) -> None:
        self._entries.clear()

    def insert(self, cartridge: Cartridge) -> Cartridge:
        """按每个声明的软件版本建立索引

        若已有对象占用同一仓库路径（同一份磁盘内容被替换/重新加载），
        先移除旧对象的全部槽位，保证重复 load 幂等。
        """
        if cartridge.repository_path is not None:
            for stale in self._owners_of(cartridge.repository_path):
                if stale.uid != cartridge.uid:
                    self.remove_identity(stale)

        entry = self._entries.setdefault(cartridge.name, _NameEntry())
        for ver in cartridge.versions:
            entry.slots.setdefault(ver, {})[cartridge.cartridge_version] = cartridge
        entry.refresh()
        return cartridge

    def lookup(
        self, name: str, version: str | None = None,
        cartridge_version: str | None = None,
    ) -> Cartridge | None:
        entry = self._entries.get(name)
        if entry is None:
            return None
        if version is None:
            # 只给 cartridge 版本而不给软件版本不是合法的 key
            return entry.latest if cartridge_version is None else None
        if cartridge_version is None:
            return entry.latest_by_version.get(version)
        return entry.slots.get(version, {}).get(cartridge_version)

    def exists(
        self, name: str, version: str | None = None,
        cartridge_version: str | None = None,
    ) -> bool:
        return self.lookup(name, version, cartridge_version) is not None

    def remove_identity(self, cartridge: Cartridge) -> int:
        """删除所有指向同一对象（按 uid）的槽位，返回删除的槽位数"""
        entry = self._entries.get(cartridge.name)
        if entry is None:
            return 0

        removed = 0
        for ver in list(entry.slots):
            revisions = entry.slots[ver]
            for cv in [k for k, v in revisions.items() if v.uid == cartridge.uid]:
                del revisions[cv]
                removed += 1
            if not revisions:
                del entry.slots[ver]

        if entry.slots:
            entry.refresh()
        else:
            del self._entries[cartridge.name]
        return removed

    def unique(self) -> list[Cartridge]:
        """全部不同的 cartridge 对象，按 name / 版本 / cartridge 版本排序"""
        seen: dict[str, Cartridge] = {}
        for entry in self._entries.values():
            for revisions in entry.slots.values():
                for c in revisions.values():
                    seen.setdefault(c.uid, c)
        return sorted(
            seen.values(),
            key=lambda c: (
                c.name, version_key(c.version), version_key(c.cartridge_version), c.uid,
            ),
        )

    def rows(self) -> list[tuple[str, str, str, Cartridge]]:
        """列出所有槽位（含缺省槽位，用 * 表示）"""
        result: list[tuple[str, str, str, Cartridge]] = []
        for name in sorted(self._entries):
            entry = self._entries[name]
            if entry.latest is not None:
                result.append((name, WILDCARD, WILDCARD, entry.latest))
            for ver in sorted(entry.slots, key=version_key):
                result.append((name, ver, WILDCARD, entry.latest_by_version[ver]))
                revisions = entry.slots[ver]
                for cv in sorted(revisions, key=version_key):
                    result.append((name, ver, cv, revisions[cv]))
        return result

    def _owners_of(self, repository_path: Path) -> list[Cartridge]:
        return [c for c in self.unique() if c.repository_path == repository_path]

    def __len__(self) -> int:
        return len(self.unique())

    def __contains__(self, name: object) -> bool:
        return name in self._entries
