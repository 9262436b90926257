"""Cartridge 仓库 — 每个节点一个

磁盘布局::

    <repository_dir>/<vendor>-<name>
        +- <cartridge_version 0>
        |  +- metadata
        |  |  +- manifest.yml
        |  +- ...(文件树)
        +- <cartridge_version 1>
        |  +- ...

内存索引见 cartrepo.core.cartridge.index。
所有修改（load / install / erase）与索引读取都在同一把锁下进行，
读取路径只做内存查找，不做任何 IO。

用法:
    repo = CartridgeRepository("/var/lib/openshift/.cartridge_repository")
    repo.load()
    php = repo.select("php")              # 最新版本
    php = repo.select("php", "5.4")       # 该软件版本的最新 cartridge 版本
    php = repo["php", "5.4", "1.0"]       # 精确匹配
"""

from __future__ import annotations

import logging
import tempfile
import threading
from collections.abc import Iterator
from pathlib import Path

from cartrepo.core.cartridge.index import CartridgeIndex
from cartrepo.core.cartridge.manifest import parse_manifest
from cartrepo.core.cartridge.models import Cartridge
from cartrepo.core.exceptions import (
    CartridgeNotFoundError,
    InvalidArgumentError,
    ManifestParseError,
)
from cartrepo.utils.fs import copy_entries, list_entries, remove_tree
from cartrepo.utils.logger import cartridge_context

logger = logging.getLogger(__name__)

MANIFEST_GLOB = "*/*/metadata/manifest.yml"


class CartridgeRepository:
    """节点级 cartridge 仓库：内存索引 + 磁盘存储"""

    def __init__(self, path: str | Path, *, autoload: bool = False) -> None:
        self.path = Path(path)
        self.path.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._index = CartridgeIndex()
        if autoload:
            self.load()

    # ------------------------------------------------------------------
    # 索引
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """清空内存索引，不删除磁盘内容"""
        with self._lock:
            self._index.clear()

    def load(self, directory: str | Path | None = None) -> int:
        """扫描目录下的 manifest 并建立索引，返回 cartridge 数量

        可重复调用；同一份磁盘内容重复加载不会增加数量。
        """
        root = Path(directory) if directory is not None else self.path
        if not root.is_dir():
            raise InvalidArgumentError(f"非法的 cartridge 仓库路径: '{root}'")

        with self._lock:
            for manifest_path in sorted(root.glob(MANIFEST_GLOB)):
                # 隐藏目录（安装中的临时目录等）不参与索引
                if any(part.startswith(".") for part in manifest_path.relative_to(root).parts[:2]):
                    continue
                try:
                    c = self._index.insert(
                        parse_manifest(manifest_path, repository_base=self.path)
                    )
                except ManifestParseError as e:
                    logger.warning("跳过无效 manifest %s: %s", manifest_path, e)
                    continue
                logger.debug(
                    "已加载 cartridge (%s, %s, %s) from %s",
                    c.name, c.version, c.cartridge_version, manifest_path,
                )
            count = len(self._index)
        logger.info("cartridge 仓库已加载: %s (%d 个)", root, count)
        return count

    def select(
        self, name: str, version: str | None = None,
        cartridge_version: str | None = None,
    ) -> Cartridge:
        """按 (name, 软件版本, cartridge 版本) 选择 cartridge

        未给出的版本取最新；找不到时抛 CartridgeNotFoundError。
        """
        with self._lock:
            found = self._index.lookup(name, version, cartridge_version)
        if found is None:
            raise CartridgeNotFoundError(name, version, cartridge_version)
        return found

    def __getitem__(self, key: str | tuple[str, ...]) -> Cartridge:
        if isinstance(key, tuple):
            return self.select(*key)
        return self.select(key)

    def exist(
        self, name: str, version: str | None = None,
        cartridge_version: str | None = None,
    ) -> bool:
        with self._lock:
            return self._index.exists(name, version, cartridge_version)

    def size(self) -> int:
        """不同 cartridge 的数量（按对象身份，不按槽位）"""
        with self._lock:
            return len(self._index)

    def __len__(self) -> int:
        return self.size()

    def enumerate(self) -> list[Cartridge]:
        """当前索引快照中的全部 cartridge（去重，不含缺省槽位）"""
        with self._lock:
            return self._index.unique()

    def __iter__(self) -> Iterator[Cartridge]:
        return iter(self.enumerate())

    # ------------------------------------------------------------------
    # 安装 / 删除
    # ------------------------------------------------------------------

    def install(self, directory: str | Path) -> Cartridge:
        """从源目录复制 cartridge 到仓库并建立索引

        复制先落到同级的临时目录，成功后才替换旧内容并写入索引；
        复制失败时索引和旧内容都保持不变。
        """
        if not directory:
            raise InvalidArgumentError(f"非法的 cartridge 源路径: '{directory}'")
        source = Path(directory)
        if not source.is_dir():
            raise InvalidArgumentError(f"非法的 cartridge 源路径: '{source}'")
        if source.resolve() == self.path.resolve():
            raise InvalidArgumentError(f"源路径不能是仓库根目录: '{self.path}'")

        manifest_path = source / "metadata" / "manifest.yml"
        if not manifest_path.is_file():
            raise InvalidArgumentError(f"缺少 cartridge manifest.yml: '{manifest_path}'")

        with self._lock:
            entry = parse_manifest(manifest_path, repository_base=self.path)
            dest = self._store_path(entry)
            dest.parent.mkdir(parents=True, exist_ok=True)

            staging = Path(tempfile.mkdtemp(
                prefix=f".{dest.name}.", suffix=".staging", dir=dest.parent,
            ))
            try:
                copy_entries(list_entries(source), staging)
                staging.chmod(source.stat().st_mode & 0o7777)
                remove_tree(dest)
                staging.rename(dest)
            except OSError:
                remove_tree(staging)
                self._prune_vendor_dir(dest.parent)
                raise

            self._index.insert(entry)

        logger.info(
            "已安装 cartridge %s (%s) -> %s",
            entry.name, ", ".join(entry.versions), dest,
            extra=cartridge_context(entry),
        )
        return entry

    def erase(self, name: str, version: str, cartridge_version: str) -> Cartridge:
        """从仓库删除指定版本的 cartridge（不可恢复）

        同一对象在其他软件版本下的槽位一并删除；
        兄弟 cartridge 版本即使字段相同也不受影响。
        """
        with self._lock:
            entry = self._index.lookup(name, version, cartridge_version)
            if entry is None:
                raise CartridgeNotFoundError(name, version, cartridge_version)
            dest = self._store_path(entry)

            removed = self._index.remove_identity(entry)
            remove_tree(dest)
            self._prune_vendor_dir(dest.parent)

        logger.info(
            "已删除 cartridge %s，移除 %d 个索引槽位", name, removed,
            extra=cartridge_context(entry),
        )
        return entry

    def _store_path(self, entry: Cartridge) -> Path:
        """返回 entry 在仓库中的目录，必须位于仓库根目录之下"""
        dest = entry.repository_path
        root = self.path.resolve()
        if dest is None or dest.resolve() == root or not dest.resolve().is_relative_to(root):
            raise InvalidArgumentError(
                f"cartridge 目录不在仓库内: ({entry.name}, {entry.version}, "
                f"{entry.cartridge_version}) -> {dest}"
            )
        return dest

    @staticmethod
    def _prune_vendor_dir(parent: Path) -> None:
        if parent.is_dir() and not any(parent.iterdir()):
            parent.rmdir()

    # ------------------------------------------------------------------
    # 展示
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        with self._lock:
            rows = self._index.rows()
        lines = ["<CartridgeRepository:"]
        lines.extend(f"({n}, {v}, {cv}): {c}" for n, v, cv, c in rows)
        lines.append(">")
        return "\n".join(lines)
