"""文件系统工具 — 目录条目枚举与复制

复制语义与 `cp -ad` 一致：保留权限和时间戳，符号链接按链接本身复制。
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


def list_entries(directory: Path, exclude: Iterable[str] = ()) -> list[Path]:
    """列出目录下全部条目（含隐藏文件），按名称排序"""
    skipped = set(exclude)
    return sorted(p for p in directory.iterdir() if p.name not in skipped)


def copy_entry(src: Path, dest_dir: Path) -> Path:
    """复制单个条目到 dest_dir 下，返回目标路径"""
    dest = dest_dir / src.name
    if src.is_symlink():
        dest.symlink_to(src.readlink())
        shutil.copystat(src, dest, follow_symlinks=False)
    elif src.is_dir():
        shutil.copytree(src, dest, symlinks=True)
    else:
        shutil.copy2(src, dest)
    return dest


def copy_entries(entries: Iterable[Path], dest_dir: Path) -> int:
    """批量复制条目，返回复制数量"""
    count = 0
    for src in entries:
        copy_entry(src, dest_dir)
        count += 1
    logger.debug("已复制 %d 个条目 -> %s", count, dest_dir)
    return count


def remove_tree(path: Path) -> None:
    """删除目录树或单个文件/链接，不存在时静默返回"""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)
