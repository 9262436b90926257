"""实例化结果的目录结构校验"""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

from cartrepo.core.cartridge.models import Cartridge
from cartrepo.core.exceptions import MalformedCartridgeError


def _is_executable(p: Path) -> bool:
    return p.is_file() and os.access(p, os.X_OK)


# (相对路径, 检查名, 检查函数)
_CHECKS: list[tuple[str, str, Callable[[Path], bool]]] = [
    ("metadata", "directory", Path.is_dir),
    ("bin", "directory", Path.is_dir),
    ("metadata/manifest.yml", "file", Path.is_file),
    ("bin/control", "executable", _is_executable),
]


def validate_cartridge_home(cartridge: Cartridge, path: str | Path) -> None:
    """校验 cartridge 目录结构，收集全部失败项后一次性抛出

    Raises:
        MalformedCartridgeError: 任一检查失败
    """
    home = Path(path)
    errors = [
        f"{relative} is not {check}"
        for relative, check, predicate in _CHECKS
        if not predicate(home / relative)
    ]
    if errors:
        raise MalformedCartridgeError(
            f"Malformed cartridge ({cartridge.name}, {cartridge.version}, "
            f"{cartridge.cartridge_version})",
            errors,
            key=cartridge.key,
        )
