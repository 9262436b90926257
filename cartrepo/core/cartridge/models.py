"""Cartridge 数据模型

数据类:
- Cartridge: cartridge 描述对象（由 manifest 解析而来，解析后不再修改）
- DownloadLimits: 远程下载限制

函数:
- version_key: 版本号自然排序键
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

_VERSION_TOKEN_RE = re.compile(r"\d+|[A-Za-z]+")


def version_key(version: str) -> tuple[tuple[int, int | str], ...]:
    """版本号排序键：数字段按整数比较，字母段按字符串比较

    "5.10" > "5.9"，"1.0.1" > "1.0"，数字段总是大于同位置的字母段。
    """
    return tuple(
        (1, int(tok)) if tok.isdigit() else (0, tok)
        for tok in _VERSION_TOKEN_RE.findall(version)
    )


@dataclass
class DownloadLimits:
    """下载限制，语义与 curl 的对应参数一致"""

    max_time: int = 10          # 秒，--max-time
    max_size: int = 20480       # KiB，换算为字节后传给 --max-filesize
    max_redirects: int = 2      # --max-redirs
    limit_rate: str = "100k"    # --limit-rate
    connect_timeout: int = 2    # 秒，--connect-timeout

    @property
    def max_size_bytes(self) -> int:
        return self.max_size * 1024


@dataclass(eq=False)
class Cartridge:
    """单个 cartridge 版本的描述对象

    同一对象在索引中会出现在多个槽位（每个软件版本各一个），
    删除时按 uid 识别"同一个"对象，而不是按字段相等。
    """

    name: str
    vendor: str
    versions: list[str]
    version: str
    cartridge_version: str
    repository_path: Path | None = None
    manifest_path: Path | None = None      # None 表示需要从网络获取
    source_url: str = ""
    source_checksum: str = ""              # Source-Md5
    display_name: str = ""
    description: str = ""
    categories: list[str] = field(default_factory=list)
    provides: list[str] = field(default_factory=list)
    manifest: dict[str, Any] = field(default_factory=dict, repr=False)
    uid: str = field(default_factory=lambda: uuid.uuid4().hex, repr=False)

    @property
    def directory_name(self) -> str:
        return f"{self.vendor}-{self.name}"

    @property
    def is_remote(self) -> bool:
        return self.manifest_path is None

    @property
    def key(self) -> tuple[str, str, str]:
        return self.name, self.version, self.cartridge_version

    def to_dict(self) -> dict[str, Any]:
        """格式化为可序列化字典，用于 CLI 输出"""
        return {
            "name": self.name,
            "vendor": self.vendor,
            "version": self.version,
            "versions": list(self.versions),
            "cartridge_version": self.cartridge_version,
            "display_name": self.display_name,
            "categories": list(self.categories),
            "repository_path": str(self.repository_path or ""),
            "source_url": self.source_url,
        }

    def __str__(self) -> str:
        return (
            f"{self.vendor}-{self.name} "
            f"({', '.join(self.versions)}) {self.cartridge_version}"
        )
