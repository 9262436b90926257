"""集中配置管理

提供节点级统一配置入口：仓库目录、下载限制、日志。
支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

import yaml

from cartrepo.core.exceptions import ConfigError
from cartrepo.utils.yaml_io import load_yaml

if TYPE_CHECKING:
    from cartrepo.core.cartridge.models import DownloadLimits

logger = logging.getLogger(__name__)

DEFAULT_REPOSITORY_DIR = "/var/lib/openshift/.cartridge_repository"


@dataclass
class Config:
    """节点全局配置"""

    # 目录
    repository_dir: str = DEFAULT_REPOSITORY_DIR

    # 下载限制（传给下载工具）
    download_max_time: int = 10            # 秒
    download_max_size: int = 20480         # KiB
    download_max_redirects: int = 2
    download_limit_rate: str = "100k"
    download_connect_timeout: int = 2      # 秒

    # 日志
    log_level: str = "INFO"
    log_json: bool = False

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = "configs/cartrepo.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"读取配置失败: {path}: {e}") from e
        if not data:
            return cls()
        known = {f for f in cls.__dataclass_fields__ if f != "extra"}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        try:
            cfg = cls(**matched)
        except TypeError as e:
            raise ConfigError(f"配置内容无效: {path}: {e}") from e
        cfg.extra = extra
        return cfg

    def download_limits(self) -> DownloadLimits:
        from cartrepo.core.cartridge.models import DownloadLimits
        return DownloadLimits(
            max_time=self.download_max_time,
            max_size=self.download_max_size,
            max_redirects=self.download_max_redirects,
            limit_rate=self.download_limit_rate,
            connect_timeout=self.download_connect_timeout,
        )

    def to_dict(self) -> dict:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "configs/cartrepo.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current


def reset_config() -> None:
    """恢复默认配置（仅用于测试）"""
    global _current  # noqa: PLW0603
    _current = None
