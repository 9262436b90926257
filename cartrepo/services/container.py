"""服务容器 — 统一依赖注入

每个节点进程持有一个 CartridgeRepository：进程启动时构造并 load，
之后在进程生命周期内复用。CLI 和其他调用方通过容器获取仓库实例，
而不是各自构造。

用法:
    container = ServiceContainer()
    repo = container.repository          # 懒加载，首次访问时扫描磁盘
    inst = container.instantiator

    # 显式注入配置
    cfg = Config.from_file("my_config.yml")
    container = ServiceContainer(config=cfg)

    # 全局单例
    from cartrepo.services.container import get_container
    repo = get_container().repository
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cartrepo.core.cartridge.instantiate import CartridgeInstantiator
    from cartrepo.core.cartridge.repository import CartridgeRepository
    from cartrepo.core.config import Config
    from cartrepo.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器"""

    def __init__(
        self,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self._instances: dict[str, object] = {}
        self._lock = threading.Lock()
        if config is None:
            from cartrepo.core.config import get_config
            config = get_config()
        self._config = config
        self._executor = executor

    @property
    def config(self) -> Config:
        return self._config

    @property
    def repository(self) -> CartridgeRepository:
        with self._lock:
            if "repository" not in self._instances:
                from cartrepo.core.cartridge.repository import CartridgeRepository
                self._instances["repository"] = CartridgeRepository(
                    self._config.repository_dir, autoload=True,
                )
        return self._instances["repository"]  # type: ignore[return-value]

    @property
    def instantiator(self) -> CartridgeInstantiator:
        with self._lock:
            if "instantiator" not in self._instances:
                from cartrepo.core.cartridge.instantiate import CartridgeInstantiator
                self._instances["instantiator"] = CartridgeInstantiator(
                    executor=self._executor,
                    limits=self._config.download_limits(),
                )
        return self._instances["instantiator"]  # type: ignore[return-value]


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def reset_container() -> None:
    """重置全局容器（仅用于测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None
