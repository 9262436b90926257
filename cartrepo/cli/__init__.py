"""cartrepo 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

import functools
import os
from collections.abc import Callable
from typing import Any, TypeVar

import click

from cartrepo import __version__
from cartrepo.core.config import init_config
from cartrepo.core.exceptions import CartRepoError
from cartrepo.services.container import ServiceContainer, get_container, reset_container
from cartrepo.utils.logger import setup_logging

F = TypeVar("F", bound=Callable[..., Any])


def _svc() -> ServiceContainer:
    """获取全局服务容器的快捷方式"""
    return get_container()


def handle_errors(func: F) -> F:
    """把业务异常转换为 click 的友好错误输出（退出码 1）"""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except CartRepoError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e

    return wrapper  # type: ignore[return-value]


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "-c", "config_path",
    default=lambda: os.getenv("CARTREPO_CONFIG", "configs/cartrepo.yml"),
    help="配置文件路径",
)
@click.option("--repository", "-r", default=None, help="覆盖 cartridge 仓库目录")
@handle_errors
def main(config_path: str, repository: str | None) -> None:
    """cartrepo - 节点级 cartridge 仓库"""
    cfg = init_config(config_path)
    if repository:
        cfg.repository_dir = repository
    setup_logging(
        level=os.getenv("CARTREPO_LOG_LEVEL", cfg.log_level),
        json_output=os.getenv("CARTREPO_LOG_JSON", "1" if cfg.log_json else "") == "1",
    )
    reset_container()


# 注册各领域子命令
from cartrepo.cli.cmd_repo import register as _reg_repo  # noqa: E402
from cartrepo.cli.cmd_instantiate import register as _reg_instantiate  # noqa: E402

_reg_repo(main)
_reg_instantiate(main)
