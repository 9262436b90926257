"""仓库管理命令：load / list / show / select / install / erase"""

from __future__ import annotations

import json

import click

from cartrepo.cli import _svc, handle_errors
from cartrepo.core.cartridge.models import Cartridge


def register(main: click.Group) -> None:
    """注册仓库管理相关命令"""
    main.add_command(load)
    main.add_command(list_cartridges)
    main.add_command(show)
    main.add_command(select)
    main.add_command(install)
    main.add_command(erase)


def _echo_cartridge(c: Cartridge, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(c.to_dict(), ensure_ascii=False, indent=2))
    else:
        click.echo(
            f"  {c.name:20s} {c.version:10s} {c.cartridge_version:10s} "
            f"[{c.vendor}] versions={','.join(c.versions)}"
        )


@click.command()
@click.argument("directory", required=False)
@handle_errors
def load(directory: str | None) -> None:
    """重新扫描仓库目录并建立索引"""
    count = _svc().repository.load(directory)
    click.echo(f"已索引 cartridge: {count}")


@click.command(name="list")
@click.option("--json", "as_json", is_flag=True, help="以 JSON 输出")
@handle_errors
def list_cartridges(as_json: bool) -> None:
    """列出仓库中的全部 cartridge"""
    carts = _svc().repository.enumerate()
    if as_json:
        click.echo(json.dumps([c.to_dict() for c in carts], ensure_ascii=False, indent=2))
        return
    if not carts:
        click.echo("仓库中没有 cartridge。")
        return
    for c in carts:
        _echo_cartridge(c, as_json=False)


@click.command()
@handle_errors
def show() -> None:
    """打印全部索引槽位（含缺省槽位）"""
    click.echo(str(_svc().repository))


@click.command()
@click.argument("name")
@click.argument("version", required=False)
@click.argument("cartridge_version", required=False)
@click.option("--json", "as_json", is_flag=True, help="以 JSON 输出")
@handle_errors
def select(
    name: str, version: str | None, cartridge_version: str | None, as_json: bool,
) -> None:
    """按 name [软件版本] [cartridge 版本] 选择 cartridge，缺省取最新"""
    c = _svc().repository.select(name, version, cartridge_version)
    _echo_cartridge(c, as_json)


@click.command()
@click.argument("directory", type=click.Path(file_okay=False))
@handle_errors
def install(directory: str) -> None:
    """从源目录安装 cartridge 到仓库"""
    c = _svc().repository.install(directory)
    click.echo(f"已安装: {c.name} {','.join(c.versions)} {c.cartridge_version} -> {c.repository_path}")


@click.command()
@click.argument("name")
@click.argument("version")
@click.argument("cartridge_version")
@handle_errors
def erase(name: str, version: str, cartridge_version: str) -> None:
    """从仓库删除指定版本的 cartridge（不可恢复）"""
    c = _svc().repository.erase(name, version, cartridge_version)
    click.echo(f"已删除: {c.name} {','.join(c.versions)} {c.cartridge_version}")
