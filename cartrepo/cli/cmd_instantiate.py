"""实例化命令：instantiate / instantiate-manifest"""

from __future__ import annotations

from pathlib import Path

import click

from cartrepo.cli import _svc, handle_errors
from cartrepo.core.cartridge.manifest import parse_manifest_text


def register(main: click.Group) -> None:
    """注册实例化相关命令"""
    main.add_command(instantiate)
    main.add_command(instantiate_manifest)


@click.command()
@click.argument("name")
@click.argument("target", type=click.Path(file_okay=False))
@click.option("--version", "version", default=None, help="软件版本（缺省取最新）")
@click.option("--cartridge-version", default=None, help="cartridge 版本（缺省取最新）")
@handle_errors
def instantiate(
    name: str, target: str, version: str | None, cartridge_version: str | None,
) -> None:
    """把仓库中的 cartridge 实例化到 gear 目录"""
    svc = _svc()
    c = svc.repository.select(name, version, cartridge_version)
    path = svc.instantiator.instantiate(c, target)
    click.echo(f"已实例化: {c.name} {c.version} {c.cartridge_version} -> {path}")


@click.command(name="instantiate-manifest")
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.argument("target", type=click.Path(file_okay=False))
@click.option("--version", "version", default=None, help="软件版本（缺省取 manifest 的 Version）")
@handle_errors
def instantiate_manifest(manifest: str, target: str, version: str | None) -> None:
    """按 manifest 的 Source-Url 下载并实例化远程 cartridge"""
    c = parse_manifest_text(Path(manifest).read_text(encoding="utf-8"), version=version)
    path = _svc().instantiator.instantiate(c, target)
    click.echo(f"已实例化: {c.name} {c.version} {c.cartridge_version} -> {path}")
