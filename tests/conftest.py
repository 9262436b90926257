"""测试公共 fixture：cartridge 源目录构造与假命令执行器"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from pathlib import Path

import pytest
import yaml

from cartrepo.utils.shell import CommandResult


def write_cartridge(
    root: Path,
    name: str = "php",
    vendor: str = "redhat",
    cartridge_version: str = "1.0",
    versions: list[str] | None = None,
    *,
    with_control: bool = True,
    with_usr: bool = True,
    extra: dict | None = None,
) -> Path:
    """在 root 下生成一个结构合法的 cartridge 源目录"""
    versions = versions or ["5.3", "5.4"]
    (root / "metadata").mkdir(parents=True, exist_ok=True)
    (root / "bin").mkdir(exist_ok=True)
    manifest = {
        "Name": name,
        "Cartridge-Vendor": vendor,
        "Cartridge-Version": cartridge_version,
        "Version": versions[-1],
        "Versions": versions,
        **(extra or {}),
    }
    (root / "metadata" / "manifest.yml").write_text(
        yaml.safe_dump(manifest), encoding="utf-8",
    )
    if with_control:
        control = root / "bin" / "control"
        control.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
        control.chmod(0o755)
    if with_usr:
        (root / "usr").mkdir(exist_ok=True)
        (root / "usr" / "shared.txt").write_text("shared", encoding="utf-8")
    (root / "README").write_text(f"{name} {cartridge_version}\n", encoding="utf-8")
    return root


@pytest.fixture()
def make_source(tmp_path: Path) -> Callable[..., Path]:
    """返回工厂函数: make_source("php", cartridge_version="1.0") -> 源目录"""

    def _make(name: str = "php", cartridge_version: str = "1.0", **kwargs) -> Path:
        root = tmp_path / "src" / f"{name}-{cartridge_version}"
        return write_cartridge(root, name, cartridge_version=cartridge_version, **kwargs)

    return _make


class FakeExecutor:
    """假命令执行器：记录调用，按命令名返回预设结果

    handlers 的值可以是 CommandResult、异常实例，或 (args, cwd) -> CommandResult 的函数
    （函数可以在磁盘上制造副作用，模拟 curl 下载 / tar 解压）。
    """

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.handlers: dict[str, object] = {}

    def execute(
        self,
        args: list[str],
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        self.calls.append({"args": list(args), "cwd": cwd, "env": env, "timeout": timeout})
        handler = self.handlers.get(args[0])
        if handler is None:
            return CommandResult(returncode=0, stdout="", stderr="")
        if isinstance(handler, BaseException):
            raise handler
        if isinstance(handler, CommandResult):
            return handler
        return handler(args, cwd)  # type: ignore[operator]

    def commands(self) -> list[str]:
        return [c["args"][0] for c in self.calls]


@pytest.fixture()
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


def _curl_writes(content: bytes) -> Callable[[list[str], str | None], CommandResult]:
    """模拟 curl: 把 content 写到 -o 指定的文件"""

    def _handler(args: list[str], cwd: str | None) -> CommandResult:
        Path(args[args.index("-o") + 1]).write_bytes(content)
        return CommandResult(returncode=0, stdout="", stderr="")

    return _handler


def _tar_extracts(tree: Path) -> Callable[[list[str], str | None], CommandResult]:
    """模拟 tar/unzip: 把预先准备好的目录树复制到 -C / -d 指定的目标"""

    def _handler(args: list[str], cwd: str | None) -> CommandResult:
        flag = "-C" if args[0] == "tar" else "-d"
        dest = Path(args[args.index(flag) + 1])
        shutil.copytree(tree, dest, symlinks=True, dirs_exist_ok=True)
        return CommandResult(returncode=0, stdout="", stderr="")

    return _handler


@pytest.fixture()
def curl_writes() -> Callable[[bytes], Callable]:
    return _curl_writes


@pytest.fixture()
def tar_extracts() -> Callable[[Path], Callable]:
    return _tar_extracts
