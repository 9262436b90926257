"""Cartridge 实例化 — 把已解析的 cartridge 落地到 gear 目录

来源策略:
- 本地仓库: 复制 repository_path 下的全部条目，usr 目录以符号链接共享
- git:      在目标的父目录下 git clone 到目标目录本身，随后 git repack
- zip / tar.gz / tar: curl 下载到临时文件，可选 md5 校验，解压后去掉单层包装目录
- file://:  直接复制 URI 指向目录下的全部条目

任何一步失败都会删除整个目标目录再抛出异常，调用方看到的是"全有或全无"。
本模块不接触仓库索引和锁，只处理一个已解析、不再修改的 Cartridge。
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
from pathlib import Path
from urllib.parse import unquote, urlparse

from cartrepo.core.cartridge.models import Cartridge, DownloadLimits
from cartrepo.core.cartridge.validator import validate_cartridge_home
from cartrepo.core.exceptions import (
    CommandTimeoutError,
    DownloadTimeoutError,
    ExecutionError,
    IntegrityError,
    InvalidArgumentError,
)
from cartrepo.utils.fs import copy_entries, list_entries, remove_tree
from cartrepo.utils.logger import cartridge_context
from cartrepo.utils.net import SourceKind, classify_source_url
from cartrepo.utils.shell import CommandExecutor, run_cmd

logger = logging.getLogger(__name__)

# curl 自身按 --max-time 退出；外层超时只用于兜底强杀
_KILL_GRACE_SECONDS = 5
_CURL_TIMEOUT_RC = 28

_ARCHIVE_KINDS = (SourceKind.ZIP, SourceKind.TGZ, SourceKind.TAR)


class CartridgeInstantiator:
    """Cartridge 实例化器"""

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        limits: DownloadLimits | None = None,
    ) -> None:
        self.executor = executor
        self.limits = limits or DownloadLimits()

    def instantiate(self, cartridge: Cartridge, target: str | Path) -> Path:
        """在 target 下实例化 cartridge，返回 target

        失败时 target 被整体删除。
        """
        target = Path(target)
        try:
            target.mkdir(parents=True, exist_ok=True)
            if cartridge.is_remote:
                self._from_source_url(cartridge, target)
            else:
                self._from_repository(cartridge, target)
            validate_cartridge_home(cartridge, target)
        except Exception:
            logger.warning(
                "实例化失败，回滚目标目录: %s", target,
                extra=cartridge_context(cartridge),
            )
            shutil.rmtree(target, ignore_errors=True)
            raise

        logger.info(
            "已实例化 cartridge %s -> %s", cartridge.name, target,
            extra=cartridge_context(cartridge),
        )
        return target

    # ------------------------------------------------------------------
    # 本地仓库
    # ------------------------------------------------------------------

    def _from_repository(self, cartridge: Cartridge, target: Path) -> None:
        repository_path = cartridge.repository_path
        if repository_path is None or not repository_path.is_dir():
            raise InvalidArgumentError(
                f"cartridge 仓库目录不存在: {cartridge.name} -> {repository_path}"
            )

        _copy_sources(repository_path, target, exclude=("usr",))

        usr_path = repository_path / "usr"
        if usr_path.exists():
            (target / "usr").symlink_to(usr_path)
        logger.debug("本地复制完成: %s -> %s", repository_path, target)

    # ------------------------------------------------------------------
    # 远程来源
    # ------------------------------------------------------------------

    def _from_source_url(self, cartridge: Cartridge, target: Path) -> None:
        url = cartridge.source_url
        kind = classify_source_url(url)
        logger.info("获取远程 cartridge [%s]: %s", kind.value, url)

        if kind is SourceKind.GIT:
            self._git_clone(cartridge, target)
        elif kind in _ARCHIVE_KINDS:
            self._download_and_extract(cartridge, target, kind)
        else:
            source = Path(unquote(urlparse(url).path))
            if not source.is_dir():
                raise InvalidArgumentError(f"file:// 路径不是目录: {source}")
            _copy_sources(source, target)

    def _git_clone(self, cartridge: Cartridge, target: Path) -> None:
        # 克隆目录即 target
        parent = str(target.parent)
        run_cmd(
            ["git", "clone", cartridge.source_url, target.name],
            cwd=parent, label="git clone", executor=self.executor,
        )
        run_cmd(
            ["git", "repack"],
            cwd=parent,
            env={**os.environ, "GIT_DIR": f"./{target.name}/.git"},
            label="git repack", executor=self.executor,
        )

    def _download_and_extract(
        self, cartridge: Cartridge, target: Path, kind: SourceKind,
    ) -> None:
        basename = Path(urlparse(cartridge.source_url).path).name
        # 每次调用独立的临时文件，并发实例化互不干扰
        fd, tmp = tempfile.mkstemp(
            prefix=f"{cartridge.name}-", suffix=f"-{basename}", dir=target.parent,
        )
        os.close(fd)
        temporary = Path(tmp)
        try:
            self.download(cartridge.source_url, temporary, cartridge.source_checksum)
            self._extract(kind, temporary, target)
        finally:
            temporary.unlink(missing_ok=True)

        _hoist_single_directory(target)

    def download(self, url: str, dest: Path, checksum: str = "") -> None:
        """用 curl 下载到 dest，给出 checksum 时校验 md5

        Raises:
            DownloadTimeoutError: 超出 max_time（curl 退出码 28 或被强杀）
            ExecutionError: curl 其他失败（HTTP 错误、超过大小限制等）
            IntegrityError: 校验和不匹配
        """
        limits = self.limits
        args = [
            "curl", "-q", "-f", "-L", "-k", "-s", "-S",
            "--max-time", str(limits.max_time),
            "--limit-rate", limits.limit_rate,
            "--connect-timeout", str(limits.connect_timeout),
            "--max-redirs", str(limits.max_redirects),
            "--max-filesize", str(limits.max_size_bytes),
            "-o", str(dest),
            url,
        ]
        try:
            run_cmd(
                args,
                timeout=limits.max_time + _KILL_GRACE_SECONDS,
                label="curl", executor=self.executor,
            )
        except CommandTimeoutError as e:
            raise DownloadTimeoutError(url, timeout=limits.max_time) from e
        except ExecutionError as e:
            if e.returncode == _CURL_TIMEOUT_RC:
                raise DownloadTimeoutError(url, timeout=limits.max_time) from e
            raise

        if checksum:
            actual = file_md5(dest)
            if actual.lower() != checksum.lower():
                raise IntegrityError(url, checksum, actual)
            logger.debug("校验和通过: %s", url)

    def _extract(self, kind: SourceKind, archive: Path, target: Path) -> None:
        if kind is SourceKind.ZIP:
            args = ["unzip", "-q", "-d", str(target), str(archive)]
        elif kind is SourceKind.TGZ:
            args = ["tar", "-C", str(target), "-zxpf", str(archive)]
        else:
            args = ["tar", "-C", str(target), "-xpf", str(archive)]
        run_cmd(args, label=f"extract {kind.value}", executor=self.executor)


def instantiate_cartridge(
    cartridge: Cartridge,
    target: str | Path,
    *,
    executor: CommandExecutor | None = None,
    limits: DownloadLimits | None = None,
) -> Path:
    """实例化便捷函数"""
    return CartridgeInstantiator(executor=executor, limits=limits).instantiate(
        cartridge, target,
    )


def file_md5(path: Path) -> str:
    md5 = hashlib.md5()  # noqa: S324
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            md5.update(chunk)
    return md5.hexdigest()


def _copy_sources(source: Path, target: Path, exclude: tuple[str, ...] = ()) -> None:
    entries = list_entries(source, exclude=exclude)
    if not entries:
        raise InvalidArgumentError(f"未找到可安装的 cartridge 源文件: {source}")
    copy_entries(entries, target)


def _hoist_single_directory(target: Path) -> None:
    """解压结果只有一个顶层目录时，把其内容上移一层（如 GitHub 导出的 zip）"""
    visible = [p for p in target.iterdir() if not p.name.startswith(".")]
    if len(visible) != 1 or visible[0].is_symlink() or not visible[0].is_dir():
        return

    wrapper = visible[0]
    to_delete = wrapper.with_name(wrapper.name + ".to_delete")
    wrapper.rename(to_delete)
    for child in list_entries(to_delete):
        shutil.move(str(child), str(target / child.name))
    remove_tree(to_delete)
    logger.debug("已去除包装目录: %s", wrapper.name)
