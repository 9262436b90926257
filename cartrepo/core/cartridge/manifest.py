"""Cartridge manifest 解析

职责:
- 从 manifest.yml 文件或 YAML 文本构造 Cartridge 描述对象
- 选定软件版本并合并 Version-Overrides
- 计算仓库内路径 <repository_base>/<vendor>-<name>/<cartridge_version>

manifest 示例::

    Name: php
    Cartridge-Vendor: redhat
    Cartridge-Version: '1.0'
    Version: '5.4'
    Versions: ['5.3', '5.4']
    Source-Url: https://example.com/php.zip
    Source-Md5: 0123456789abcdef0123456789abcdef
    Version-Overrides:
      '5.3':
        Display-Name: PHP 5.3
"""

from __future__ import annotations

import copy
import logging
import re
from pathlib import Path
from typing import Any

import yaml

from cartrepo.core.cartridge.models import Cartridge, version_key
from cartrepo.core.exceptions import ManifestParseError
from cartrepo.utils.yaml_io import load_yaml_text

logger = logging.getLogger(__name__)

_REQUIRED_KEYS = ("Name", "Cartridge-Vendor", "Cartridge-Version")
_WHITESPACE_RE = re.compile(r"\s+")


def parse_manifest(
    manifest_path: str | Path,
    version: str | None = None,
    repository_base: str | Path | None = None,
) -> Cartridge:
    """从 manifest.yml 文件解析 cartridge"""
    path = Path(manifest_path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestParseError(f"无法读取 manifest: {path}: {e}") from e
    return _build(text, str(path), version, repository_base, manifest_path=path)


def parse_manifest_text(
    text: str,
    version: str | None = None,
    repository_base: str | Path | None = None,
) -> Cartridge:
    """从 YAML 文本解析 cartridge，结果标记为需要从网络获取"""
    return _build(text, "<string>", version, repository_base, manifest_path=None)


def _build(
    text: str,
    source: str,
    version: str | None,
    repository_base: str | Path | None,
    manifest_path: Path | None,
) -> Cartridge:
    try:
        raw = load_yaml_text(text, source=source)
    except yaml.YAMLError as e:
        raise ManifestParseError(f"manifest YAML 格式错误: {source}: {e}") from e

    if not isinstance(raw, dict):
        raise ManifestParseError(
            f"manifest 根节点必须是映射: {source} (实际类型: {type(raw).__name__})"
        )

    missing = [k for k in _REQUIRED_KEYS if not raw.get(k)]
    if missing:
        raise ManifestParseError(f"manifest 缺少必填字段 {missing}: {source}")

    versions = _declared_versions(raw, source)
    selected = _select_version(raw, versions, version, source)
    manifest = _apply_overrides(raw, selected, source)

    name = str(manifest["Name"])
    vendor = _WHITESPACE_RE.sub("", str(manifest["Cartridge-Vendor"])).lower()
    cartridge_version = str(manifest["Cartridge-Version"])
    for field_name, value in (
        ("Name", name), ("Cartridge-Vendor", vendor), ("Cartridge-Version", cartridge_version),
    ):
        _check_path_component(field_name, value, source)

    repository_path = None
    if repository_base is not None:
        repository_path = Path(repository_base) / f"{vendor}-{name}" / cartridge_version

    return Cartridge(
        name=name,
        vendor=vendor,
        versions=versions,
        version=selected,
        cartridge_version=cartridge_version,
        repository_path=repository_path,
        manifest_path=manifest_path,
        source_url=str(manifest.get("Source-Url") or ""),
        source_checksum=str(manifest.get("Source-Md5") or ""),
        display_name=str(manifest.get("Display-Name") or name),
        description=str(manifest.get("Description") or ""),
        categories=_as_list(manifest.get("Categories")),
        provides=_as_list(manifest.get("Provides")),
        manifest=manifest,
    )


def _check_path_component(field_name: str, value: str, source: str) -> None:
    """仓库路径由这些字段拼接，不允许出现目录分隔符或相对路径"""
    if value in (".", "..") or "/" in value or "\\" in value or "\0" in value:
        raise ManifestParseError(f"manifest 字段 {field_name} 不能作为目录名: {value!r}: {source}")


def _declared_versions(raw: dict[str, Any], source: str) -> list[str]:
    """Versions 优先，缺省时回退到单个 Version"""
    declared = raw.get("Versions")
    if declared is None:
        declared = [raw["Version"]] if raw.get("Version") is not None else []
    elif not isinstance(declared, list):
        declared = [declared]

    versions: list[str] = []
    for v in declared:
        s = str(v)
        if s not in versions:
            versions.append(s)
    if not versions:
        raise ManifestParseError(f"manifest 未声明任何软件版本 (Version/Versions): {source}")
    return versions


def _select_version(
    raw: dict[str, Any], versions: list[str], requested: str | None, source: str,
) -> str:
    if requested is not None:
        if requested not in versions:
            raise ManifestParseError(
                f"软件版本 {requested} 不在 manifest 声明中 {versions}: {source}"
            )
        return requested
    default = raw.get("Version")
    if default is not None and str(default) in versions:
        return str(default)
    return max(versions, key=version_key)


def _apply_overrides(raw: dict[str, Any], selected: str, source: str) -> dict[str, Any]:
    overrides = raw.get("Version-Overrides") or {}
    if not isinstance(overrides, dict):
        raise ManifestParseError(f"Version-Overrides 必须是映射: {source}")

    manifest = copy.deepcopy(raw)
    manifest.pop("Version-Overrides", None)
    # YAML 中未加引号的版本号会被解析成 float
    for key, patch in overrides.items():
        if str(key) != selected or not patch:
            continue
        if not isinstance(patch, dict):
            raise ManifestParseError(f"Version-Overrides[{key}] 必须是映射: {source}")
        manifest.update(copy.deepcopy(patch))
        logger.debug("已应用版本覆盖: %s -> %s", selected, sorted(patch))
    manifest["Version"] = selected
    return manifest


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v) for v in value]
    return [str(value)]
