"""Cartridge 仓库模块

拆分说明:
- models.py: 数据模型 Cartridge / DownloadLimits
- manifest.py: manifest.yml 解析
- index.py: 三级内存索引（缺省版本解析、按身份删除）
- repository.py: 仓库（索引 + 磁盘存储，单锁串行化修改）
- instantiate.py: 实例化到 gear 目录（本地 / git / 归档下载 / file://）
- validator.py: 实例化结果结构校验
"""

from cartrepo.core.cartridge.index import CartridgeIndex
from cartrepo.core.cartridge.instantiate import CartridgeInstantiator, instantiate_cartridge
from cartrepo.core.cartridge.manifest import parse_manifest, parse_manifest_text
from cartrepo.core.cartridge.models import Cartridge, DownloadLimits, version_key
from cartrepo.core.cartridge.repository import CartridgeRepository
from cartrepo.core.cartridge.validator import validate_cartridge_home

__all__ = [
    "Cartridge",
    "CartridgeIndex",
    "CartridgeInstantiator",
    "CartridgeRepository",
    "DownloadLimits",
    "instantiate_cartridge",
    "parse_manifest",
    "parse_manifest_text",
    "validate_cartridge_home",
    "version_key",
]
