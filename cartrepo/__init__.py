"""cartrepo - 节点级 cartridge 仓库"""

__version__ = "0.1.0"
