"""
DistroGen 结构层

根目录布局、服务器声明文件、服务器骨架生成与分发清单构建。
"""

from distrogen.structure.distribution import BuildResult, DistributionStructureBuilder
from distrogen.structure.layout import (
    CATEGORIES,
    MANIFEST_NAME,
    SERVER_META_NAME,
    SERVERS_DIR,
    ModuleCategory,
)
from distrogen.structure.server import ServerStructureBuilder, select_loader
from distrogen.structure.servermeta import CurseForgeMarker, ServerMeta

__all__ = [
    "BuildResult",
    "DistributionStructureBuilder",
    "CATEGORIES",
    "MANIFEST_NAME",
    "SERVER_META_NAME",
    "SERVERS_DIR",
    "ModuleCategory",
    "ServerStructureBuilder",
    "select_loader",
    "CurseForgeMarker",
    "ServerMeta",
]
