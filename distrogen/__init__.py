"""
DistroGen - 服务器分发清单生成工具

遍历分发根目录，为每个服务器构建模块树，计算构件哈希并生成 distribution.json。
"""

from distrogen.models import Distribution, Server
from distrogen.structure import DistributionStructureBuilder, ServerStructureBuilder
from distrogen.version import VersionToken

__version__ = "0.1.0"

__all__ = [
    "Distribution",
    "DistributionStructureBuilder",
    "Server",
    "ServerStructureBuilder",
    "VersionToken",
    "__version__",
]
