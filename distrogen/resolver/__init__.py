"""
DistroGen 解析层

构件解析（文件 -> Artifact）与加载器安装布局解析。
"""

from distrogen.resolver.artifact import ArtifactCache, ArtifactResolver
from distrogen.resolver.loader import (
    DEFAULT_LAYOUTS,
    LOADER_DIR,
    LoaderInstallerResolver,
    LoaderLayout,
    LoaderLayoutTable,
)

__all__ = [
    "ArtifactCache",
    "ArtifactResolver",
    "DEFAULT_LAYOUTS",
    "LOADER_DIR",
    "LoaderInstallerResolver",
    "LoaderLayout",
    "LoaderLayoutTable",
]
