"""
DistroGen 数据模型包

包含清单模型、模块树模型、CurseForge API 模型与构建报告。
"""

from distrogen.models.module import (
    Artifact,
    FileModule,
    Module,
    ModuleDeclaration,
    ModuleGroup,
    ModuleList,
    ModuleType,
    artifact_url,
    ensure_unique,
)
from distrogen.models.distribution import (
    SCHEMA_VERSION,
    Distribution,
    LoaderKind,
    LoaderSelection,
    Server,
)
from distrogen.models.curseforge import (
    CurseDependency,
    CurseFile,
    RelationType,
    ResolvedDependency,
    cdn_url,
)
from distrogen.models.report import BuildFailure, BuildReport

__all__ = [
    # 模块树
    "Artifact",
    "FileModule",
    "Module",
    "ModuleDeclaration",
    "ModuleGroup",
    "ModuleList",
    "ModuleType",
    "artifact_url",
    "ensure_unique",
    # 清单
    "SCHEMA_VERSION",
    "Distribution",
    "LoaderKind",
    "LoaderSelection",
    "Server",
    # CurseForge
    "CurseDependency",
    "CurseFile",
    "RelationType",
    "ResolvedDependency",
    "cdn_url",
    # 构建报告
    "BuildFailure",
    "BuildReport",
]
