"""
CurseForge API 数据模型

定义文件元数据、依赖声明以及解析过程中的临时依赖树。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from distrogen.models.module import Artifact

CURSEFORGE_CDN = "https://edge.forgecdn.net/files"


class RelationType(Enum):
    """依赖关系类型（CurseForge relationType）"""

    EMBEDDED_LIBRARY = 1
    OPTIONAL = 2
    REQUIRED = 3
    TOOL = 4
    INCOMPATIBLE = 5
    INCLUDE = 6


@dataclass(frozen=True)
class CurseDependency:
    """依赖声明"""

    project_id: int
    relation: RelationType
    file_id: Optional[int] = None


@dataclass
class CurseFile:
    """
    CurseForge 文件元数据。
    """

    project_id: int
    file_id: int
    file_name: str
    size: int
    download_url: str
    sha1: Optional[str] = None
    display_name: str = ""
    dependencies: List[CurseDependency] = field(default_factory=list)

    @classmethod
    def from_curseforge(cls, data: dict) -> "CurseFile":
        """
        将 CurseForge API 返回的文件信息转换为 CurseFile 对象。
        """
        sha1 = None
        for entry in data.get("hashes", []):
            if entry.get("algo") == 1 and entry.get("value"):
                sha1 = str(entry["value"]).lower()
                break

        dependencies = []
        for dep in data.get("dependencies", []):
            try:
                relation = RelationType(int(dep.get("relationType", 3)))
            except ValueError:
                continue
            dependencies.append(
                CurseDependency(
                    project_id=int(dep["modId"]),
                    relation=relation,
                    file_id=int(dep["fileId"]) if dep.get("fileId") else None,
                )
            )

        file_id = int(data["id"])
        file_name = str(data["fileName"])
        return cls(
            project_id=int(data["modId"]),
            file_id=file_id,
            file_name=file_name,
            size=int(data.get("fileLength", 0)),
            download_url=data.get("downloadUrl") or cdn_url(file_id, file_name),
            sha1=sha1,
            display_name=data.get("displayName", ""),
            dependencies=dependencies,
        )

    @property
    def required_dependencies(self) -> List[CurseDependency]:
        return [d for d in self.dependencies if d.relation == RelationType.REQUIRED]

    @property
    def optional_dependencies(self) -> List[CurseDependency]:
        return [d for d in self.dependencies if d.relation == RelationType.OPTIONAL]


def cdn_url(file_id: int, file_name: str) -> str:
    """downloadUrl 为空时（作者禁止第三方分发）按文件 ID 推导 CDN 地址"""
    return f"{CURSEFORGE_CDN}/{file_id // 1000}/{file_id % 1000}/{file_name}"


@dataclass
class ResolvedDependency:
    """
    解析中间结果，解析完成后折叠为模块，从不持久化。
    """

    project_id: int
    file_id: int
    artifact: Artifact
    file_name: str
    required: bool = True
    default_enabled: Optional[bool] = None
    dependencies: List["ResolvedDependency"] = field(default_factory=list)
