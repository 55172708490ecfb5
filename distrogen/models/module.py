"""
模块树数据模型

模块要么是由单个构件支撑的叶子 (FileModule)，要么是有序子模块组
(ModuleGroup)，两者在类型层面互斥。同级模块 ID 必须唯一，子模块顺序
即发现/声明顺序，重新生成时保持不变。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple
from urllib.parse import quote

from distrogen.exceptions import DuplicateModuleError


class ModuleType(Enum):
    """模块类型"""

    LIBRARY = "library"
    LOADER_INSTALLER = "mod-loader-installer"
    LOADER_LIBRARY = "mod-loader-library"
    FORGE_MOD = "forge-hosted-mod"
    MOD = "generic-mod"
    FILE = "generic-file"


def artifact_url(base_url: str, path: str) -> str:
    """拼接下载地址：base_url + 转义后的相对路径"""
    if base_url and not base_url.endswith("/"):
        base_url += "/"
    return base_url + quote(path, safe="/")


@dataclass(frozen=True)
class Artifact:
    """
    构件：相对分发根目录的文件引用。
    """

    path: str
    size: int
    hash: str
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "hash": self.hash,
            "size": self.size,
            "url": self.url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Artifact":
        return cls(
            path=str(data["path"]),
            size=int(data["size"]),
            hash=str(data["hash"]),
            url=str(data.get("url", "")),
        )


class Module:
    """模块基类（FileModule / ModuleGroup）"""

    id: str
    type: ModuleType
    required: bool
    default_enabled: Optional[bool]

    def _head(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "required": self.required,
        }
        if not self.required:
            data["default"] = bool(self.default_enabled)
        return data

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError

    def iter_artifacts(self) -> Iterator[Artifact]:
        raise NotImplementedError

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Module":
        required = bool(data.get("required", True))
        default_enabled = None if required else bool(data.get("default", False))
        module_type = ModuleType(data["type"])
        if data.get("artifact") is not None:
            return FileModule(
                id=str(data["id"]),
                type=module_type,
                artifact=Artifact.from_dict(data["artifact"]),
                required=required,
                default_enabled=default_enabled,
            )
        return ModuleGroup(
            id=str(data["id"]),
            type=module_type,
            sub_modules=tuple(
                Module.from_dict(child) for child in data.get("subModules", [])
            ),
            required=required,
            default_enabled=default_enabled,
        )


@dataclass(frozen=True)
class FileModule(Module):
    """叶子模块，由单个构件支撑"""

    id: str
    type: ModuleType
    artifact: Artifact
    required: bool = True
    default_enabled: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self._head()
        data["artifact"] = self.artifact.to_dict()
        data["subModules"] = []
        return data

    def iter_artifacts(self) -> Iterator[Artifact]:
        yield self.artifact


@dataclass(frozen=True)
class ModuleGroup(Module):
    """内部模块，持有有序子模块"""

    id: str
    type: ModuleType
    sub_modules: Tuple[Module, ...] = ()
    required: bool = True
    default_enabled: Optional[bool] = None

    def __post_init__(self):
        ensure_unique(self.sub_modules, parent=self.id)
        object.__setattr__(self, "sub_modules", tuple(self.sub_modules))

    def to_dict(self) -> Dict[str, Any]:
        data = self._head()
        data["artifact"] = None
        data["subModules"] = [child.to_dict() for child in self.sub_modules]
        return data

    def iter_artifacts(self) -> Iterator[Artifact]:
        for child in self.sub_modules:
            yield from child.iter_artifacts()


def ensure_unique(modules: Iterable[Module], parent: str = "") -> None:
    """
    校验同级模块 ID 唯一

    Raises:
        DuplicateModuleError: 出现重复 ID
    """
    seen = set()
    for module in modules:
        if module.id in seen:
            raise DuplicateModuleError(
                f"同级模块 ID 重复: '{module.id}'",
                context={"parent": parent, "module": module.id},
            )
        seen.add(module.id)


class ModuleList:
    """
    按插入顺序收集同级模块，拒绝重复 ID。
    """

    def __init__(self, parent: str = ""):
        self.parent = parent
        self._modules: List[Module] = []
        self._ids: Set[str] = set()

    def add(self, module: Module) -> None:
        if module.id in self._ids:
            raise DuplicateModuleError(
                f"同级模块 ID 重复: '{module.id}'",
                context={"parent": self.parent, "module": module.id},
            )
        self._ids.add(module.id)
        self._modules.append(module)

    def __contains__(self, module_id: str) -> bool:
        return module_id in self._ids

    def __len__(self) -> int:
        return len(self._modules)

    def to_tuple(self) -> Tuple[Module, ...]:
        return tuple(self._modules)


@dataclass(frozen=True)
class ModuleDeclaration:
    """
    已声明但尚未解析构件的模块。

    ``path`` 相对于服务器目录；叶子声明有 path，组声明有 children。
    """

    id: str
    type: ModuleType
    path: Optional[str] = None
    children: Tuple["ModuleDeclaration", ...] = field(default_factory=tuple)
    required: bool = True
    default_enabled: Optional[bool] = None

    @property
    def is_leaf(self) -> bool:
        return self.path is not None

    def iter_paths(self) -> Iterator[str]:
        if self.path is not None:
            yield self.path
        for child in self.children:
            yield from child.iter_paths()
