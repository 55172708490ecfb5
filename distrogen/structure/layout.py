"""
分发根目录布局

定义根目录与服务器目录下的固定路径，以及目录到模块类型的映射。
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from distrogen.models import LoaderKind, ModuleType
from distrogen.resolver import LOADER_DIR

MANIFEST_NAME = "distribution.json"
SERVERS_DIR = "servers"
SCHEMAS_DIR = "schemas"
REPO_DIR = "repo"
CURSEFORGE_REPO_DIR = f"{REPO_DIR}/curseforge"
SERVER_META_NAME = "servermeta.toml"

ROOT_SKELETON = (SERVERS_DIR, SCHEMAS_DIR, CURSEFORGE_REPO_DIR)


@dataclass(frozen=True)
class ModuleCategory:
    """
    服务器目录下的一个模块分类目录。

    ``type`` 为 None 表示模组目录，实际类型取决于服务器的加载器。
    """

    path: str
    type: Optional[ModuleType]
    required: bool = True
    default_enabled: Optional[bool] = None

    def module_type(self, loader: LoaderKind) -> ModuleType:
        if self.type is not None:
            return self.type
        return ModuleType.FORGE_MOD if loader == LoaderKind.FORGE else ModuleType.MOD


CATEGORIES: Tuple[ModuleCategory, ...] = (
    ModuleCategory("libraries", ModuleType.LIBRARY),
    ModuleCategory("mods/required", None),
    ModuleCategory("mods/optionalon", None, required=False, default_enabled=True),
    ModuleCategory("mods/optionaloff", None, required=False, default_enabled=False),
    ModuleCategory("files", ModuleType.FILE),
)

SERVER_SKELETON = (LOADER_DIR,) + tuple(category.path for category in CATEGORIES)


def is_hidden(name: str) -> bool:
    return name.startswith(".")
