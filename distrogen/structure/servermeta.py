"""
服务器声明文件 (servermeta.toml)

记录游戏版本、加载器选择、mainServer 标记与 CurseForge 模组标记。
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiofiles
import toml

from distrogen.exceptions import ServerMetaError
from distrogen.models import LoaderKind, LoaderSelection
from distrogen.structure.layout import SCHEMAS_DIR

SCHEMA_DIRECTIVE = f"#:schema ../../{SCHEMAS_DIR}/servermeta.schema.json\n"


@dataclass(frozen=True)
class CurseForgeMarker:
    """声明为由 CurseForge 提供的模组"""

    project_id: int
    file_id: int
    required: bool = True
    default_enabled: Optional[bool] = None


@dataclass
class ServerMeta:
    """servermeta.toml 内容"""

    version: str
    main: bool = False
    loader: LoaderSelection = field(default_factory=LoaderSelection.none)
    curseforge: List[CurseForgeMarker] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "server": {"version": self.version, "main": self.main},
            "loader": {"type": self.loader.kind.value},
        }
        if self.loader.version:
            data["loader"]["version"] = self.loader.version
        if self.curseforge:
            data["curseforge"] = []
            for marker in self.curseforge:
                entry: Dict[str, Any] = {
                    "project_id": marker.project_id,
                    "file_id": marker.file_id,
                    "required": marker.required,
                }
                if marker.default_enabled is not None:
                    entry["default"] = marker.default_enabled
                data["curseforge"].append(entry)
        return data

    def dumps(self) -> str:
        return SCHEMA_DIRECTIVE + toml.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerMeta":
        """
        从字典构建

        Raises:
            ServerMetaError: 字段缺失或类型错误
        """
        server = data.get("server")
        if not isinstance(server, dict) or not isinstance(server.get("version"), str):
            raise ServerMetaError("缺少 [server] version 字段")

        loader_data = data.get("loader") or {}
        if not isinstance(loader_data, dict):
            raise ServerMetaError(
                "[loader] 必须是表", context={"loader": repr(loader_data)}
            )
        try:
            kind = LoaderKind(str(loader_data.get("type", LoaderKind.NONE.value)))
        except ValueError:
            raise ServerMetaError(
                f"未知的加载器类型: {loader_data.get('type')}",
                context={"loader": loader_data.get("type")},
            ) from None
        loader_version = loader_data.get("version")

        markers = []
        entries = data.get("curseforge", [])
        if not isinstance(entries, list):
            raise ServerMetaError("curseforge 必须是 [[curseforge]] 表数组")
        for index, entry in enumerate(entries):
            try:
                required = bool(entry.get("required", True))
                markers.append(
                    CurseForgeMarker(
                        project_id=int(entry["project_id"]),
                        file_id=int(entry["file_id"]),
                        required=required,
                        default_enabled=None if required else bool(entry.get("default", False)),
                    )
                )
            except (KeyError, TypeError, ValueError, AttributeError):
                raise ServerMetaError(
                    f"第 {index + 1} 个 [[curseforge]] 条目无效",
                    context={"index": index},
                ) from None

        return cls(
            version=server["version"],
            main=bool(server.get("main", False)),
            loader=LoaderSelection(kind, str(loader_version) if loader_version else None),
            curseforge=markers,
        )

    @classmethod
    async def load(cls, path: str) -> "ServerMeta":
        """
        读取 servermeta.toml

        Raises:
            ServerMetaError: 文件缺失或无法解析
        """
        if not os.path.isfile(path):
            raise ServerMetaError(f"缺少服务器声明文件: {path}", context={"path": path})
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                data = toml.loads(await f.read())
        except (OSError, toml.TomlDecodeError) as e:
            raise ServerMetaError(
                f"无法解析服务器声明文件: {e}", context={"path": path}
            ) from e
        return cls.from_dict(data)
