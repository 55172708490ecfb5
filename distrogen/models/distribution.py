"""
分发清单数据模型

Distribution -> Server -> Module 的聚合根，负责清单 JSON 的序列化与加载。
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

from distrogen.models.module import Artifact, Module
from distrogen.version import VersionToken

SCHEMA_VERSION = "1.0.0"


class LoaderKind(Enum):
    """模组加载器类型"""

    NONE = "none"
    FORGE = "forge"
    FABRIC = "fabric"


@dataclass(frozen=True)
class LoaderSelection:
    """服务器的加载器选择"""

    kind: LoaderKind = LoaderKind.NONE
    version: Optional[str] = None

    @classmethod
    def none(cls) -> "LoaderSelection":
        return cls(LoaderKind.NONE, None)


@dataclass(frozen=True)
class Server:
    """
    单个可部署的服务器配置。
    """

    id: str
    version: VersionToken
    loader: LoaderSelection = field(default_factory=LoaderSelection.none)
    modules: Tuple[Module, ...] = ()
    main_server: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version.raw,
            "mainServer": self.main_server,
            "modules": [module.to_dict() for module in self.modules],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Server":
        return cls(
            id=str(data["id"]),
            version=VersionToken.parse(str(data["version"])),
            main_server=bool(data.get("mainServer", False)),
            modules=tuple(Module.from_dict(m) for m in data.get("modules", [])),
        )

    def iter_artifacts(self) -> Iterator[Artifact]:
        for module in self.modules:
            yield from module.iter_artifacts()


@dataclass(frozen=True)
class Distribution:
    """
    分发清单根聚合，整体序列化，从不部分写入。
    """

    servers: Tuple[Server, ...] = ()
    base_url: str = ""
    version: str = SCHEMA_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "servers": [server.to_dict() for server in self.servers],
        }

    def to_json(self) -> str:
        """稳定的 JSON 文本：固定键顺序、无时间戳"""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False) + "\n"

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_url: str = "") -> "Distribution":
        return cls(
            version=str(data.get("version", SCHEMA_VERSION)),
            servers=tuple(Server.from_dict(s) for s in data.get("servers", [])),
            base_url=base_url,
        )

    @classmethod
    def from_json(cls, text: str, base_url: str = "") -> "Distribution":
        return cls.from_dict(json.loads(text), base_url=base_url)

    def get_server(self, server_id: str) -> Optional[Server]:
        for server in self.servers:
            if server.id == server_id:
                return server
        return None

    def iter_artifacts(self) -> Iterator[Artifact]:
        for server in self.servers:
            yield from server.iter_artifacts()
