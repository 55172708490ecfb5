"""
服务器结构生成

创建新服务器的目录骨架与 servermeta.toml。已存在的目录与文件保持不变，
中途失败时已创建的部分保留，重试即可补全。
"""

import os
from typing import Optional, Union

import aiofiles
from loguru import logger

from distrogen.exceptions import InvalidConfigurationError, StructureError
from distrogen.models import LoaderKind, LoaderSelection, Server
from distrogen.resolver import LoaderInstallerResolver
from distrogen.structure.layout import (
    SERVER_META_NAME,
    SERVER_SKELETON,
    SERVERS_DIR,
    is_hidden,
)
from distrogen.structure.servermeta import ServerMeta
from distrogen.version import VersionToken


def select_loader(
    forge_version: Optional[str] = None,
    fabric_version: Optional[str] = None,
) -> LoaderSelection:
    """
    根据 forge / fabric 版本参数确定加载器

    Raises:
        InvalidConfigurationError: 同时指定 forge 与 fabric
    """
    if forge_version and fabric_version:
        raise InvalidConfigurationError(
            "forge 与 fabric 只能指定其一",
            context={"forge": forge_version, "fabric": fabric_version},
        )
    if forge_version:
        return LoaderSelection(LoaderKind.FORGE, forge_version)
    if fabric_version:
        return LoaderSelection(LoaderKind.FABRIC, fabric_version)
    return LoaderSelection.none()


class ServerStructureBuilder:
    """服务器结构生成器"""

    def __init__(self, root: str, loader_resolver: Optional[LoaderInstallerResolver] = None):
        self.root = os.path.abspath(root)
        self.loader_resolver = loader_resolver or LoaderInstallerResolver()

    def server_dir(self, server_id: str) -> str:
        return os.path.join(self.root, SERVERS_DIR, server_id)

    @staticmethod
    def _validate_id(server_id: str) -> None:
        if (
            not server_id
            or server_id != server_id.strip()
            or is_hidden(server_id)
            or "/" in server_id
            or "\\" in server_id
            or server_id in (os.curdir, os.pardir)
        ):
            raise InvalidConfigurationError(
                f"无效的服务器 ID: '{server_id}'", context={"server": server_id}
            )

    async def create_server(
        self,
        server_id: str,
        game_version: Union[str, VersionToken],
        forge_version: Optional[str] = None,
        fabric_version: Optional[str] = None,
        main_server: bool = False,
    ) -> Server:
        """
        创建服务器

        所有校验都在写入磁盘之前完成。

        Args:
            server_id: 服务器 ID（即目录名）
            game_version: Minecraft 版本
            forge_version: Forge 版本
            fabric_version: Fabric 版本
            main_server: 是否为主服务器

        Returns:
            新服务器（模块树为空，加载器文件需放入 loader/ 后由分发构建解析）

        Raises:
            InvalidConfigurationError: ID 无效或同时指定 forge 与 fabric
            InvalidVersionError: 游戏版本无法解析
            UnsupportedLoaderError: 加载器不支持该版本
            StructureError: 写入目录骨架失败
        """
        self._validate_id(server_id)
        loader = select_loader(forge_version, fabric_version)
        version = VersionToken.coerce(game_version)
        declarations = self.loader_resolver.resolve(loader.kind, version, loader.version)

        server_dir = self.server_dir(server_id)
        logger.info(f"[服务器] 创建 {server_id} (Minecraft {version.raw}, 加载器 {loader.kind.value})")

        for relative in SERVER_SKELETON:
            path = os.path.join(server_dir, *relative.split("/"))
            try:
                os.makedirs(path, exist_ok=True)
            except OSError as e:
                raise StructureError(
                    f"无法创建目录: {path} ({e})",
                    context={"server": server_id, "path": path},
                ) from e

        meta_path = os.path.join(server_dir, SERVER_META_NAME)
        if os.path.exists(meta_path):
            logger.warning(f"[服务器] {SERVER_META_NAME} 已存在，保持不变: {meta_path}")
        else:
            meta = ServerMeta(version=version.raw, main=main_server, loader=loader)
            try:
                async with aiofiles.open(meta_path, "x", encoding="utf-8") as f:
                    await f.write(meta.dumps())
            except FileExistsError:
                logger.warning(f"[服务器] {SERVER_META_NAME} 已存在，保持不变: {meta_path}")
            except OSError as e:
                raise StructureError(
                    f"无法写入 {SERVER_META_NAME}: {e}",
                    context={"server": server_id, "path": meta_path},
                ) from e

        for declaration in declarations:
            for path in declaration.iter_paths():
                logger.info(f"[服务器] 需要放入加载器文件: {SERVERS_DIR}/{server_id}/{path}")

        return Server(
            id=server_id,
            version=version,
            loader=loader,
            modules=(),
            main_server=main_server,
        )
