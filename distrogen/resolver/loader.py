"""
加载器安装布局解析

根据加载器类型与游戏版本决定加载器模块的形态：旧布局为单个安装 jar，
新布局为安装器加一组引导库。分界版本与引导库清单来自可配置的布局表。
"""

import re
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from loguru import logger

from distrogen.exceptions import ConfigError, UnsupportedLoaderError
from distrogen.models import LoaderKind, ModuleDeclaration, ModuleType
from distrogen.version import VersionToken

LOADER_DIR = "loader"


@dataclass(frozen=True)
class LoaderLayout:
    """
    单个加载器的布局描述，文件名模板支持 {game} 与 {loader} 占位符。
    """

    kind: LoaderKind
    boundary: str
    minimum: str
    version_pattern: str
    module_id: str
    legacy_installer: str
    modern_installer: str
    bootstrap_libraries: Tuple[str, ...] = ()

    def render(self, template: str, game: VersionToken, loader_version: str) -> str:
        return template.format(game=game.raw, loader=loader_version)


DEFAULT_LAYOUTS: Dict[LoaderKind, LoaderLayout] = {
    LoaderKind.FORGE: LoaderLayout(
        kind=LoaderKind.FORGE,
        boundary="1.13",
        minimum="1.5.2",
        version_pattern=r"^\d+(\.\d+){1,3}$",
        module_id="net.minecraftforge:forge:{game}-{loader}",
        legacy_installer="forge-{game}-{loader}-universal.jar",
        modern_installer="forge-{game}-{loader}-installer.jar",
        bootstrap_libraries=("version.json", "forge-{game}-{loader}-client.jar"),
    ),
    LoaderKind.FABRIC: LoaderLayout(
        kind=LoaderKind.FABRIC,
        boundary="1.14",
        minimum="1.14",
        version_pattern=r"^\d+\.\d+\.\d+(\+build\.\d+)?$",
        module_id="net.fabricmc:fabric-loader:{loader}",
        legacy_installer="fabric-loader-{loader}.jar",
        modern_installer="fabric-loader-{loader}-{game}.json",
        bootstrap_libraries=("fabric-loader-{loader}.jar", "intermediary-{game}.jar"),
    ),
}


class LoaderLayoutTable:
    """加载器布局表"""

    def __init__(self, layouts: Optional[Mapping[LoaderKind, LoaderLayout]] = None):
        self._layouts = dict(DEFAULT_LAYOUTS if layouts is None else layouts)

    @classmethod
    def from_dict(cls, overrides: Optional[Mapping[str, Mapping[str, Any]]]) -> "LoaderLayoutTable":
        """
        用配置文件中的 [loaders.<kind>] 表覆盖默认布局

        Raises:
            ConfigError: 未知的加载器类型或字段
        """
        layouts = dict(DEFAULT_LAYOUTS)
        for name, values in (overrides or {}).items():
            try:
                kind = LoaderKind(name)
            except ValueError:
                raise ConfigError(
                    f"未知的加载器类型: {name}", context={"loader": name}
                ) from None
            if kind not in layouts:
                raise ConfigError(f"加载器 {name} 不需要布局配置", context={"loader": name})
            values = dict(values)
            if "bootstrap_libraries" in values:
                values["bootstrap_libraries"] = tuple(values["bootstrap_libraries"])
            try:
                layouts[kind] = replace(layouts[kind], **values)
            except TypeError as e:
                raise ConfigError(
                    f"加载器 {name} 的布局配置无效: {e}", context={"loader": name}
                ) from e
        return cls(layouts)

    def get(self, kind: LoaderKind) -> LoaderLayout:
        try:
            return self._layouts[kind]
        except KeyError:
            raise UnsupportedLoaderError(
                f"没有加载器 {kind.value} 的布局", context={"loader": kind.value}
            ) from None


class LoaderInstallerResolver:
    """加载器安装模块解析器"""

    def __init__(self, table: Optional[LoaderLayoutTable] = None):
        self.table = table or LoaderLayoutTable()

    def validate(
        self,
        kind: LoaderKind,
        game_version: VersionToken,
        loader_version: Optional[str],
    ) -> Optional[LoaderLayout]:
        """
        校验加载器请求，返回对应布局（vanilla 返回 None）

        Raises:
            UnsupportedLoaderError: 游戏版本过低或加载器版本格式错误
        """
        if kind == LoaderKind.NONE:
            return None

        layout = self.table.get(kind)
        context = {
            "loader": kind.value,
            "game_version": game_version.raw,
            "loader_version": loader_version,
        }
        if not loader_version or not re.match(layout.version_pattern, loader_version):
            raise UnsupportedLoaderError(
                f"{kind.value} 加载器版本格式无效: '{loader_version}'", context=context
            )
        if not game_version.is_at_least(layout.minimum):
            raise UnsupportedLoaderError(
                f"{kind.value} 不支持 Minecraft {game_version.raw} (最低 {layout.minimum})",
                context=context,
            )
        return layout

    def is_modern(self, kind: LoaderKind, game_version: VersionToken) -> bool:
        """游戏版本是否处于新安装布局"""
        return game_version.is_at_least(self.table.get(kind).boundary)

    def resolve(
        self,
        kind: LoaderKind,
        game_version: VersionToken,
        loader_version: Optional[str],
    ) -> List[ModuleDeclaration]:
        """
        解析加载器模块

        Args:
            kind: 加载器类型
            game_version: 游戏版本
            loader_version: 加载器版本

        Returns:
            加载器模块声明列表（vanilla 为空）
        """
        layout = self.validate(kind, game_version, loader_version)
        if layout is None:
            return []

        module_id = layout.render(layout.module_id, game_version, loader_version)

        if not self.is_modern(kind, game_version):
            installer = layout.render(layout.legacy_installer, game_version, loader_version)
            logger.debug(f"[加载器] {module_id} 使用旧布局: {installer}")
            return [
                ModuleDeclaration(
                    id=module_id,
                    type=ModuleType.LOADER_INSTALLER,
                    path=f"{LOADER_DIR}/{installer}",
                )
            ]

        installer = layout.render(layout.modern_installer, game_version, loader_version)
        children = [
            ModuleDeclaration(
                id=installer,
                type=ModuleType.LOADER_INSTALLER,
                path=f"{LOADER_DIR}/{installer}",
            )
        ]
        for template in layout.bootstrap_libraries:
            library = layout.render(template, game_version, loader_version)
            children.append(
                ModuleDeclaration(
                    id=library,
                    type=ModuleType.LOADER_LIBRARY,
                    path=f"{LOADER_DIR}/{library}",
                )
            )
        logger.debug(f"[加载器] {module_id} 使用新布局: {len(children)} 个文件")
        return [
            ModuleDeclaration(
                id=module_id,
                type=ModuleType.LOADER_INSTALLER,
                children=tuple(children),
            )
        ]
