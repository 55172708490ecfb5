"""
分发结构构建

遍历根目录下的每个服务器目录，按字典序重建模块树，解析 CurseForge 标记，
最后整体写出分发清单。单个模块或服务器的失败只记录到构建报告，不中断构建。
"""

import asyncio
import os
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

import aiofiles
from loguru import logger

from distrogen.download import DownloadManager
from distrogen.exceptions import (
    ArtifactError,
    ConfigError,
    DistroGenError,
    DuplicateModuleError,
    InvalidConfigurationError,
    StructureError,
)
from distrogen.models import (
    BuildReport,
    Distribution,
    FileModule,
    LoaderKind,
    Module,
    ModuleDeclaration,
    ModuleGroup,
    ModuleList,
    Server,
)
from distrogen.resolver import ArtifactCache, ArtifactResolver, LoaderInstallerResolver
from distrogen.services import CurseForgeClient, CurseForgeResolver, curseforge_id
from distrogen.structure.layout import (
    CATEGORIES,
    CURSEFORGE_REPO_DIR,
    MANIFEST_NAME,
    ROOT_SKELETON,
    SERVER_META_NAME,
    SERVERS_DIR,
    ModuleCategory,
    is_hidden,
)
from distrogen.structure.servermeta import CurseForgeMarker, ServerMeta
from distrogen.version import VersionToken


@dataclass(frozen=True)
class BuildResult:
    """构建结果：清单与失败摘要"""

    distribution: Distribution
    report: BuildReport

    @property
    def exit_code(self) -> int:
        return 0 if self.report.ok else 1


class DistributionStructureBuilder:
    """分发结构构建器"""

    def __init__(
        self,
        root: str,
        base_url: str,
        cache: Optional[ArtifactCache] = None,
        client: Optional[CurseForgeClient] = None,
        downloader: Optional[DownloadManager] = None,
        loader_resolver: Optional[LoaderInstallerResolver] = None,
        max_concurrent: int = 8,
        manifest_name: str = MANIFEST_NAME,
    ):
        self.root = os.path.abspath(root)
        self.base_url = base_url
        self.cache = cache or ArtifactCache.empty()
        self.client = client
        self.downloader = downloader
        self.loader_resolver = loader_resolver or LoaderInstallerResolver()
        self.max_concurrent = max_concurrent
        self.manifest_path = os.path.join(self.root, manifest_name)
        self.report = BuildReport()
        self.artifact_resolver: Optional[ArtifactResolver] = None

    @property
    def servers_dir(self) -> str:
        return os.path.join(self.root, SERVERS_DIR)

    def _location(self, path: str) -> str:
        return os.path.relpath(path, self.root).replace(os.sep, "/")

    async def init(self):
        """
        初始化空的根目录结构，不覆盖任何已存在的内容

        Raises:
            StructureError: 无法创建目录或清单
        """
        for relative in ROOT_SKELETON:
            path = os.path.join(self.root, *relative.split("/"))
            try:
                os.makedirs(path, exist_ok=True)
            except OSError as e:
                raise StructureError(f"无法创建目录: {path} ({e})", context={"path": path}) from e

        if os.path.exists(self.manifest_path):
            logger.debug(f"[初始化] 清单已存在，保持不变: {self.manifest_path}")
            return
        try:
            async with aiofiles.open(self.manifest_path, "x", encoding="utf-8") as f:
                await f.write(Distribution(base_url=self.base_url).to_json())
        except FileExistsError:
            return
        except OSError as e:
            raise StructureError(
                f"无法写入清单: {e}", context={"path": self.manifest_path}
            ) from e
        logger.info(f"[初始化] 已创建空清单: {self.manifest_path}")

    async def build(self) -> BuildResult:
        """遍历根目录，构建完整的分发模型"""
        self.report = BuildReport()
        self.artifact_resolver = ArtifactResolver(
            self.root,
            self.base_url,
            cache=self.cache,
            semaphore=asyncio.Semaphore(self.max_concurrent),
        )

        server_ids = self._list_servers()
        logger.info(f"[构建] 发现 {len(server_ids)} 个服务器")
        servers = await asyncio.gather(*(self._build_server(sid) for sid in server_ids))

        distribution = Distribution(
            servers=self._check_main_server([s for s in servers if s is not None]),
            base_url=self.base_url,
        )
        logger.info(
            f"[构建] 完成: 计算哈希 {self.artifact_resolver.hashed} 个, "
            f"复用缓存 {self.artifact_resolver.reused} 个, 失败 {len(self.report.failures)} 个"
        )
        return BuildResult(distribution=distribution, report=self.report)

    async def get_spec_model(self) -> Distribution:
        """构建并返回分发模型（失败记录见 self.report）"""
        return (await self.build()).distribution

    async def write(self, distribution: Distribution) -> str:
        """
        原子写出清单：先写临时文件再替换

        Raises:
            StructureError: 写入失败
        """
        tmp_path = f"{self.manifest_path}.tmp"
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8", newline="\n") as f:
                await f.write(distribution.to_json())
            os.replace(tmp_path, self.manifest_path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StructureError(
                f"无法写入清单: {e}", context={"path": self.manifest_path}
            ) from e
        logger.success(f"[构建] 清单已写入: {self.manifest_path}")
        return self.manifest_path

    async def generate(self) -> BuildResult:
        """构建并写出清单"""
        result = await self.build()
        await self.write(result.distribution)
        return result

    def _list_servers(self) -> List[str]:
        if not os.path.isdir(self.servers_dir):
            logger.warning(f"[构建] 服务器目录不存在: {self.servers_dir}")
            return []
        return sorted(
            name
            for name in os.listdir(self.servers_dir)
            if not is_hidden(name) and os.path.isdir(os.path.join(self.servers_dir, name))
        )

    def _check_main_server(self, servers: Sequence[Server]) -> Tuple[Server, ...]:
        """最多只允许一个 mainServer，保留字典序最前的一个"""
        result = []
        main_id = None
        for server in servers:
            if server.main_server and main_id is not None:
                self.report.record(
                    server.id,
                    SERVER_META_NAME,
                    InvalidConfigurationError(
                        f"mainServer 已由 {main_id} 声明，忽略该服务器的标记",
                        context={"main": main_id},
                    ),
                )
                server = replace(server, main_server=False)
            elif server.main_server:
                main_id = server.id
            result.append(server)
        return tuple(result)

    async def _build_server(self, server_id: str) -> Optional[Server]:
        """构建单个服务器；声明文件不可用时整台服务器被跳过"""
        server_dir = os.path.join(self.servers_dir, server_id)
        meta_path = os.path.join(server_dir, SERVER_META_NAME)
        try:
            meta = await ServerMeta.load(meta_path)
            version = VersionToken.parse(meta.version)
        except DistroGenError as e:
            logger.error(f"[构建] 跳过服务器 {server_id}: {e}")
            self.report.record(server_id, self._location(meta_path), e)
            return None

        logger.info(f"[构建] 处理服务器 {server_id} (Minecraft {version.raw})")
        modules = ModuleList(parent=server_id)

        loader_modules = await self._build_loader(server_id, server_dir, version, meta)
        category_modules = await asyncio.gather(
            *(self._walk_category(server_id, server_dir, category, meta.loader.kind)
              for category in CATEGORIES)
        )
        third_party = await self._build_third_party(server_id, version, meta)

        for module, location in loader_modules + [
            pair for pairs in category_modules for pair in pairs
        ] + third_party:
            try:
                modules.add(module)
            except DuplicateModuleError as e:
                self.report.record(server_id, location, e)

        return Server(
            id=server_id,
            version=version,
            loader=meta.loader,
            modules=modules.to_tuple(),
            main_server=meta.main,
        )

    async def _build_loader(
        self,
        server_id: str,
        server_dir: str,
        version: VersionToken,
        meta: ServerMeta,
    ) -> List[Tuple[Module, str]]:
        try:
            declarations = self.loader_resolver.resolve(
                meta.loader.kind, version, meta.loader.version
            )
        except DistroGenError as e:
            self.report.record(server_id, self._location(os.path.join(server_dir, SERVER_META_NAME)), e)
            return []
        modules = await asyncio.gather(
            *(self._materialize(server_id, server_dir, decl) for decl in declarations)
        )
        return [
            (module, f"{SERVERS_DIR}/{server_id}/{decl.id}")
            for module, decl in zip(modules, declarations)
            if module is not None
        ]

    async def _materialize(
        self,
        server_id: str,
        server_dir: str,
        declaration: ModuleDeclaration,
    ) -> Optional[Module]:
        """把模块声明解析为模块，缺失的文件记录失败"""
        if declaration.is_leaf:
            path = os.path.join(server_dir, *declaration.path.split("/"))
            try:
                artifact = await self.artifact_resolver.resolve(path)
            except ArtifactError as e:
                self.report.record(server_id, self._location(path), e)
                return None
            return FileModule(
                id=declaration.id,
                type=declaration.type,
                artifact=artifact,
                required=declaration.required,
                default_enabled=declaration.default_enabled,
            )

        children = await asyncio.gather(
            *(self._materialize(server_id, server_dir, child) for child in declaration.children)
        )
        resolved = tuple(child for child in children if child is not None)
        if not resolved:
            return None
        try:
            return ModuleGroup(
                id=declaration.id,
                type=declaration.type,
                sub_modules=resolved,
                required=declaration.required,
                default_enabled=declaration.default_enabled,
            )
        except DuplicateModuleError as e:
            self.report.record(server_id, f"{SERVERS_DIR}/{server_id}/{declaration.id}", e)
            return None

    async def _walk_category(
        self,
        server_id: str,
        server_dir: str,
        category: ModuleCategory,
        loader: LoaderKind,
    ) -> List[Tuple[Module, str]]:
        directory = os.path.join(server_dir, *category.path.split("/"))
        if not os.path.isdir(directory):
            return []
        modules = await self._walk(server_id, directory, category, loader)
        return [(module, f"{self._location(directory)}/{module.id}") for module in modules]

    async def _walk(
        self,
        server_id: str,
        directory: str,
        category: ModuleCategory,
        loader: LoaderKind,
    ) -> List[Module]:
        """按字典序递归遍历目录，子目录成为模块组"""
        try:
            names = sorted(name for name in os.listdir(directory) if not is_hidden(name))
        except OSError as e:
            self.report.record(
                server_id,
                self._location(directory),
                StructureError(f"无法读取目录: {e}", context={"path": directory}),
            )
            return []

        module_type = category.module_type(loader)

        async def visit(name: str) -> Optional[Module]:
            path = os.path.join(directory, name)
            if os.path.isdir(path) and not os.path.islink(path):
                children = await self._walk(server_id, path, category, loader)
                if not children:
                    return None
                return ModuleGroup(
                    id=name,
                    type=module_type,
                    sub_modules=tuple(children),
                    required=category.required,
                    default_enabled=category.default_enabled,
                )
            try:
                artifact = await self.artifact_resolver.resolve(path)
            except ArtifactError as e:
                logger.warning(f"[遍历] 跳过 {self._location(path)}: {e}")
                self.report.record(server_id, self._location(path), e)
                return None
            return FileModule(
                id=name,
                type=module_type,
                artifact=artifact,
                required=category.required,
                default_enabled=category.default_enabled,
            )

        modules = await asyncio.gather(*(visit(name) for name in names))
        return [module for module in modules if module is not None]

    async def _build_third_party(
        self,
        server_id: str,
        version: VersionToken,
        meta: ServerMeta,
    ) -> List[Tuple[Module, str]]:
        if not meta.curseforge:
            return []
        if self.client is None:
            for marker in meta.curseforge:
                self.report.record(
                    server_id,
                    curseforge_id(marker.project_id, marker.file_id),
                    ConfigError("未配置 CurseForge 客户端，无法解析第三方模组"),
                )
            return []

        resolver = CurseForgeResolver(
            client=self.client,
            artifact_resolver=self.artifact_resolver,
            repo_dir=os.path.join(self.root, *CURSEFORGE_REPO_DIR.split("/")),
            game_version=version.raw,
            loader=meta.loader.kind,
            downloader=self.downloader,
        )
        modules = await asyncio.gather(
            *(self._resolve_marker(server_id, resolver, marker) for marker in meta.curseforge)
        )
        return [
            (module, curseforge_id(marker.project_id, marker.file_id))
            for module, marker in zip(modules, meta.curseforge)
            if module is not None
        ]

    async def _resolve_marker(
        self,
        server_id: str,
        resolver: CurseForgeResolver,
        marker: CurseForgeMarker,
    ) -> Optional[Module]:
        """解析单个顶层 CurseForge 标记，visited 集合只属于这一次请求"""
        location = curseforge_id(marker.project_id, marker.file_id)
        skipped: list = []
        try:
            return await resolver.resolve(
                marker.project_id,
                marker.file_id,
                visited=set(),
                skipped=skipped,
                required=marker.required,
                default_enabled=marker.default_enabled,
            )
        except DistroGenError as e:
            logger.error(f"[curseforge] {server_id}: 跳过 {location}: {e}")
            self.report.record(server_id, location, e)
            return None
        finally:
            for dep_location, error in skipped:
                self.report.record(server_id, f"{location} -> {dep_location}", error)
