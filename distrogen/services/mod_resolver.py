"""
第三方模组解析服务

把 CurseForge 的 (projectId, fileId) 解析为模块节点，并递归拉取声明的
依赖。每个顶层解析请求使用独立的 visited 集合，依赖环使整棵子树失败。
"""

import os
from typing import List, Optional, Set, Tuple

from loguru import logger

from distrogen.download import DownloadManager
from distrogen.exceptions import (
    APIError,
    ArtifactError,
    CycleDetectedError,
    DistroGenError,
    DownloadError,
    DuplicateModuleError,
)
from distrogen.models import (
    CurseDependency,
    CurseFile,
    FileModule,
    LoaderKind,
    Module,
    ModuleGroup,
    ModuleList,
    ModuleType,
    ResolvedDependency,
)
from distrogen.resolver import ArtifactResolver
from distrogen.services.api_client import CurseForgeClient

IdPair = Tuple[int, int]
SkippedModule = Tuple[str, DistroGenError]


def curseforge_id(project_id: int, file_id: int) -> str:
    return f"curseforge:{project_id}:{file_id}"


class CurseForgeResolver:
    """CurseForge 模组解析器"""

    def __init__(
        self,
        client: CurseForgeClient,
        artifact_resolver: ArtifactResolver,
        repo_dir: str,
        game_version: str,
        loader: LoaderKind = LoaderKind.NONE,
        downloader: Optional[DownloadManager] = None,
    ):
        self.client = client
        self.artifact_resolver = artifact_resolver
        self.repo_dir = repo_dir
        self.game_version = game_version
        self.loader = loader
        self.downloader = downloader
        self.module_type = ModuleType.FORGE_MOD if loader == LoaderKind.FORGE else ModuleType.MOD

    async def resolve(
        self,
        project_id: int,
        file_id: int,
        visited: Optional[Set[IdPair]] = None,
        skipped: Optional[List[SkippedModule]] = None,
        required: bool = True,
        default_enabled: Optional[bool] = None,
    ) -> Module:
        """
        解析模组及其依赖

        Args:
            project_id: CurseForge 项目 ID
            file_id: CurseForge 文件 ID
            visited: 本次解析已访问的 ID 对，None 时新建
            skipped: 被跳过的依赖 (位置, 异常)，由调用方记录为失败
            required: 顶层模块是否必需
            default_enabled: 可选模块是否默认启用

        Returns:
            叶子模块（无依赖）或以 curseforge:<projectId>:<fileId> 为 ID 的模块组

        Raises:
            APINotFoundError: 顶层文件不存在
            APIError: 顶层元数据获取失败
            CycleDetectedError: 依赖图中存在环
            DownloadError / ArtifactError: 顶层文件无法下载或哈希
        """
        visited = set() if visited is None else visited
        skipped = [] if skipped is None else skipped

        curse_file = await self.client.get_file(project_id, file_id)
        tree = await self._resolve_tree(
            curse_file,
            visited=visited,
            ancestors=(),
            skipped=skipped,
            required=required,
            default_enabled=default_enabled,
        )
        return self._collapse(tree)

    async def _resolve_tree(
        self,
        curse_file: CurseFile,
        visited: Set[IdPair],
        ancestors: Tuple[int, ...],
        skipped: List[SkippedModule],
        required: bool = True,
        default_enabled: Optional[bool] = None,
        recurse: bool = True,
    ) -> ResolvedDependency:
        """递归解析依赖树"""
        pair = (curse_file.project_id, curse_file.file_id)
        visited.add(pair)
        ancestors = ancestors + (curse_file.project_id,)
        logger.debug(f"[curseforge] 解析 {curseforge_id(*pair)} ({curse_file.file_name})")

        node = ResolvedDependency(
            project_id=curse_file.project_id,
            file_id=curse_file.file_id,
            artifact=await self._materialize(curse_file),
            file_name=curse_file.file_name,
            required=required,
            default_enabled=default_enabled,
        )
        if not recurse:
            return node

        for dep in curse_file.required_dependencies:
            if dep.project_id in ancestors:
                chain = " -> ".join(str(pid) for pid in ancestors + (dep.project_id,))
                raise CycleDetectedError(
                    f"检测到循环依赖: {chain}",
                    context={"chain": list(ancestors + (dep.project_id,))},
                )
            child = await self._resolve_dependency(
                dep, visited, ancestors, skipped, required=True, recurse=True
            )
            if child is not None:
                node.dependencies.append(child)

        for dep in curse_file.optional_dependencies:
            if dep.project_id in ancestors:
                continue
            child = await self._resolve_dependency(
                dep,
                visited,
                ancestors,
                skipped,
                required=False,
                default_enabled=False,
                recurse=False,
            )
            if child is not None:
                node.dependencies.append(child)

        return node

    async def _resolve_dependency(
        self,
        dep: CurseDependency,
        visited: Set[IdPair],
        ancestors: Tuple[int, ...],
        skipped: List[SkippedModule],
        required: bool,
        recurse: bool,
        default_enabled: Optional[bool] = None,
    ) -> Optional[ResolvedDependency]:
        """解析单个依赖；不可恢复的获取/下载错误只跳过该依赖"""
        location = curseforge_id(dep.project_id, dep.file_id or 0)
        try:
            if dep.file_id:
                if (dep.project_id, dep.file_id) in visited:
                    return None
                dep_file = await self.client.get_file(dep.project_id, dep.file_id)
            else:
                dep_file = await self.client.get_latest_file(
                    dep.project_id, self.game_version, self.loader
                )
                location = curseforge_id(dep_file.project_id, dep_file.file_id)
                if (dep_file.project_id, dep_file.file_id) in visited:
                    return None
            return await self._resolve_tree(
                dep_file,
                visited=visited,
                ancestors=ancestors,
                skipped=skipped,
                required=required,
                default_enabled=default_enabled,
                recurse=recurse,
            )
        except CycleDetectedError:
            raise
        except (APIError, DownloadError, ArtifactError) as e:
            logger.warning(f"[curseforge] 跳过依赖 {location}: {e}")
            skipped.append((location, e))
            return None

    async def _materialize(self, curse_file: CurseFile):
        """下载（或复用本地缓存）并解析为 Artifact"""
        path = os.path.join(
            self.repo_dir,
            str(curse_file.project_id),
            str(curse_file.file_id),
            curse_file.file_name,
        )
        if self.downloader is not None:
            await self.downloader.download_file(
                curse_file.download_url,
                path,
                expected_sha1=curse_file.sha1,
                expected_size=curse_file.size or None,
            )
        elif not os.path.isfile(path):
            raise DownloadError(
                f"文件未缓存且未启用下载: {curse_file.file_name}",
                context={"path": path},
            )
        return await self.artifact_resolver.resolve(path)

    def _collapse(self, node: ResolvedDependency) -> Module:
        """把解析树折叠为模块"""
        leaf = FileModule(
            id=node.file_name,
            type=self.module_type,
            artifact=node.artifact,
            required=node.required,
            default_enabled=node.default_enabled,
        )
        if not node.dependencies:
            return leaf

        group_id = curseforge_id(node.project_id, node.file_id)
        children = ModuleList(parent=group_id)
        children.add(leaf)
        for dep in node.dependencies:
            module = self._collapse(dep)
            try:
                children.add(module)
            except DuplicateModuleError:
                logger.debug(f"[curseforge] {group_id} 中重复的依赖 {module.id} 已合并")
        return ModuleGroup(
            id=group_id,
            type=self.module_type,
            sub_modules=children.to_tuple(),
            required=node.required,
            default_enabled=node.default_enabled,
        )
