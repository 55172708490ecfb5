"""
CurseForge API 客户端

按 (projectId, fileId) 获取文件元数据；临时错误（超时、连接失败、5xx、429）
按指数退避重试，404 与其他 4xx 立即失败。
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp
from loguru import logger

from distrogen.exceptions import APIError, APINetworkError, APINotFoundError
from distrogen.models import CurseFile, LoaderKind

CURSEFORGE_API_URL = "https://api.curseforge.com"
MINECRAFT_GAME_ID = 432

# CurseForge modLoaderType
MOD_LOADER_TYPES = {
    LoaderKind.FORGE: 1,
    LoaderKind.FABRIC: 4,
}


class CurseForgeClient:
    """CurseForge API 客户端"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = CURSEFORGE_API_URL,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        max_connections: int = 8,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.max_connections = max_connections
        self._session = session
        self._owned_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                connector=aiohttp.TCPConnector(limit=self.max_connections),
            )
            self._owned_session = True
        return self._session

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def _request(self, endpoint: str, params: Optional[dict] = None) -> Any:
        """
        发送 API 请求，返回响应中的 data 字段

        Raises:
            APINotFoundError: 资源不存在 (404)
            APINetworkError: 重试耗尽后的临时错误
            APIError: 其他不可重试的错误
        """
        url = f"{self.base_url}{endpoint}"
        last_error: Optional[APINetworkError] = None

        for attempt in range(self.max_retries + 1):
            try:
                async with self.session.get(
                    url, params=params, headers=self._headers()
                ) as response:
                    if response.status == 200:
                        payload = await response.json()
                        return payload.get("data") if isinstance(payload, dict) else payload
                    if response.status == 404:
                        raise APINotFoundError(
                            f"资源不存在: {endpoint}",
                            context={"url": url},
                            status=404,
                        )
                    if response.status >= 500 or response.status == 429:
                        raise APINetworkError(
                            f"API 请求失败 (状态码: {response.status})",
                            context={"url": url},
                            status=response.status,
                        )
                    raise APIError(
                        f"API 请求失败 (状态码: {response.status})",
                        context={"url": url},
                        status=response.status,
                    )
            except APINetworkError as e:
                last_error = e
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = APINetworkError(
                    f"网络错误: {e.__class__.__name__} {e}".strip(),
                    context={"url": url},
                )

            if attempt < self.max_retries:
                delay = self.retry_delay * (2**attempt)
                logger.warning(
                    f"[重试] {endpoint} 失败 (第 {attempt + 1} 次): {last_error}. "
                    f"{delay:.1f}s 后重试..."
                )
                await asyncio.sleep(delay)

        raise last_error or APINetworkError(f"请求失败: {endpoint}", context={"url": url})

    async def get_file(self, project_id: int, file_id: int) -> CurseFile:
        """获取指定文件的元数据"""
        data = await self._request(f"/v1/mods/{project_id}/files/{file_id}")
        if not data:
            raise APINotFoundError(
                f"文件不存在: {project_id}/{file_id}",
                context={"project_id": project_id, "file_id": file_id},
            )
        return self._parse_file(data, project_id)

    async def get_latest_file(
        self,
        project_id: int,
        game_version: str,
        loader: LoaderKind = LoaderKind.NONE,
    ) -> CurseFile:
        """为只声明了 projectId 的依赖挑选最新的兼容文件"""
        params: Dict[str, Any] = {"gameVersion": game_version, "pageSize": 1}
        if loader in MOD_LOADER_TYPES:
            params["modLoaderType"] = MOD_LOADER_TYPES[loader]
        data = await self._request(f"/v1/mods/{project_id}/files", params)
        if not data:
            raise APINotFoundError(
                f"项目 {project_id} 没有适用于 {game_version} 的文件",
                context={"project_id": project_id, "game_version": game_version},
            )
        latest = data[0] if isinstance(data, list) else None
        return self._parse_file(latest, project_id)

    @staticmethod
    def _parse_file(data: Any, project_id: int) -> CurseFile:
        try:
            return CurseFile.from_curseforge(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise APIError(
                f"文件元数据格式无效: 项目 {project_id}",
                context={"project_id": project_id, "error": repr(e)},
            ) from e

    async def close(self):
        """关闭客户端"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """异步上下文管理器入口"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()
