"""
下载管理器

下载单个文件到本地缓存，带指数退避重试、SHA1 校验与原子替换。
"""

import asyncio
import os
from dataclasses import dataclass
from typing import Dict, Optional

import aiofiles
import aiohttp
from loguru import logger

from distrogen.download.verifier import FileVerifier
from distrogen.exceptions import DownloadChecksumError, DownloadError


@dataclass
class DownloadStats:
    """下载统计"""

    completed: int = 0
    failed: int = 0
    skipped: int = 0
    bytes_downloaded: int = 0


class DownloadManager:
    """下载管理器"""

    def __init__(
        self,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.verifier = FileVerifier()
        self.stats = DownloadStats()
        self._session = session
        self._owned_session = session is None
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiting: Dict[str, int] = {}

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owned_session = True
        return self._session

    async def download_file(
        self,
        url: str,
        file_path: str,
        expected_sha1: Optional[str] = None,
        expected_size: Optional[int] = None,
    ) -> str:
        """
        下载单个文件

        已存在且校验通过的文件直接跳过。

        Returns:
            文件路径

        Raises:
            DownloadError: 重试耗尽或遇到不可重试的 HTTP 状态
            DownloadChecksumError: 下载后 SHA1 不匹配
        """
        key = os.path.abspath(file_path)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiting[key] = self._waiting.get(key, 0) + 1
        try:
            async with lock:
                return await self._download(
                    url, file_path, expected_sha1, expected_size
                )
        finally:
            self._waiting[key] -= 1
            if not self._waiting[key]:
                del self._waiting[key]
                del self._locks[key]

    async def _download(
        self,
        url: str,
        file_path: str,
        expected_sha1: Optional[str],
        expected_size: Optional[int],
    ) -> str:
        filename = os.path.basename(file_path)
        try:
            os.makedirs(os.path.dirname(file_path), exist_ok=True)
        except OSError as e:
            self.stats.failed += 1
            raise DownloadError(
                f"无法创建目录: {os.path.dirname(file_path)}",
                context={"path": file_path, "error": str(e)},
            ) from e

        if await self.verifier.is_valid(file_path, expected_sha1, expected_size):
            self.stats.skipped += 1
            logger.debug(f"[跳过] '{filename}' 已缓存且校验通过")
            return file_path

        logger.info(f"[下载] 开始: {filename}")
        tmp_path = f"{file_path}.part"

        for attempt in range(self.max_retries + 1):
            try:
                async with self.session.get(url) as response:
                    if response.status != 200:
                        retryable = response.status >= 500 or response.status == 429
                        raise DownloadError(
                            f"HTTP {response.status}",
                            context={
                                "url": url,
                                "status": response.status,
                                "retryable": retryable,
                            },
                        )

                    async with aiofiles.open(tmp_path, "wb") as f:
                        async for chunk in response.content.iter_chunked(8192):
                            await f.write(chunk)
                            self.stats.bytes_downloaded += len(chunk)

                if expected_sha1 and not await self.verifier.verify_sha1(
                    tmp_path, expected_sha1
                ):
                    raise DownloadChecksumError(
                        f"SHA1 校验失败: {filename}",
                        context={"file": filename, "expected": expected_sha1},
                    )

                os.replace(tmp_path, file_path)
                self.stats.completed += 1
                logger.success(f"[完成] '{filename}' 下载完成")
                return file_path

            except (aiohttp.ClientError, asyncio.TimeoutError, DownloadError) as e:
                self._discard(tmp_path)
                retryable = not isinstance(e, DownloadError) or e.context.get(
                    "retryable", False
                )
                if retryable and attempt < self.max_retries:
                    delay = self.retry_delay * (2**attempt)
                    logger.warning(
                        f"[重试] 下载 '{filename}' 失败 (第 {attempt + 1} 次): {e}. "
                        f"{delay:.1f}s 后重试..."
                    )
                    await asyncio.sleep(delay)
                    continue

                self.stats.failed += 1
                logger.error(f"[错误] 下载 '{filename}' 最终失败: {e}")
                if isinstance(e, DownloadError):
                    raise
                raise DownloadError(
                    f"下载失败: {filename}", context={"url": url, "error": str(e)}
                ) from e
            except OSError as e:
                self._discard(tmp_path)
                self.stats.failed += 1
                logger.error(f"[错误] 写入 '{filename}' 失败: {e}")
                raise DownloadError(
                    f"写入失败: {filename}",
                    context={"path": file_path, "error": str(e)},
                ) from e

        raise DownloadError(f"下载失败: {filename}", context={"url": url})

    @staticmethod
    def _discard(path: str) -> None:
        """清理不完整的文件"""
        if os.path.exists(path):
            try:
                os.remove(path)
            except OSError:
                pass

    async def close(self):
        """关闭 session"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
