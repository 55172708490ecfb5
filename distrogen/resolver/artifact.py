"""
构件解析

把磁盘上的文件解析为不可变的 Artifact（相对路径、大小、SHA1、下载地址），
并利用上一份清单避免重复计算未变化文件的哈希。
"""

import asyncio
import json
import os
from typing import Dict, Optional

import aiofiles
from loguru import logger

from distrogen.download.verifier import FileStat, FileVerifier
from distrogen.exceptions import ArtifactIOError
from distrogen.models import Artifact, Distribution, artifact_url


class ArtifactCache:
    """
    上一份清单中记录的构件哈希。

    修改标记取上一份清单文件自身的修改时间：只有大小一致、且 mtime
    严格早于清单写入时间的文件才复用记录的哈希。
    """

    def __init__(self, entries: Optional[Dict[str, Artifact]] = None, marker_ns: int = 0):
        self._entries = dict(entries or {})
        self.marker_ns = marker_ns

    @classmethod
    def empty(cls) -> "ArtifactCache":
        return cls()

    @classmethod
    def from_distribution(cls, distribution: Distribution, marker_ns: int) -> "ArtifactCache":
        entries = {artifact.path: artifact for artifact in distribution.iter_artifacts()}
        return cls(entries, marker_ns)

    @classmethod
    async def from_manifest(cls, manifest_path: str) -> "ArtifactCache":
        """从已有的清单文件加载缓存；文件不存在或损坏时返回空缓存"""
        if not os.path.isfile(manifest_path):
            return cls.empty()
        try:
            marker_ns = os.stat(manifest_path).st_mtime_ns
            async with aiofiles.open(manifest_path, "r", encoding="utf-8") as f:
                distribution = Distribution.from_json(await f.read())
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"[缓存] 无法读取上一份清单，将重新计算全部哈希: {e}")
            return cls.empty()
        cache = cls.from_distribution(distribution, marker_ns)
        logger.debug(f"[缓存] 已载入 {len(cache)} 条构件记录")
        return cache

    def lookup(self, path: str, stat: FileStat) -> Optional[str]:
        """返回可复用的哈希，不满足条件时返回 None"""
        entry = self._entries.get(path)
        if entry is None:
            return None
        if entry.size != stat.size or stat.mtime_ns >= self.marker_ns:
            return None
        return entry.hash

    def __len__(self) -> int:
        return len(self._entries)


class ArtifactResolver:
    """构件解析器"""

    def __init__(
        self,
        root: str,
        base_url: str,
        cache: Optional[ArtifactCache] = None,
        semaphore: Optional[asyncio.Semaphore] = None,
    ):
        self.root = os.path.abspath(root)
        self.base_url = base_url
        self.cache = cache or ArtifactCache.empty()
        self._semaphore = semaphore or asyncio.Semaphore(8)
        self.hashed = 0
        self.reused = 0

    def relative_path(self, absolute_path: str) -> str:
        """相对分发根目录的 POSIX 路径"""
        rel = os.path.relpath(os.path.abspath(absolute_path), self.root)
        if rel == os.pardir or rel.startswith(os.pardir + os.sep):
            raise ArtifactIOError(
                f"文件位于分发根目录之外: {absolute_path}",
                context={"path": absolute_path, "root": self.root},
            )
        return rel.replace(os.sep, "/")

    async def resolve(self, absolute_path: str) -> Artifact:
        """
        解析单个文件

        Raises:
            ArtifactNotFoundError: 文件在发现与解析之间消失
            ArtifactIOError: 文件无法读取
        """
        rel = self.relative_path(absolute_path)
        async with self._semaphore:
            stat = FileVerifier.stat(absolute_path)
            digest = self.cache.lookup(rel, stat)
            if digest is None:
                digest = await FileVerifier.calc_sha1(absolute_path)
                self.hashed += 1
                logger.debug(f"[哈希] {rel} -> {digest}")
            else:
                self.reused += 1
                logger.debug(f"[哈希] {rel} 未变化，复用缓存")
        return Artifact(
            path=rel,
            size=stat.size,
            hash=digest,
            url=artifact_url(self.base_url, rel),
        )
