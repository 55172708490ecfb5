"""
文件校验器

实现 SHA1 计算、SHA1 校验与文件元信息读取。这是唯一读取构件原始字节的地方。
"""

import hashlib
import os
from dataclasses import dataclass
from typing import Optional

import aiofiles

from distrogen.exceptions import ArtifactIOError, ArtifactNotFoundError

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class FileStat:
    """文件大小与修改时间（纳秒）"""

    size: int
    mtime_ns: int


class FileVerifier:
    """文件校验器"""

    @staticmethod
    def stat(file_path: str) -> FileStat:
        """
        读取文件元信息

        Raises:
            ArtifactNotFoundError: 文件不存在（包括悬空的符号链接）
            ArtifactIOError: 其他读取错误，或路径不是普通文件
        """
        try:
            st = os.stat(file_path)
        except FileNotFoundError as e:
            raise ArtifactNotFoundError(
                f"文件不存在: {file_path}", context={"path": file_path}
            ) from e
        except OSError as e:
            raise ArtifactIOError(
                f"无法读取文件信息: {file_path} ({e})", context={"path": file_path}
            ) from e
        if not os.path.isfile(file_path):
            raise ArtifactIOError(
                f"不是普通文件: {file_path}", context={"path": file_path}
            )
        return FileStat(size=st.st_size, mtime_ns=st.st_mtime_ns)

    @staticmethod
    async def calc_sha1(file_path: str) -> str:
        """
        计算文件的 SHA1 值

        Args:
            file_path: 文件路径

        Returns:
            小写十六进制 SHA1

        Raises:
            ArtifactNotFoundError: 文件不存在
            ArtifactIOError: 读取失败
        """
        sha1 = hashlib.sha1()
        try:
            async with aiofiles.open(file_path, "rb") as f:
                while True:
                    data = await f.read(CHUNK_SIZE)
                    if not data:
                        break
                    sha1.update(data)
        except FileNotFoundError as e:
            raise ArtifactNotFoundError(
                f"文件不存在: {file_path}", context={"path": file_path}
            ) from e
        except OSError as e:
            raise ArtifactIOError(
                f"读取文件失败: {file_path} ({e})", context={"path": file_path}
            ) from e
        return sha1.hexdigest()

    @staticmethod
    async def verify_sha1(file_path: str, expected_sha1: Optional[str]) -> bool:
        """
        校验文件的 SHA1 是否匹配

        Returns:
            是否匹配（如果没有预期值则返回 True，文件不可读返回 False）
        """
        if not expected_sha1:
            return True

        try:
            current_sha1 = await FileVerifier.calc_sha1(file_path)
        except (ArtifactNotFoundError, ArtifactIOError):
            return False

        return current_sha1 == expected_sha1.lower()

    @staticmethod
    async def is_valid(
        file_path: str,
        expected_sha1: Optional[str] = None,
        expected_size: Optional[int] = None,
    ) -> bool:
        """
        检查缓存文件是否有效：存在、大小一致（若给出）、SHA1 一致（若给出）
        """
        if not os.path.isfile(file_path):
            return False

        if expected_size is not None and os.path.getsize(file_path) != expected_size:
            return False

        if expected_sha1:
            return await FileVerifier.verify_sha1(file_path, expected_sha1)

        return True
