"""
DistroGen 下载层

包含第三方文件下载与文件校验（SHA1 计算）。
"""

from distrogen.download.manager import DownloadManager, DownloadStats
from distrogen.download.verifier import FileStat, FileVerifier

__all__ = [
    "DownloadManager",
    "DownloadStats",
    "FileStat",
    "FileVerifier",
]
