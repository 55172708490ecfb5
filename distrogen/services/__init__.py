"""
DistroGen 服务层

包含 CurseForge API 客户端与第三方模组（含依赖）解析。
"""

from distrogen.services.api_client import CURSEFORGE_API_URL, CurseForgeClient
from distrogen.services.mod_resolver import CurseForgeResolver, curseforge_id

__all__ = [
    "CURSEFORGE_API_URL",
    "CurseForgeClient",
    "CurseForgeResolver",
    "curseforge_id",
]
