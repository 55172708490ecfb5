"""
DistroGen 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
"""

from typing import Any, Dict, Optional


class DistroGenError(Exception):
    """DistroGen 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        """获取默认错误代码"""
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigError(DistroGenError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class InvalidConfigurationError(ConfigError):
    """配置组合无效（例如同时指定 forge 与 fabric）"""

    def _get_default_code(self) -> str:
        return "E101"


class ServerMetaError(ConfigError):
    """servermeta 文件缺失或格式错误"""

    def _get_default_code(self) -> str:
        return "E102"


class InvalidVersionError(DistroGenError):
    """无法解析的版本字符串"""

    def _get_default_code(self) -> str:
        return "E110"


class UnsupportedLoaderError(DistroGenError):
    """加载器不支持该游戏版本，或加载器版本格式错误"""

    def _get_default_code(self) -> str:
        return "E111"


class APIError(DistroGenError):
    """API 相关错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message, code, context)
        self.status = status
        if status is not None:
            self.context["status_code"] = status

    def _get_default_code(self) -> str:
        return "E200"

    @property
    def transient(self) -> bool:
        """是否为可重试的临时错误"""
        return False


class APINetworkError(APIError):
    """网络错误或服务器错误（可重试）"""

    def _get_default_code(self) -> str:
        return "E201"

    @property
    def transient(self) -> bool:
        return True


class APINotFoundError(APIError):
    """API 资源不存在"""

    def _get_default_code(self) -> str:
        return "E404"


class DownloadError(DistroGenError):
    """下载相关错误"""

    def _get_default_code(self) -> str:
        return "E300"


class DownloadChecksumError(DownloadError):
    """下载校验错误"""

    def _get_default_code(self) -> str:
        return "E302"


class ArtifactError(DistroGenError):
    """构件相关错误"""

    def _get_default_code(self) -> str:
        return "E400"


class ArtifactNotFoundError(ArtifactError):
    """构件文件在发现与解析之间消失"""

    def _get_default_code(self) -> str:
        return "E401"


class ArtifactIOError(ArtifactError):
    """构件文件无法读取"""

    def _get_default_code(self) -> str:
        return "E402"


class ModuleTreeError(DistroGenError):
    """模块树结构错误"""

    def _get_default_code(self) -> str:
        return "E500"


class DuplicateModuleError(ModuleTreeError):
    """同级模块 ID 重复"""

    def _get_default_code(self) -> str:
        return "E501"


class CycleDetectedError(ModuleTreeError):
    """依赖图中存在循环"""

    def _get_default_code(self) -> str:
        return "E502"


class StructureError(DistroGenError):
    """目录结构创建失败"""

    def _get_default_code(self) -> str:
        return "E600"


__all__ = [
    # 基础异常
    "DistroGenError",
    # 配置异常
    "ConfigError",
    "InvalidConfigurationError",
    "ServerMetaError",
    # 版本与加载器
    "InvalidVersionError",
    "UnsupportedLoaderError",
    # API 异常
    "APIError",
    "APINetworkError",
    "APINotFoundError",
    # 下载异常
    "DownloadError",
    "DownloadChecksumError",
    # 构件异常
    "ArtifactError",
    "ArtifactNotFoundError",
    "ArtifactIOError",
    # 模块树异常
    "ModuleTreeError",
    "DuplicateModuleError",
    "CycleDetectedError",
    # 目录结构异常
    "StructureError",
]
