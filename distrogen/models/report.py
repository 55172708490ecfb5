"""
构建报告

收集构建过程中可恢复的失败，构建结束后作为结构化摘要输出。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from distrogen.exceptions import DistroGenError


@dataclass(frozen=True)
class BuildFailure:
    """单条失败记录：定位到服务器与模块路径 / ID 对"""

    server_id: str
    location: str
    code: str
    message: str
    error_type: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "server": self.server_id,
            "location": self.location,
            "code": self.code,
            "message": self.message,
            "type": self.error_type,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.server_id}: {self.location} - {self.message}"


@dataclass
class BuildReport:
    """构建报告"""

    failures: List[BuildFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def record(
        self,
        server_id: str,
        location: str,
        error: Exception,
    ) -> BuildFailure:
        """记录一条失败"""
        if isinstance(error, DistroGenError):
            code, message = error.code, error.message
        else:
            code, message = "E000", str(error) or error.__class__.__name__
        failure = BuildFailure(
            server_id=server_id,
            location=location,
            code=code,
            message=message,
            error_type=error.__class__.__name__,
        )
        self.failures.append(failure)
        return failure

    def for_server(self, server_id: str) -> List[BuildFailure]:
        return [f for f in self.failures if f.server_id == server_id]

    def sorted(self) -> List[BuildFailure]:
        return sorted(self.failures, key=lambda f: (f.server_id, f.location, f.code))

    def summary(self, server_id: Optional[str] = None) -> Dict[str, Any]:
        failures = self.for_server(server_id) if server_id else self.sorted()
        return {
            "ok": not failures,
            "failures": [f.to_dict() for f in failures],
        }
