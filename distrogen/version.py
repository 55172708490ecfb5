"""
游戏版本解析

解析 Minecraft 风格的版本字符串（1.12.2、1.16.5-snapshot、v1.20.1-rc1），
提供全序比较与版本区间判断，用于选择加载器的安装布局。
"""

import re
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Optional, Tuple, Union

from distrogen.exceptions import InvalidVersionError

_VERSION_RE = re.compile(
    r"^[vV]?(?P<major>\d+)"
    r"(?:\.(?P<minor>\d+))?"
    r"(?:\.(?P<patch>\d+))?"
    r"(?:[- ](?P<tag>[0-9A-Za-z][0-9A-Za-z.\- ]*))?$"
)


@total_ordering
@dataclass(frozen=True, eq=False)
class VersionToken:
    """
    已解析的游戏版本。

    比较只看数值部分与预发布标签：前导零和 ``v`` 前缀不影响结果，
    没有标签的正式版排在同号的任何预发布版本之后。
    """

    major: int
    minor: int
    patch: int
    tag: Optional[str] = None
    raw: str = field(default="", compare=False)

    @classmethod
    def parse(cls, raw: str) -> "VersionToken":
        """
        解析版本字符串

        Raises:
            InvalidVersionError: 字符串无法解析
        """
        if not isinstance(raw, str):
            raise InvalidVersionError(
                f"版本必须为字符串: {raw!r}", context={"version": repr(raw)}
            )
        text = raw.strip()
        match = _VERSION_RE.match(text)
        if not match:
            raise InvalidVersionError(
                f"无法解析的版本字符串: '{raw}'", context={"version": raw}
            )
        tag = match.group("tag")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor") or 0),
            patch=int(match.group("patch") or 0),
            tag=tag.strip().lower() if tag else None,
            raw=text,
        )

    @classmethod
    def coerce(cls, value: Union[str, "VersionToken"]) -> "VersionToken":
        if isinstance(value, VersionToken):
            return value
        return cls.parse(value)

    @property
    def is_release(self) -> bool:
        return self.tag is None

    def _key(self) -> Tuple[int, int, int, int, str]:
        # 正式版 (1, "") 排在任何预发布标签 (0, tag) 之后
        if self.tag is None:
            return (self.major, self.minor, self.patch, 1, "")
        return (self.major, self.minor, self.patch, 0, self.tag)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionToken):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "VersionToken") -> bool:
        if not isinstance(other, VersionToken):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def is_at_least(self, other: Union[str, "VersionToken"]) -> bool:
        """当前版本是否 >= other"""
        return self >= VersionToken.coerce(other)

    def in_range(
        self,
        lo: Union[str, "VersionToken"],
        hi_inclusive: Union[str, "VersionToken"],
    ) -> bool:
        """当前版本是否位于闭区间 [lo, hi_inclusive]"""
        return VersionToken.coerce(lo) <= self <= VersionToken.coerce(hi_inclusive)

    def __str__(self) -> str:
        return self.raw or self.normalized

    @property
    def normalized(self) -> str:
        """去除修饰后的规范形式，例如 ``v01.13`` -> ``1.13.0``"""
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}-{self.tag}" if self.tag else base


__all__ = ["VersionToken"]
