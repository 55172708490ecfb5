"""
配置模块

合并命令行参数、环境变量与根目录下的 distro.toml / distro.json / distro.yaml，
生成传给核心构建器的显式配置。核心代码本身不读取环境变量。
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import toml
import yaml

from distrogen.exceptions import ConfigError, InvalidConfigurationError
from distrogen.resolver import LoaderLayoutTable
from distrogen.services import CURSEFORGE_API_URL

CONFIG_FILE_NAMES = ("distro.toml", "distro.json", "distro.yaml", "distro.yml")


@dataclass
class DistroSettings:
    """构建配置"""

    root: str
    base_url: str = ""
    max_concurrent: int = 8
    max_retries: int = 3
    retry_delay: float = 1.0
    timeout: float = 30.0
    download: bool = True
    curseforge_api_key: Optional[str] = None
    curseforge_api_url: str = CURSEFORGE_API_URL
    loader_layouts: LoaderLayoutTable = field(default_factory=LoaderLayoutTable)


def load_config(config_path: str) -> Dict[str, Any]:
    """
    加载配置文件

    Raises:
        ConfigError: 文件不存在、格式不支持或解析失败
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"配置文件不存在: {config_path}", context={"path": config_path})

    suffix = path.suffix.lower()
    try:
        if suffix == ".toml":
            data = toml.load(config_path)
        elif suffix == ".json":
            data = json.loads(path.read_text(encoding="utf-8"))
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        else:
            raise ConfigError(f"不支持的配置文件格式: {suffix}", context={"path": config_path})
    except (toml.TomlDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(
            f"配置文件解析失败: {e}", context={"path": config_path}
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("配置文件顶层必须是表", context={"path": config_path})
    return data


def find_config_file(root: str) -> Optional[str]:
    """在根目录中查找配置文件"""
    for name in CONFIG_FILE_NAMES:
        candidate = os.path.join(root, name)
        if os.path.isfile(candidate):
            return candidate
    return None


def resolve_root(value: Optional[str]) -> str:
    """
    解析根目录为绝对路径

    Raises:
        InvalidConfigurationError: 未指定根目录
    """
    if not value:
        raise InvalidConfigurationError("未指定根目录，请使用 --root 或设置 ROOT 环境变量")
    return os.path.abspath(os.path.expanduser(value))


def normalize_base_url(raw: Optional[str]) -> str:
    """
    规范化下载基础地址：缺少协议时补 https://，保证以 / 结尾

    Raises:
        InvalidConfigurationError: 地址为空或无效
    """
    if not raw or not raw.strip():
        raise InvalidConfigurationError(
            "未指定 BASE_URL，请使用 --base-url 或设置 BASE_URL 环境变量"
        )
    url = raw.strip()
    if "://" not in url:
        url = "https://" + url

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidConfigurationError(f"无效的 BASE_URL: {url}", context={"base_url": raw})
    if not url.endswith("/"):
        url += "/"
    return url


def _section(data: Mapping[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"配置项 [{name}] 必须是表")
    return section


def load_settings(
    root: Optional[str] = None,
    base_url: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    require_base_url: bool = True,
    config_path: Optional[str] = None,
) -> DistroSettings:
    """
    合并配置：命令行参数 > 环境变量 > 配置文件

    Args:
        root: 命令行指定的根目录
        base_url: 命令行指定的基础地址
        environ: 环境变量映射，None 时使用 os.environ
        require_base_url: 是否必须提供基础地址
        config_path: 显式指定的配置文件，None 时在根目录中查找
    """
    environ = os.environ if environ is None else environ
    root_dir = resolve_root(root or environ.get("ROOT"))

    config_path = config_path or find_config_file(root_dir)
    data = load_config(config_path) if config_path else {}
    distro = _section(data, "distro")
    curseforge = _section(data, "curseforge")

    raw_base_url = base_url or environ.get("BASE_URL") or distro.get("base_url")
    if raw_base_url or require_base_url:
        normalized = normalize_base_url(raw_base_url)
    else:
        normalized = ""

    try:
        return DistroSettings(
            root=root_dir,
            base_url=normalized,
            max_concurrent=int(distro.get("max_concurrent", 8)),
            max_retries=int(distro.get("max_retries", 3)),
            retry_delay=float(distro.get("retry_delay", 1.0)),
            timeout=float(distro.get("timeout", 30.0)),
            download=bool(distro.get("download", True)),
            curseforge_api_key=environ.get("CF_API_KEY") or curseforge.get("api_key"),
            curseforge_api_url=str(curseforge.get("api_url", CURSEFORGE_API_URL)),
            loader_layouts=LoaderLayoutTable.from_dict(_section(data, "loaders")),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"配置值无效: {e}", context={"path": config_path}) from e
