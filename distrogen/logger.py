"""
日志模块

使用 loguru 提供统一的日志记录功能。核心构建逻辑只调用 ``logger``，
只有命令行入口会调用 ``setup_logger`` 配置输出。
"""

import os
import sys
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} | {message}"


def resolve_level(level: Optional[str] = None, debug: bool = False) -> str:
    """确定日志级别：显式参数 > --debug > DISTROGEN_DEBUG 环境变量"""
    if level:
        return level.upper()
    if debug or os.environ.get("DISTROGEN_DEBUG", "0") == "1":
        return "DEBUG"
    return "INFO"


def setup_logger(
    level: Optional[str] = None,
    sink=sys.stdout,
    enqueue: bool = True,
    colorize: bool = True,
    log_file: Optional[str] = None,
) -> None:
    """
    设置日志记录器

    Args:
        level: 日志级别 (DEBUG, INFO, WARNING, ERROR)，None 时读取环境变量
        sink: 控制台输出目标
        enqueue: 是否启用队列（线程安全）
        colorize: 是否启用颜色
        log_file: 额外写入的构建日志文件，按 5 MB 轮转
    """
    level = resolve_level(level)
    debug_mode = level == "DEBUG"

    logger.remove()
    logger.add(
        sink=sink,
        format=CONSOLE_FORMAT,
        enqueue=enqueue,
        level=level,
        colorize=colorize,
        backtrace=debug_mode,
        diagnose=debug_mode,
    )

    if log_file:
        logger.add(
            log_file,
            format=FILE_FORMAT,
            enqueue=enqueue,
            level="DEBUG",
            rotation="5 MB",
            retention=3,
            encoding="utf-8",
        )

    if debug_mode:
        logger.debug("DEBUG 模式已启用")


def get_logger():
    """获取日志记录器实例"""
    return logger


__all__ = ["logger", "setup_logger", "get_logger", "resolve_level"]
