"""
日志模块

使用 loguru 提供统一的日志记录功能。各组件通过构造参数接收 logger，
这里只负责配置输出目标。
"""

import os
import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

CONSOLE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS Z} [{level: <8}] "
    "{extra[component]} | {message}"
)


def setup_logger(
    level: Optional[str] = None,
    sink=sys.stdout,
    log_dir: Optional[Union[str, Path]] = None,
    enqueue: bool = True,
    colorize: bool = True,
) -> None:
    """
    设置日志记录器

    Args:
        level: 日志级别 (DEBUG, INFO, WARNING, ERROR)
        sink: 控制台输出目标
        log_dir: 日志文件目录，为 None 时不写文件
        enqueue: 是否启用队列（线程安全）
        colorize: 是否启用颜色
    """
    # 从环境变量获取日志级别
    if level is None:
        level = "DEBUG" if os.environ.get("MODSYNC_DEBUG", "0") == "1" else "INFO"

    # 移除默认处理器
    logger.remove()
    logger.configure(extra={"component": "modsync"})

    # 添加控制台处理器
    logger.add(
        sink=sink,
        format=CONSOLE_FORMAT,
        enqueue=enqueue,
        level=level,
        colorize=colorize,
        backtrace=(level == "DEBUG"),
        diagnose=(level == "DEBUG"),
    )

    # 文件处理器：按 10 MB 轮转，保留 31 天
    if log_dir is not None:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        logger.add(
            sink=str(Path(log_dir) / "launcher-{time:YYYY-MM-DD}.log"),
            format=FILE_FORMAT,
            enqueue=enqueue,
            level="DEBUG",
            rotation="10 MB",
            retention="31 days",
            encoding="utf-8",
        )

    if level == "DEBUG":
        logger.debug("DEBUG 模式已启用")


# 导出 logger
__all__ = ["logger", "setup_logger"]
