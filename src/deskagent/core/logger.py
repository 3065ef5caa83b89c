"""
日志配置模块
"""
import sys
from pathlib import Path
from typing import Dict

from loguru import logger
from .config import settings

# task_id -> loguru sink id
_task_sinks: Dict[str, int] = {}


def setup_logger():
    """配置日志系统"""
    # 移除默认处理器
    logger.remove()
    _task_sinks.clear()

    # 创建日志目录
    log_dir = Path(settings.log_path)
    log_dir.mkdir(parents=True, exist_ok=True)

    # 控制台输出（无控制台的环境下跳过）
    if settings.log_console_enabled and sys.stdout is not None:
        logger.add(
            sys.stdout,
            level=settings.log_level,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
        )

    # 文件输出 - 全局日志
    logger.add(
        log_dir / "app_{time:YYYY-MM-DD}.log",
        level=settings.log_level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        rotation="00:00",  # 每天午夜轮转
        retention=f"{settings.log_retention_days} days",
        encoding="utf-8",
        serialize=True  # JSON格式
    )

    # 错误日志单独记录
    logger.add(
        log_dir / "error_{time:YYYY-MM-DD}.log",
        level="ERROR",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        rotation="00:00",
        retention=f"{settings.log_retention_days * 2} days",
        encoding="utf-8"
    )

    return logger


def get_task_logger(task_id: str):
    """获取任务专用日志器

    同一任务多次调用只注册一个文件 sink。
    """
    task_logger = logger.bind(task_id=task_id)
    if task_id in _task_sinks:
        return task_logger

    log_dir = Path(settings.log_path) / "tasks"
    log_dir.mkdir(parents=True, exist_ok=True)

    sink_id = logger.add(
        log_dir / f"task_{task_id}_{{time:YYYY-MM-DD}}.log",
        level=settings.log_level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}",
        rotation="00:00",
        retention=f"{settings.log_retention_days} days",
        encoding="utf-8",
        filter=lambda record: record["extra"].get("task_id") == task_id
    )
    _task_sinks[task_id] = sink_id

    return task_logger


def release_task_logger(task_id: str) -> bool:
    """任务结束后移除其文件 sink，返回是否确实移除了"""
    sink_id = _task_sinks.pop(task_id, None)
    if sink_id is None:
        return False
    try:
        logger.remove(sink_id)
    except ValueError:
        # setup_logger() 已经移除过全部 sink
        return False
    return True


# 初始化日志系统
logger = setup_logger()
