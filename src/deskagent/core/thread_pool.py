"""
感知与注入用的后台线程

mss 截屏、pyautogui 注入、OpenCV 标记和 PaddleOCR 识别都是同步阻塞调用，
事件循环不能直接执行它们。按负载分两类 executor：

- ``desk-io``：截屏与输入注入。同一时刻只有一个任务在操作桌面，线程数很小。
- ``cv-compute``：连通域标记、颜色聚类、窗口识别与 OCR。

executor 惰性创建，``shutdown_pools()`` 之后再次使用会重新创建。
"""
from __future__ import annotations

import asyncio
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict

from .config import settings
from .logger import logger

log = logger.bind(module="ThreadPool")

IO_PREFIX = "desk-io"
COMPUTE_PREFIX = "cv-compute"

_pools: Dict[str, ThreadPoolExecutor] = {}


def _default_io_size() -> int:
    # 一个截屏线程加一个注入线程
    return 2


def _default_compute_size() -> int:
    # 单帧流水线内部无并行，留出余量给 OCR 的近光标区域识别
    cpu = os.cpu_count() or 2
    return max(2, min(cpu, 8))


def _pool(prefix: str, configured: int, default: Callable[[], int]) -> ThreadPoolExecutor:
    executor = _pools.get(prefix)
    if executor is None:
        size = configured if configured > 0 else default()
        executor = ThreadPoolExecutor(max_workers=size, thread_name_prefix=prefix)
        _pools[prefix] = executor
        log.info("executor {} 已创建: max_workers={}", prefix, size)
    return executor


def get_io_pool() -> ThreadPoolExecutor:
    return _pool(IO_PREFIX, settings.io_thread_pool_size, _default_io_size)


def get_compute_pool() -> ThreadPoolExecutor:
    return _pool(COMPUTE_PREFIX, settings.compute_thread_pool_size, _default_compute_size)


async def run_in_io(func, *args):
    """在截屏/注入线程中执行阻塞调用"""
    return await asyncio.get_running_loop().run_in_executor(get_io_pool(), func, *args)


async def run_in_compute(func, *args):
    """在视觉/OCR 线程中执行阻塞调用"""
    return await asyncio.get_running_loop().run_in_executor(get_compute_pool(), func, *args)


def shutdown_pools() -> None:
    """关闭全部 executor，不等待正在执行的调用"""
    if not _pools:
        return
    for prefix, executor in list(_pools.items()):
        executor.shutdown(wait=False)
        del _pools[prefix]
    log.info("后台线程已关闭")


__all__ = [
    "get_io_pool",
    "get_compute_pool",
    "run_in_io",
    "run_in_compute",
    "shutdown_pools",
]
