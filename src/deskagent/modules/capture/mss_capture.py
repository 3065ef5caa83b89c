"""
基于 mss 的桌面截图实现
"""
from __future__ import annotations

import threading
from typing import Tuple

import numpy as np

from ...core.logger import logger
from ...core.thread_pool import run_in_io
from .base import BaseCapture, Frame

log = logger.bind(module="MssCapture")


class MssCapture(BaseCapture):
    """mss 截取主显示器，光标位置由 pyautogui 读取。

    mss 实例绑定创建它的线程，因此每个 I/O 线程各自持有一个。
    """

    def __init__(self, monitor_index: int = 1):
        self.monitor_index = monitor_index
        self._local = threading.local()

    def _sct(self):
        sct = getattr(self._local, "sct", None)
        if sct is None:
            import mss  # noqa: delay import

            sct = mss.mss()
            self._local.sct = sct
        return sct

    def _grab(self) -> Tuple[np.ndarray, Tuple[int, int]]:
        import pyautogui  # noqa: delay import

        sct = self._sct()
        monitor = sct.monitors[self.monitor_index]
        shot = sct.grab(monitor)
        # mss 返回 BGRA，去掉 alpha 即为 OpenCV 的 BGR
        image = np.ascontiguousarray(np.asarray(shot)[:, :, :3])
        x, y = pyautogui.position()
        return image, (int(x) - monitor["left"], int(y) - monitor["top"])

    async def _capture_raw(self) -> Frame:
        image, cursor = await run_in_io(self._grab)
        return Frame(image=image, cursor=cursor)

    def is_available(self) -> bool:
        try:
            self._sct()
            return True
        except Exception as e:
            log.warning("mss 不可用: {}", e)
            return False
