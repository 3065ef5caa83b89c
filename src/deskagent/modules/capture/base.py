"""
截图基类
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, Tuple

import numpy as np

from ...core.errors import CaptureError


@dataclass
class Frame:
    """一帧屏幕截图（BGR）及截图时的光标位置"""
    image: np.ndarray
    cursor: Tuple[int, int] = (0, 0)
    captured_at: datetime = field(default_factory=datetime.now)

    @property
    def size(self) -> Tuple[int, int]:
        h, w = self.image.shape[:2]
        return w, h


class ScreenCapture(Protocol):
    async def capture(self) -> Frame:
        ...


class BaseCapture(ABC):
    """截图基类"""

    @abstractmethod
    async def _capture_raw(self) -> Frame:
        """
        原始截图实现

        Returns:
            Frame

        Raises:
            Exception: 任意底层异常，由 capture() 统一包装
        """
        pass

    async def capture(self) -> Frame:
        """
        截取屏幕图像

        Returns:
            Frame

        Raises:
            CaptureError: 截图失败
        """
        try:
            return await self._capture_raw()
        except CaptureError:
            raise
        except Exception as e:
            raise CaptureError(f"截图失败: {str(e)}") from e

    @abstractmethod
    def is_available(self) -> bool:
        """
        检查截图功能是否可用

        Returns:
            是否可用
        """
        pass
