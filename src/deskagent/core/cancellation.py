"""
协作式取消

每个任务持有一个 CancellationToken。所有与外部协作者交互的地方都经过
checkpoint() 或 run()，取消后在下一个检查点抛出 TaskCanceled。
"""
from __future__ import annotations

import asyncio
import threading
from typing import Awaitable, Optional, TypeVar

from .errors import TaskCanceled

T = TypeVar("T")


class CancellationToken:
    """任务取消令牌，可从任意线程调用 cancel()"""

    def __init__(self) -> None:
        self._canceled = False
        self._lock = threading.Lock()
        self._event = asyncio.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def canceled(self) -> bool:
        return self._canceled

    def cancel(self) -> bool:
        """触发取消。返回 False 表示此前已经取消过。"""
        with self._lock:
            if self._canceled:
                return False
            self._canceled = True
            loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self._event.set)
        else:
            self._event.set()
        return True

    def checkpoint(self) -> None:
        """已取消则抛出 TaskCanceled"""
        if self._canceled:
            raise TaskCanceled("task canceled")

    def _bind_loop(self) -> None:
        if self._loop is None:
            with self._lock:
                if self._loop is None:
                    self._loop = asyncio.get_running_loop()
                    if self._canceled:
                        self._event.set()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """执行 awaitable，取消信号先到则中止它并抛出 TaskCanceled。

        执行前后各检查一次，取消之后得到的结果一律丢弃。
        """
        if self._canceled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise TaskCanceled("task canceled")
        self._bind_loop()

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not work.done():
                work.cancel()

        if not work.done() or work.cancelled():
            # 等待被取消的协作者收尾
            await asyncio.gather(work, return_exceptions=True)
            raise TaskCanceled("task canceled")

        self.checkpoint()
        return work.result()

    async def sleep(self, seconds: float) -> None:
        """可被取消打断的 sleep"""
        if seconds <= 0:
            self.checkpoint()
            return
        await self.run(asyncio.sleep(seconds))


__all__ = ["CancellationToken"]
