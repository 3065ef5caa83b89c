"""决策服务 token 用量统计。"""
from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from loguru import logger

log = logger.bind(module="TokenTracker")

TokenListener = Callable[[dict], None]


class TokenTracker:
    """累计 token 用量并计算速率，每次累加后通知监听者"""

    def __init__(self, listener: Optional[TokenListener] = None):
        self._lock = threading.Lock()
        self._total = 0
        self._start = time.monotonic()
        self._listener = listener

    def set_listener(self, listener: Optional[TokenListener]) -> None:
        self._listener = listener

    def add(self, count: int, label: str = "") -> None:
        if count <= 0:
            return
        with self._lock:
            self._total += int(count)
        stats = self.stats()
        log.debug("[TOKENS] {} - Total: {}, Rate: {:.2f} tokens/sec", label, stats["total"], stats["tokens_per_second"])
        if self._listener is not None:
            self._listener(stats)

    @property
    def total(self) -> int:
        with self._lock:
            return self._total

    def tokens_per_second(self) -> float:
        with self._lock:
            elapsed = time.monotonic() - self._start
            if elapsed <= 0:
                return 0.0
            return self._total / elapsed

    def stats(self) -> dict:
        return {"total": self.total, "tokens_per_second": round(self.tokens_per_second(), 2)}

    def reset(self) -> None:
        with self._lock:
            self._total = 0
            self._start = time.monotonic()
