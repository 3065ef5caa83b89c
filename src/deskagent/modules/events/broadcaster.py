"""
事件广播

每个订阅者持有一个有界 asyncio.Queue。发布是非阻塞的：队列满时丢弃该
订阅者的这条事件并计数，慢订阅者不会拖慢任务循环。
"""
from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ...core.config import settings
from ...core.constants import EventType
from ...core.logger import logger

log = logger.bind(module="EventBroadcaster")


@dataclass
class Event:
    type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)
    task_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "task_id": self.task_id,
            "payload": self.payload,
            "created_at": self.created_at.isoformat(),
        }


class Subscription:
    """单个订阅者的事件队列"""

    def __init__(self, maxsize: int, loop: asyncio.AbstractEventLoop):
        self.queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=maxsize)
        self.loop = loop
        self.dropped = 0
        self.closed = False

    async def get(self) -> Event:
        return await self.queue.get()

    def get_nowait(self) -> Event:
        return self.queue.get_nowait()

    def drain(self) -> List[Event]:
        events: List[Event] = []
        while not self.queue.empty():
            events.append(self.queue.get_nowait())
        return events


class EventBroadcaster:
    """任务、子任务、动作、token 和日志事件的发布者"""

    def __init__(self, queue_size: Optional[int] = None):
        self.queue_size = queue_size or settings.event_queue_size
        self._subs: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, maxsize: Optional[int] = None) -> Subscription:
        """在事件循环内调用"""
        sub = Subscription(maxsize or self.queue_size, asyncio.get_running_loop())
        with self._lock:
            self._subs.append(sub)
        log.debug("新增订阅者，当前 {} 个", len(self._subs))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subs:
                self._subs.remove(sub)
        sub.closed = True

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subs)

    def _deliver(self, sub: Subscription, event: Event) -> None:
        if sub.closed:
            return
        try:
            sub.queue.put_nowait(event)
        except asyncio.QueueFull:
            sub.dropped += 1
            log.debug("订阅者队列已满，丢弃事件 {} (累计 {})", event.type.value, sub.dropped)

    def publish(self, event: Event) -> None:
        """发布事件，不等待任何订阅者。可从任意线程调用。"""
        with self._lock:
            subs = list(self._subs)
        try:
            current = asyncio.get_running_loop()
        except RuntimeError:
            current = None
        for sub in subs:
            if sub.loop is current:
                self._deliver(sub, event)
            elif not sub.loop.is_closed():
                sub.loop.call_soon_threadsafe(self._deliver, sub, event)

    # ── 便捷方法 ──

    def task_update(self, task_id: str, status: str, message: str = "") -> None:
        self.publish(Event(EventType.TASK, {"status": status, "message": message}, task_id))

    def subtask_update(self, task_id: str, subtask_id: int, description: str, status: str) -> None:
        self.publish(Event(
            EventType.SUBTASK,
            {"subtask_id": subtask_id, "description": description, "status": status},
            task_id,
        ))

    def subtask_exhausted(self, task_id: str, subtask_id: int, iterations: int, policy: str) -> None:
        self.publish(Event(
            EventType.SUBTASK_EXHAUSTED,
            {"subtask_id": subtask_id, "iterations": iterations, "policy": policy},
            task_id,
        ))

    def action(self, task_id: str, action: dict) -> None:
        self.publish(Event(EventType.ACTION, action, task_id))

    def tokens(self, stats: dict) -> None:
        self.publish(Event(EventType.TOKENS, dict(stats)))

    def log(self, task_id: Optional[str], message: str, level: str = "INFO") -> None:
        self.publish(Event(EventType.LOG, {"level": level, "message": message}, task_id))


__all__ = [
    "Event",
    "Subscription",
    "EventBroadcaster",
]
