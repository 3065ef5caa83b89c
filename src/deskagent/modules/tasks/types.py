"""任务相关数据结构。"""
from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ...core.cancellation import CancellationToken
from ...core.constants import TaskStatus

# 允许的状态迁移；终态不再变化
_TRANSITIONS = {
    TaskStatus.QUEUED: {TaskStatus.RUNNING, TaskStatus.CANCELED, TaskStatus.BROKEN},
    TaskStatus.RUNNING: {TaskStatus.COMPLETED, TaskStatus.CANCELED, TaskStatus.BROKEN},
}


def new_task_id() -> str:
    return f"task-{uuid.uuid4().hex}"


@dataclass
class Task:
    """用户提交的一个目标"""
    goal: str
    id: str = field(default_factory=new_task_id)
    status: TaskStatus = TaskStatus.QUEUED
    message: str = ""
    token: CancellationToken = field(default_factory=CancellationToken)
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def transition(self, status: TaskStatus, message: str = "") -> bool:
        """迁移到新状态。非法迁移（包括离开终态）返回 False 且不做修改。"""
        with self._lock:
            if status not in _TRANSITIONS.get(self.status, set()):
                return False
            self.status = status
            if message:
                self.message = message
            if status == TaskStatus.RUNNING:
                self.started_at = datetime.now()
            elif status.is_terminal:
                self.finished_at = datetime.now()
            return True

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "goal": self.goal,
            "status": self.status.value,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


@dataclass
class PromptEntry:
    iteration: int
    message: str


class PromptLog:
    """子任务内各轮验证给出的下一步提示，只追加，子任务完成时清空"""

    def __init__(self) -> None:
        self._entries: List[PromptEntry] = []

    def append(self, iteration: int, message: str) -> None:
        if message:
            self._entries.append(PromptEntry(iteration, message))

    def clear(self) -> None:
        self._entries.clear()

    @property
    def entries(self) -> List[PromptEntry]:
        return list(self._entries)

    def messages(self) -> List[str]:
        return [e.message for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class UserAssistMessage:
    """用户在任务执行中补充的提示，最多注入一次"""
    task_id: str
    message: str
    created_at: datetime = field(default_factory=datetime.now)
    injected: bool = False


__all__ = [
    "Task",
    "new_task_id",
    "PromptEntry",
    "PromptLog",
    "UserAssistMessage",
    "CancellationToken",
]
