"""
TaskOrchestrator: 任务注册表 + FIFO 队列 + 单任务执行

职责：
- 接收目标，创建任务并排队
- 严格 FIFO 调度，同一时刻最多一个任务在运行
- 取消：排队中的任务直接移出队列；运行中的任务触发取消令牌
- 保存用户在任务执行中补充的提示，供运行中的任务注入一次

注册表、队列和运行指针由同一把线程锁保护，对外方法可从任意线程调用。
"""
from __future__ import annotations

import asyncio
import threading
from collections import deque
from typing import Deque, Dict, List, Optional

from ...core.constants import MSG_TASK_CANCELED, TaskStatus
from ...core.logger import logger
from ..events.broadcaster import EventBroadcaster
from .runner import RunOutcome, TaskRunner
from .types import Task, UserAssistMessage


class TaskOrchestrator:
    def __init__(self, runner: TaskRunner, broadcaster: Optional[EventBroadcaster] = None) -> None:
        self.runner = runner
        self.broadcaster = broadcaster or runner.broadcaster
        if self.runner.assist_source is None:
            self.runner.assist_source = self._take_assist

        self._lock = threading.Lock()
        self._tasks: Dict[str, Task] = {}
        self._pending: Deque[str] = deque()
        self._running: Optional[str] = None
        self._assist: Dict[str, UserAssistMessage] = {}

        self._have_items = asyncio.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._dispatcher_task: Optional[asyncio.Task] = None
        self._worker_task: Optional[asyncio.Task] = None
        self._started = False
        self._log = logger.bind(module="TaskOrchestrator")

    # ── 生命周期 ──

    async def start(self) -> None:
        if self._started:
            return
        self._log.info("Starting TaskOrchestrator ...")
        self._loop = asyncio.get_running_loop()
        self._dispatcher_task = asyncio.create_task(self._dispatcher_loop())
        self._started = True
        with self._lock:
            if self._pending:
                self._have_items.set()

    async def stop(self) -> None:
        if not self._started:
            return
        self._log.info("Stopping TaskOrchestrator ...")
        if self._dispatcher_task:
            self._dispatcher_task.cancel()
            try:
                await self._dispatcher_task
            except asyncio.CancelledError:
                pass
            self._dispatcher_task = None

        with self._lock:
            running = self._tasks.get(self._running) if self._running else None
        if running is not None:
            running.token.cancel()
        if self._worker_task is not None:
            await asyncio.gather(self._worker_task, return_exceptions=True)
            self._worker_task = None

        self._started = False
        self._have_items.clear()
        self._log.info("TaskOrchestrator stopped")

    async def join(self) -> None:
        """等待队列清空且没有运行中的任务"""
        while True:
            with self._lock:
                idle = not self._pending and self._running is None
            if idle:
                return
            await asyncio.sleep(0.05)

    # ── 调度 ──

    def _wake(self) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            self._have_items.set()
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._have_items.set()
        else:
            loop.call_soon_threadsafe(self._have_items.set)

    async def _dispatcher_loop(self) -> None:
        while True:
            await self._have_items.wait()
            self._have_items.clear()
            with self._lock:
                if self._running is not None or not self._pending:
                    continue
                task = self._tasks[self._pending.popleft()]
                if not task.transition(TaskStatus.RUNNING):
                    # 出队前已进入终态
                    if self._pending:
                        self._have_items.set()
                    continue
                self._running = task.id
            self._log.info("开始执行任务 {}: {}", task.id, task.goal)
            self.broadcaster.task_update(task.id, task.status.value, task.message)
            self._worker_task = asyncio.create_task(self._run_task(task))

    async def _run_task(self, task: Task) -> None:
        outcome = RunOutcome(TaskStatus.BROKEN, "Task worker stopped unexpectedly")
        try:
            outcome = await self.runner.run(task)
        except asyncio.CancelledError:
            outcome = RunOutcome(TaskStatus.CANCELED, MSG_TASK_CANCELED)
            raise
        finally:
            task.transition(outcome.status, outcome.message)
            self._on_task_done(task)

    def _on_task_done(self, task: Task) -> None:
        with self._lock:
            if self._running == task.id:
                self._running = None
            self._assist.pop(task.id, None)
            has_more = bool(self._pending)
        self._log.info("任务结束 {}: {} {}", task.id, task.status.value, task.message)
        self.broadcaster.task_update(task.id, task.status.value, task.message)
        if has_more:
            self._wake()

    # ── 对外接口 ──

    def submit(self, goal: str) -> Task:
        """创建任务并加入队列"""
        task = Task(goal=goal)
        with self._lock:
            self._tasks[task.id] = task
            self._pending.append(task.id)
        self._log.info("任务入队 {}: {}", task.id, goal)
        self.broadcaster.task_update(task.id, task.status.value, task.message)
        self._wake()
        return task

    def cancel(self, task_id: str) -> bool:
        """取消任务。排队中的任务立即标记为 canceled；运行中的任务在下一个检查点结束。"""
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return False
            if task.status == TaskStatus.QUEUED:
                try:
                    self._pending.remove(task_id)
                except ValueError:
                    pass
                self._assist.pop(task_id, None)
                canceled_now = task.transition(TaskStatus.CANCELED, MSG_TASK_CANCELED)
            elif task.status == TaskStatus.RUNNING:
                task.token.cancel()
                canceled_now = False
            else:
                return False

        if canceled_now:
            self._log.info("排队任务已取消 {}", task_id)
            self.broadcaster.task_update(task.id, task.status.value, task.message)
        else:
            self._log.info("已请求取消运行中的任务 {}", task_id)
        return True

    def get(self, task_id: str) -> Optional[Task]:
        with self._lock:
            return self._tasks.get(task_id)

    def status(self, task_id: str) -> Optional[TaskStatus]:
        task = self.get(task_id)
        return task.status if task else None

    def add_user_assist(self, task_id: str, message: str) -> bool:
        """为排队或运行中的任务登记一条提示；新的提示覆盖尚未注入的旧提示"""
        message = (message or "").strip()
        if not message:
            return False
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.is_terminal:
                return False
            self._assist[task_id] = UserAssistMessage(task_id=task_id, message=message)
        self.broadcaster.log(task_id, f"User assist message received: {message}")
        return True

    def _take_assist(self, task_id: str) -> Optional[str]:
        with self._lock:
            pending = self._assist.pop(task_id, None)
            if pending is None or pending.injected:
                return None
            pending.injected = True
            return pending.message

    # Observability
    def queue_info(self) -> List[dict]:
        with self._lock:
            return [
                {
                    "task_id": tid,
                    "goal": self._tasks[tid].goal,
                    "created_at": self._tasks[tid].created_at.isoformat(),
                }
                for tid in self._pending
            ]

    def running_info(self) -> List[dict]:
        with self._lock:
            if self._running is None:
                return []
            task = self._tasks[self._running]
            return [{"task_id": task.id, "goal": task.goal}]

    def tasks_info(self) -> List[dict]:
        with self._lock:
            return [t.to_dict() for t in self._tasks.values()]


__all__ = ["TaskOrchestrator"]
