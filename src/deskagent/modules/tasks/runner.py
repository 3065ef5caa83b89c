"""
单个任务的执行流程

1. 把目标拆分为子任务（失败或为空时整个目标作为唯一子任务）；
2. 每个子任务最多迭代 max_iterations 次：
   感知 -> 计算 OCR 差异 -> 请求动作 -> 执行 -> 再次感知 -> 请求验证；
3. 验证通过进入下一个子任务；迭代耗尽按 exhausted_policy 处理。

取消在每个协作者调用前后检查；异常统一映射为任务终态。
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable, List, Optional

from ...core.config import settings
from ...core.constants import (
    MSG_CAPTURE_FAILED,
    MSG_DECISION_FAILED,
    MSG_ITERATIONS_EXHAUSTED,
    MSG_TASK_CANCELED,
    MSG_TASK_COMPLETED,
    USER_ASSIST_PREFIX,
    ExhaustedPolicy,
    SubtaskOutcome,
    TaskStatus,
)
from ...core.errors import InfrastructureError, ParseError, TaskCanceled, TransportError
from ...core.logger import get_task_logger, release_task_logger
from ..actions.executor import ActionExecutor
from ..decision.types import DecisionContext, DecisionService, SubTask
from ..events.broadcaster import EventBroadcaster
from ..ocr.delta import delta_to_json, produce_delta, regions_to_json
from .perception import Perceiver, Snapshot
from .types import PromptLog, Task

AssistSource = Callable[[str], Optional[str]]


@dataclass
class RunOutcome:
    status: TaskStatus
    message: str


class TaskRunner:
    """驱动一个任务从拆分到完成"""

    def __init__(
        self,
        perceiver: Perceiver,
        decision: DecisionService,
        executor: ActionExecutor,
        broadcaster: Optional[EventBroadcaster] = None,
        *,
        max_iterations: Optional[int] = None,
        iteration_delay: Optional[float] = None,
        exhausted_policy: Optional[str] = None,
        assist_source: Optional[AssistSource] = None,
    ):
        self.perceiver = perceiver
        self.decision = decision
        self.executor = executor
        self.broadcaster = broadcaster or EventBroadcaster()
        self.max_iterations = settings.max_iterations if max_iterations is None else max_iterations
        self.iteration_delay = settings.iteration_delay if iteration_delay is None else iteration_delay
        self.exhausted_policy = ExhaustedPolicy(exhausted_policy or settings.exhausted_policy)
        self.assist_source = assist_source

    async def run(self, task: Task) -> RunOutcome:
        """执行任务并返回终态，不抛出业务异常"""
        log = get_task_logger(task.id)
        try:
            return await self._run_logged(task, log)
        finally:
            release_task_logger(task.id)

    async def _run_logged(self, task: Task, log) -> RunOutcome:
        try:
            return await self._run(task, log)
        except TaskCanceled:
            log.info("任务已取消")
            return RunOutcome(TaskStatus.CANCELED, MSG_TASK_CANCELED)
        except InfrastructureError as e:
            log.error("基础设施故障: {}", e)
            return RunOutcome(TaskStatus.BROKEN, f"{MSG_CAPTURE_FAILED}: {e}")
        except TransportError as e:
            if task.token.canceled:
                log.info("决策请求因取消而中断")
                return RunOutcome(TaskStatus.CANCELED, MSG_TASK_CANCELED)
            log.error("决策服务通信失败: {}", e)
            return RunOutcome(TaskStatus.BROKEN, f"{MSG_DECISION_FAILED}: {e}")
        except Exception as e:
            log.exception("任务执行异常: {}", e)
            return RunOutcome(TaskStatus.BROKEN, f"Unexpected error: {e}")

    async def _decompose(self, task: Task, log) -> List[SubTask]:
        try:
            subtasks = await task.token.run(self.decision.decompose(task.goal))
        except (TransportError, ParseError) as e:
            log.warning("目标拆分失败，按单个子任务执行: {}", e)
            subtasks = []
        return subtasks or [SubTask(1, task.goal)]

    async def _run(self, task: Task, log) -> RunOutcome:
        subtasks = await self._decompose(task, log)
        log.info("目标拆分为 {} 个子任务", len(subtasks))
        self.broadcaster.log(task.id, f"Goal split into {len(subtasks)} subtask(s)")

        for subtask in subtasks:
            task.token.checkpoint()
            self.broadcaster.subtask_update(task.id, subtask.id, subtask.description, "running")
            outcome, iterations = await self._run_subtask(task, subtask, log)

            if outcome == SubtaskOutcome.ACHIEVED:
                self.broadcaster.subtask_update(task.id, subtask.id, subtask.description, "completed")
                continue

            log.warning("子任务 {} 迭代 {} 次未完成 (policy={})", subtask.id, iterations, self.exhausted_policy.value)
            self.broadcaster.subtask_exhausted(task.id, subtask.id, iterations, self.exhausted_policy.value)
            if self.exhausted_policy == ExhaustedPolicy.FAIL:
                return RunOutcome(TaskStatus.BROKEN, f"{MSG_ITERATIONS_EXHAUSTED}: {subtask.description}")

        return RunOutcome(TaskStatus.COMPLETED, MSG_TASK_COMPLETED)

    def _inject_assist(self, task: Task, subtask: SubTask, log) -> None:
        if self.assist_source is None:
            return
        message = self.assist_source(task.id)
        if message:
            subtask.description += USER_ASSIST_PREFIX + message
            log.info("已注入用户提示: {}", message)

    async def _delta_summary(self, task: Task, old: Snapshot, new: Snapshot):
        delta = produce_delta(old.ocr, new.ocr)
        if delta.is_empty:
            return delta_to_json(delta), ""
        delta_json = delta_to_json(delta)
        summary = await task.token.run(self.decision.summarize_delta(delta_json))
        return delta_json, summary

    async def _run_subtask(self, task: Task, subtask: SubTask, log):
        token = task.token
        prompt_log = PromptLog()
        previous: Optional[Snapshot] = None
        previous_actions_json = "[]"
        iteration = 0

        while iteration < self.max_iterations:
            iteration += 1
            token.checkpoint()
            self._inject_assist(task, subtask, log)
            log.info("子任务 {} 第 {} 轮", subtask.id, iteration)

            snap = await self.perceiver.perceive(token)
            delta_json, summary = "", ""
            if previous is not None:
                delta_json, summary = await self._delta_summary(task, previous, snap)

            context = DecisionContext(
                goal=subtask.description,
                iteration=iteration,
                boxes_json=snap.boxes_json(),
                ocr_json=snap.ocr_json(),
                ocr_delta_json=delta_json,
                ocr_delta_summary=summary,
                colors_json=snap.colors_json(),
                windows_json=snap.windows_json(),
                cursor=snap.cursor,
                previous_cursor=previous.cursor if previous is not None else None,
                previous_actions_json=previous_actions_json,
                prompt_log=prompt_log.messages(),
            )
            actions = await token.run(self.decision.next_actions(context))

            batch = await self.executor.execute_batch(actions, token)
            for action in batch.executed:
                self.broadcaster.action(task.id, action.to_wire())
            executed_json = json.dumps([a.to_wire() for a in batch.executed])

            after = await self.perceiver.perceive(token)
            near_cursor = await self.perceiver.ocr_near_cursor(after, token)
            verify_delta_json, verify_summary = await self._delta_summary(task, snap, after)

            verdict = await token.run(self.decision.verify(DecisionContext(
                goal=subtask.description,
                iteration=iteration,
                boxes_json=after.boxes_json(),
                ocr_json=after.ocr_json(),
                ocr_delta_json=verify_delta_json,
                ocr_delta_summary=verify_summary,
                colors_json=after.colors_json(),
                colors_before_json=snap.colors_json(),
                windows_json=after.windows_json(),
                cursor=after.cursor,
                previous_cursor=snap.cursor,
                previous_actions_json=executed_json,
                ocr_near_cursor_json=regions_to_json(near_cursor),
                prompt_log=prompt_log.messages(),
            )))
            log.info("验证结果: achieved={} {}", verdict.achieved, verdict.description)

            if verdict.achieved:
                prompt_log.clear()
                return SubtaskOutcome.ACHIEVED, iteration

            prompt_log.append(iteration, verdict.next_prompt)
            previous_actions_json = executed_json
            previous = after
            await token.sleep(self.iteration_delay)

        return SubtaskOutcome.EXHAUSTED, iteration


__all__ = [
    "RunOutcome",
    "TaskRunner",
]
