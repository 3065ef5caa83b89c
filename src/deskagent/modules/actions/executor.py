"""
动作执行器

按 sequence_id 升序逐个执行一批动作：

- stopIteration / stateUpdate 终止本批次剩余动作；
- repeat 只能回放本批次中已经执行过的、序号落在区间内的动作；
- 未知类型记录警告后跳过。

注入失败只记录日志，不向上抛出；取消由 CancellationToken 在每个动作前后检查。
"""
from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from ...core.cancellation import CancellationToken
from ...core.config import settings
from ...core.errors import TaskCanceled
from ...core.logger import logger
from ...core.thread_pool import run_in_io
from ..input.base import InputInjector
from .types import CONTROL_KINDS, HALTING_KINDS, ActionKind, ActionSpec

ActionCallback = Callable[[ActionSpec], None]
Handler = Callable[[ActionSpec, List[ActionSpec], CancellationToken], Awaitable[None]]


@dataclass
class BatchResult:
    """一批动作的执行结果"""
    executed: List[ActionSpec] = field(default_factory=list)
    halted_by: Optional[ActionKind] = None
    skipped: List[ActionSpec] = field(default_factory=list)

    @property
    def state_update_requested(self) -> bool:
        return self.halted_by == ActionKind.STATE_UPDATE


class ActionExecutor:
    """把 ActionSpec 翻译成输入注入调用"""

    def __init__(
        self,
        injector: InputInjector,
        *,
        action_delay: Optional[float] = None,
        state_update_delay: Optional[float] = None,
        type_interval: float = 0.1,
        on_action: Optional[ActionCallback] = None,
    ):
        self.injector = injector
        self.action_delay = settings.action_delay if action_delay is None else action_delay
        self.state_update_delay = settings.state_update_delay if state_update_delay is None else state_update_delay
        self.type_interval = type_interval
        self.on_action = on_action
        self.log = logger.bind(module="ActionExecutor")

        self._handlers: Dict[ActionKind, Handler] = {
            ActionKind.MOUSE_MOVE: self._mouse_move,
            ActionKind.MOUSE_MOVE_RELATIVE: self._mouse_move_relative,
            ActionKind.MOUSE_CLICK_LEFT: self._click_left,
            ActionKind.MOUSE_CLICK_LEFT_DOUBLE: self._click_left_double,
            ActionKind.MOUSE_CLICK_RIGHT: self._click_right,
            ActionKind.NOP: self._nop,
            ActionKind.STATE_UPDATE: self._state_update,
            ActionKind.STOP_ITERATION: self._stop_iteration,
            ActionKind.PRINT_STRING: self._print_string,
            ActionKind.KEY_TAP: self._key_tap,
            ActionKind.DRAG_SMOOTH: self._drag_smooth,
            ActionKind.KEY_DOWN: self._key_down,
            ActionKind.KEY_UP: self._key_up,
            ActionKind.SCROLL_SMOOTH: self._scroll_smooth,
            ActionKind.REPEAT: self._repeat,
        }

    async def execute_batch(self, actions: List[ActionSpec], token: CancellationToken) -> BatchResult:
        """顺序执行一批动作"""
        result = BatchResult()
        ordered = sorted(actions, key=lambda a: a.sequence_id)

        for index, action in enumerate(ordered):
            token.checkpoint()
            kind = action.action_kind
            if kind is None:
                self.log.warning("不支持的动作类型，已跳过: {}", action.kind)
                result.skipped.append(action)
                continue

            self.log.info(
                "执行动作 #{} {} {}",
                action.sequence_id, kind.value, action.description,
            )
            await self._handlers[kind](action, result.executed, token)
            result.executed.append(action)
            if self.on_action is not None:
                self.on_action(action)

            if kind in HALTING_KINDS:
                result.halted_by = kind
                result.skipped.extend(ordered[index + 1:])
                break

            await token.sleep(self.action_delay)

        return result

    async def _inject(self, token: CancellationToken, func, *args, **kwargs) -> None:
        """在 I/O 线程执行注入调用，失败只记录日志"""
        try:
            await token.run(run_in_io(functools.partial(func, *args, **kwargs)))
        except TaskCanceled:
            raise
        except Exception as e:
            self.log.error("输入注入失败 {}: {}", getattr(func, "__name__", func), e)

    async def _mouse_move(self, action, executed, token):
        await self._inject(token, self.injector.move, action.coordinates.x, action.coordinates.y)

    async def _mouse_move_relative(self, action, executed, token):
        await self._inject(token, self.injector.move_relative, action.coordinates.x, action.coordinates.y)

    async def _click_left(self, action, executed, token):
        await self._inject(token, self.injector.click, "left")

    async def _click_left_double(self, action, executed, token):
        await self._inject(token, self.injector.click, "left", double=True)

    async def _click_right(self, action, executed, token):
        await self._inject(token, self.injector.click, "right")

    async def _nop(self, action, executed, token):
        await token.sleep(action.duration)

    async def _state_update(self, action, executed, token):
        await token.sleep(self.state_update_delay)

    async def _stop_iteration(self, action, executed, token):
        self.log.info("决策服务请求结束本轮动作")

    async def _print_string(self, action, executed, token):
        await self._inject(token, self.injector.type_text, action.text, interval=self.type_interval)

    async def _key_tap(self, action, executed, token):
        await self._inject(token, self.injector.key_tap, action.key_name)

    async def _key_down(self, action, executed, token):
        await self._inject(token, self.injector.key_down, action.key_name)

    async def _key_up(self, action, executed, token):
        await self._inject(token, self.injector.key_up, action.key_name)

    async def _drag_smooth(self, action, executed, token):
        await self._inject(token, self.injector.drag_to, action.coordinates.x, action.coordinates.y)

    async def _scroll_smooth(self, action, executed, token):
        await self._inject(token, self.injector.scroll, action.coordinates.x, action.coordinates.y)

    async def _repeat(self, action, executed, token):
        if action.range is None or action.repeat_count <= 0:
            self.log.warning("repeat 参数无效: range={} times={}", action.range, action.repeat_count)
            return
        first, last = action.range
        targets = [
            a for a in executed
            if first <= a.sequence_id <= last and a.action_kind not in CONTROL_KINDS
        ]
        if not targets:
            self.log.warning("repeat 区间 {}-{} 内没有已执行的动作", first, last)
            return

        for _ in range(action.repeat_count):
            for target in targets:
                token.checkpoint()
                await self._handlers[target.action_kind](target, executed, token)
                await token.sleep(self.action_delay)


__all__ = [
    "BatchResult",
    "ActionExecutor",
]
