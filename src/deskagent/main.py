"""
主程序入口

    deskagent "open the terminal" "type ls and press enter"

每个参数作为一个目标依次排队执行，全部结束后退出。
"""
from __future__ import annotations

import asyncio
import sys
from typing import List, Optional

from .core.logger import logger
from .core.thread_pool import shutdown_pools
from .modules.actions.executor import ActionExecutor
from .modules.capture.mss_capture import MssCapture
from .modules.decision.openai_service import OpenAIDecisionService
from .modules.decision.tokens import TokenTracker
from .modules.events.broadcaster import EventBroadcaster
from .modules.input.pyautogui_injector import PyAutoGuiInjector
from .modules.ocr.engine import PaddleOcrEngine
from .modules.tasks.orchestrator import TaskOrchestrator
from .modules.tasks.perception import Perceiver
from .modules.tasks.runner import TaskRunner


def build_orchestrator(broadcaster: Optional[EventBroadcaster] = None) -> TaskOrchestrator:
    """用默认适配器（mss / PaddleOCR / pyautogui / OpenAI 兼容接口）组装调度器"""
    broadcaster = broadcaster or EventBroadcaster()
    tracker = TokenTracker(listener=broadcaster.tokens)
    perceiver = Perceiver(MssCapture(), PaddleOcrEngine())
    runner = TaskRunner(
        perceiver,
        OpenAIDecisionService(tracker=tracker),
        ActionExecutor(PyAutoGuiInjector()),
        broadcaster,
    )
    return TaskOrchestrator(runner, broadcaster)


async def _print_events(broadcaster: EventBroadcaster) -> None:
    sub = broadcaster.subscribe()
    try:
        while True:
            event = await sub.get()
            logger.info("[event] {} {} {}", event.type.value, event.task_id or "-", event.payload)
    finally:
        broadcaster.unsubscribe(sub)


async def run_goals(goals: List[str]) -> int:
    broadcaster = EventBroadcaster()
    orchestrator = build_orchestrator(broadcaster)
    printer = asyncio.create_task(_print_events(broadcaster))
    await orchestrator.start()
    try:
        tasks = [orchestrator.submit(goal) for goal in goals]
        await orchestrator.join()
    finally:
        await orchestrator.stop()
        printer.cancel()
        await asyncio.gather(printer, return_exceptions=True)

    failed = [t for t in tasks if t.status.value != "completed"]
    for t in tasks:
        logger.info("{} -> {} ({})", t.goal, t.status.value, t.message)
    return 1 if failed else 0


def main(argv: Optional[List[str]] = None) -> int:
    goals = [g for g in (argv if argv is not None else sys.argv[1:]) if g.strip()]
    if not goals:
        print("usage: deskagent <goal> [<goal> ...]", file=sys.stderr)
        return 2
    try:
        return asyncio.run(run_goals(goals))
    except KeyboardInterrupt:
        logger.warning("已中断")
        return 130
    finally:
        shutdown_pools()


if __name__ == "__main__":
    sys.exit(main())
