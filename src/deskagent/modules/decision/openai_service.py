"""
基于 OpenAI 兼容 Chat Completions 接口的决策服务

默认对接 DeepSeek（base_url 可配置），任何兼容 /v1/chat/completions 的
服务均可使用。模型输出格式不合法时回退为安全默认值，只有通信失败才抛出
TransportError。
"""
from __future__ import annotations

import json
from typing import List, Optional

from ...core.config import settings
from ...core.errors import TransportError
from ...core.logger import logger
from ..actions.types import ActionSpec
from .parsing import actions_or_default, subtasks_or_default, verdict_or_default
from .tokens import TokenTracker
from .types import DecisionContext, SubTask, Verdict

log = logger.bind(module="OpenAIDecision")


DECOMPOSE_SYSTEM = (
    "You are a helpful assistant. Output only valid JSON. You MUST return a JSON ARRAY of objects "
    'with this exact structure: [{"id": int, "description": string}]. Always return an array, even '
    "if there is only one task."
)

DECOMPOSE_USER = (
    "Break down the user provided goal into primitive tasks which a program can execute and easily "
    "verify. Do not break a very simple goal into tasks (example of a simple goal: \"press alt + F4\"). "
    'Example: [{{"id": 1, "description": "click on applications menu button"}}, '
    '{{"id": 2, "description": "click on the web browser entry"}}]. User provided goal is: {goal}'
)

ACTIONS_SYSTEM = (
    "You operate a Linux desktop through mouse and keyboard actions. Analyze the bounding boxes, OCR "
    "text, OCR delta, windows, colors, cursor position and previously executed actions, then output a "
    "JSON array of actions that advances the current task. Issue 'stopIteration' when the goal is "
    "achieved. Do not repeat previous actions without a reason. Move the mouse to an element before "
    "interacting with it, preferably to its middle."
)

ACTIONS_REFERENCE = """Every action has "actionSequenceID" (starting from 1) and "action". Available actions:
{"actionSequenceID": 1, "action": "mouseMove", "coordinates": {"x": 555, "y": 777}}
{"actionSequenceID": 2, "action": "mouseMoveRelative", "coordinates": {"x": -10, "y": 0}}
{"actionSequenceID": 3, "action": "mouseClickLeft"}
{"actionSequenceID": 4, "action": "mouseClickRight"}
{"actionSequenceID": 5, "action": "mouseClickLeftDouble"}
{"actionSequenceID": 6, "action": "nop", "duration": 3}   (seconds to wait)
{"actionSequenceID": 7, "action": "printString", "inputString": "Example string"}
{"actionSequenceID": 8, "action": "keyTap", "keyTapString": "enter"}
{"actionSequenceID": 9, "action": "dragSmooth", "coordinates": {"x": 555, "y": 777}}
{"actionSequenceID": 10, "action": "scrollSmooth", "coordinates": {"x": 0, "y": -5}}   (negative y scrolls down)
{"actionSequenceID": 11, "action": "keyDown", "keyString": "ctrl"}
{"actionSequenceID": 12, "action": "keyUp", "keyString": "ctrl"}
{"actionSequenceID": 13, "action": "repeat", "actionsRange": [4, 8], "repeatTimes": 3}   (only actions issued before it)
{"actionSequenceID": 14, "action": "stateUpdate"}   (stop here and look at the screen again)
{"actionSequenceID": 15, "action": "stopIteration"}
Return only the JSON array, without comments."""

VERIFY_SYSTEM = (
    "You are a helpful assistant. Output only valid JSON with this structure: "
    '{"isGoalAchieved": boolean, "description": string, "newPrompt": string}. If the goal is not '
    "achieved yet, 'newPrompt' must contain only primitive instructions for the next step. "
    "'description' must briefly explain the decision based only on the input data. OCR data, OCR delta "
    "and the OCR delta summary are the strongest evidence of whether the goal was accomplished."
)

SUMMARIZE_SYSTEM = (
    "You are a helpful assistant. Describe in a few plain sentences what changed on the screen, "
    "based on the OCR delta (added, removed and moved text) provided by the user."
)


def _actions_prompt(ctx: DecisionContext) -> str:
    parts = [
        f"Current task: {ctx.goal}",
        f"Iteration: {ctx.iteration}",
        f"Bounding boxes: {ctx.boxes_json}",
        f"OCR results: {ctx.ocr_json}",
        f"OCR delta from previous iteration: {ctx.ocr_delta_json or 'none'}",
        f"OCR delta summary: {ctx.ocr_delta_summary or 'none'}",
        f"Top colors on screen: {ctx.colors_json}",
        f"OCR-detected windows: {ctx.windows_json}",
        f"Previous cursor position: {DecisionContext.cursor_json(ctx.previous_cursor)}",
        f"Current cursor position: {DecisionContext.cursor_json(ctx.cursor)}",
        f"Previously executed actions: {ctx.previous_actions_json}",
    ]
    if ctx.prompt_log:
        parts.append("Hints from previous verifications: " + " | ".join(ctx.prompt_log))
    parts.append(ACTIONS_REFERENCE)
    return "\n".join(parts)


def _verify_prompt(ctx: DecisionContext) -> str:
    return "\n".join([
        f"Goal: {ctx.goal}",
        f"Iteration: {ctx.iteration}",
        f"Bounding boxes: {ctx.boxes_json}",
        f"OCR results: {ctx.ocr_json}",
        f"OCR delta: {ctx.ocr_delta_json or 'none'}",
        f"OCR delta summary: {ctx.ocr_delta_summary or 'none'}",
        f"Executed actions: {ctx.previous_actions_json}",
        f"OCR-detected windows: {ctx.windows_json}",
        f"Cursor position before actions: {DecisionContext.cursor_json(ctx.previous_cursor)}",
        f"Current cursor position: {DecisionContext.cursor_json(ctx.cursor)}",
        f"OCR text near the cursor: {ctx.ocr_near_cursor_json or '[]'}",
        f"Colors before actions: {ctx.colors_before_json or '[]'}",
        f"Colors now: {ctx.colors_json}",
    ])


class OpenAIDecisionService:
    """通过 openai.AsyncOpenAI 调用决策模型"""

    def __init__(
        self,
        client=None,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        tracker: Optional[TokenTracker] = None,
    ):
        if client is None:
            from openai import AsyncOpenAI  # noqa: delay import

            client = AsyncOpenAI(
                api_key=settings.llm_api_key or None,
                base_url=settings.llm_base_url,
                timeout=settings.llm_timeout,
            )
        self.client = client
        self.model = model or settings.llm_model
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self.tracker = tracker or TokenTracker()

    async def _chat(self, system: str, user: str, *, label: str, json_mode: bool = False) -> str:
        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                **kwargs,
            )
        except Exception as e:
            log.error("决策服务请求失败 [{}]: {}", label, e)
            raise TransportError(f"{label}: {e}") from e

        usage = getattr(response, "usage", None)
        if usage is not None and getattr(usage, "total_tokens", None):
            self.tracker.add(int(usage.total_tokens), label)

        if not response.choices:
            return ""
        content = response.choices[0].message.content or ""
        log.debug("决策服务响应 [{}]: {}", label, content[:500])
        return content

    async def decompose(self, goal: str) -> List[SubTask]:
        text = await self._chat(DECOMPOSE_SYSTEM, DECOMPOSE_USER.format(goal=goal), label="decompose")
        return subtasks_or_default(text, goal)

    async def next_actions(self, context: DecisionContext) -> List[ActionSpec]:
        text = await self._chat(ACTIONS_SYSTEM, _actions_prompt(context), label="next_actions")
        return actions_or_default(text)

    async def verify(self, context: DecisionContext) -> Verdict:
        text = await self._chat(VERIFY_SYSTEM, _verify_prompt(context), label="verify", json_mode=True)
        return verdict_or_default(text)

    async def summarize_delta(self, delta_json: str) -> str:
        try:
            json.loads(delta_json)
        except (TypeError, json.JSONDecodeError):
            return ""
        return (await self._chat(SUMMARIZE_SYSTEM, delta_json, label="summarize_delta")).strip()
