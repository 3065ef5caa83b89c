"""
决策服务响应解析

模型输出经常夹带 markdown 代码块或解释文字。解析顺序：

1. 整段文本直接按 JSON 解析；
2. ```json 代码块；
3. 文本中按出现顺序第一个括号配平且能被解析的对象或数组（跳过字符串内的括号）。

全部失败抛出 ParseError；上层把 ParseError 回退为安全默认值。
"""
from __future__ import annotations

import json
import re
from typing import Any, Iterator, List

from loguru import logger
from pydantic import ValidationError

from ...core.errors import ParseError
from ..actions.types import ActionSpec, nop_action, parse_actions
from .types import SubTask, Verdict

log = logger.bind(module="DecisionParsing")

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)


def _balanced_spans(text: str) -> Iterator[str]:
    """依次产出文本中每个括号配平的对象/数组片段（跳过字符串内的括号）"""
    for start, ch in enumerate(text):
        if ch not in "{[":
            continue
        stack = []
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            c = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif c == "\\":
                    escaped = True
                elif c == '"':
                    in_string = False
                continue
            if c == '"':
                in_string = True
            elif c in "{[":
                stack.append("}" if c == "{" else "]")
            elif c in "}]":
                if not stack or stack.pop() != c:
                    break
                if not stack:
                    yield text[start:i + 1]
                    break
        # 从下一个起始括号重新尝试


def extract_json(text: str) -> Any:
    """从模型输出中提取第一个合法的 JSON 值"""
    if text is None:
        raise ParseError("empty response")
    stripped = text.strip()
    if not stripped:
        raise ParseError("empty response", raw=text)

    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        pass

    for block in _FENCE_RE.findall(stripped):
        try:
            return json.loads(block.strip())
        except json.JSONDecodeError:
            continue

    last_error = None
    for candidate in _balanced_spans(stripped):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = e
    if last_error is not None:
        raise ParseError(f"invalid JSON: {last_error}", raw=text) from last_error
    raise ParseError("no balanced JSON value found", raw=text)


def _unwrap_list(data: Any, *keys: str) -> List[Any]:
    """JSON 模式下模型常把数组包在对象里，按候选键取出"""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys:
            value = data.get(key)
            if isinstance(value, list):
                return value
        return [data]
    raise ParseError(f"unexpected JSON type {type(data).__name__}")


def parse_subtasks(text: str) -> List[SubTask]:
    data = extract_json(text)
    items = _unwrap_list(data, "subtasks", "tasks", "steps")
    result: List[SubTask] = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict) or not str(item.get("description") or "").strip():
            continue
        try:
            sid = int(item.get("id", index))
        except (TypeError, ValueError):
            sid = index
        result.append(SubTask(sid, str(item["description"]).strip()))
    return result


def parse_action_list(text: str) -> List[ActionSpec]:
    data = extract_json(text)
    items = _unwrap_list(data, "actions", "commands")
    actions: List[ActionSpec] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            actions.append(ActionSpec.model_validate(item))
        except ValidationError as e:
            log.warning("丢弃无法解析的动作 {}: {}", item, e.errors()[:1])
    return parse_actions(actions)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def parse_verdict(text: str) -> Verdict:
    data = extract_json(text)
    if isinstance(data, list) and data and isinstance(data[0], dict):
        data = data[0]
    if not isinstance(data, dict):
        raise ParseError("verdict is not an object", raw=text)
    return Verdict(
        achieved=_as_bool(data.get("isGoalAchieved", False)),
        description=str(data.get("description") or ""),
        next_prompt=str(data.get("newPrompt") or ""),
    )


def subtasks_or_default(text: str, goal: str) -> List[SubTask]:
    """解析子任务，失败或为空时退回为单个子任务（整个目标）"""
    try:
        subtasks = parse_subtasks(text)
    except ParseError as e:
        log.warning("子任务解析失败，使用原始目标: {}", e)
        subtasks = []
    return subtasks or [SubTask(1, goal)]


def actions_or_default(text: str) -> List[ActionSpec]:
    """解析动作，失败或为空时返回单个 nop"""
    try:
        actions = parse_action_list(text)
    except ParseError as e:
        log.warning("动作解析失败，执行 nop: {}", e)
        actions = []
    return actions or [nop_action("no valid actions in decision response")]


def verdict_or_default(text: str) -> Verdict:
    """解析验证结果，失败时视为未达成"""
    try:
        return parse_verdict(text)
    except ParseError as e:
        log.warning("验证结果解析失败，视为未达成: {}", e)
        return Verdict(achieved=False, description="unparseable verdict")


__all__ = [
    "extract_json",
    "parse_subtasks",
    "parse_action_list",
    "parse_verdict",
    "subtasks_or_default",
    "actions_or_default",
    "verdict_or_default",
]
