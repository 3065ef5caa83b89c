"""决策服务接口与数据结构。"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple

from ..actions.types import ActionSpec


@dataclass
class SubTask:
    """目标拆分出的子任务"""
    id: int
    description: str

    def to_dict(self) -> dict:
        return {"id": self.id, "description": self.description}


@dataclass
class Verdict:
    """目标验证结果"""
    achieved: bool = False
    description: str = ""
    next_prompt: str = ""


@dataclass
class DecisionContext:
    """一次决策请求携带的全部感知信息（均已序列化为 JSON 字符串）"""
    goal: str
    iteration: int
    boxes_json: str = "[]"
    ocr_json: str = "[]"
    ocr_delta_json: str = ""
    ocr_delta_summary: str = ""
    colors_json: str = "[]"
    colors_before_json: str = ""
    windows_json: str = "[]"
    cursor: Tuple[int, int] = (0, 0)
    previous_cursor: Optional[Tuple[int, int]] = None
    previous_actions_json: str = "[]"
    ocr_near_cursor_json: str = ""
    prompt_log: List[str] = field(default_factory=list)

    @staticmethod
    def cursor_json(pos: Optional[Tuple[int, int]]) -> str:
        if pos is None:
            return "null"
        return f'{{"x": {pos[0]}, "y": {pos[1]}}}'


class DecisionService(Protocol):
    async def decompose(self, goal: str) -> List[SubTask]:
        ...

    async def next_actions(self, context: DecisionContext) -> List[ActionSpec]:
        ...

    async def verify(self, context: DecisionContext) -> Verdict:
        ...

    async def summarize_delta(self, delta_json: str) -> str:
        ...


__all__ = [
    "SubTask",
    "Verdict",
    "DecisionContext",
    "DecisionService",
]
