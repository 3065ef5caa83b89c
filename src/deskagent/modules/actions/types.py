"""
动作定义

决策服务返回的动作使用 camelCase 字段名（actionSequenceID、inputString 等），
这里统一解析为 ActionSpec。未知的动作类型保留原始字符串，执行时忽略。
"""
from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ActionKind(str, Enum):
    """动作类型"""
    MOUSE_MOVE = "mouseMove"
    MOUSE_MOVE_RELATIVE = "mouseMoveRelative"
    MOUSE_CLICK_LEFT = "mouseClickLeft"
    MOUSE_CLICK_LEFT_DOUBLE = "mouseClickLeftDouble"
    MOUSE_CLICK_RIGHT = "mouseClickRight"
    NOP = "nop"
    STATE_UPDATE = "stateUpdate"
    STOP_ITERATION = "stopIteration"
    PRINT_STRING = "printString"
    KEY_TAP = "keyTap"
    DRAG_SMOOTH = "dragSmooth"
    KEY_DOWN = "keyDown"
    KEY_UP = "keyUp"
    SCROLL_SMOOTH = "scrollSmooth"
    REPEAT = "repeat"


# 终止当前批次剩余动作的类型
HALTING_KINDS = frozenset({ActionKind.STOP_ITERATION, ActionKind.STATE_UPDATE})
# repeat 回放时跳过的控制类动作
CONTROL_KINDS = frozenset({ActionKind.REPEAT, ActionKind.STOP_ITERATION, ActionKind.STATE_UPDATE})


class Coordinates(BaseModel):
    x: int = 0
    y: int = 0


class ActionSpec(BaseModel):
    """单个待执行动作"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sequence_id: int = Field(default=0, alias="actionSequenceID")
    kind: str = Field(default=ActionKind.NOP.value, alias="action")
    coordinates: Coordinates = Field(default_factory=Coordinates)
    duration: float = 0
    text: str = Field(default="", alias="inputString")
    key_name: str = Field(default="", alias="keyTapString")
    range: Optional[Tuple[int, int]] = Field(default=None, alias="actionsRange")
    repeat_count: int = Field(default=0, alias="repeatTimes")
    description: str = ""

    @model_validator(mode="before")
    @classmethod
    def _merge_key_fields(cls, data: Any) -> Any:
        # keyDown/keyUp 使用 keyString，keyTap 使用 keyTapString
        if isinstance(data, dict) and not data.get("keyTapString") and data.get("keyString"):
            data = dict(data)
            data["keyTapString"] = data["keyString"]
        return data

    @field_validator("coordinates", mode="before")
    @classmethod
    def _coordinates_default(cls, v: Any) -> Any:
        return v if v is not None else {}

    @field_validator("text", "key_name", "description", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("duration", "repeat_count", mode="before")
    @classmethod
    def _none_to_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("range", mode="before")
    @classmethod
    def _range_pair(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)) and len(v) == 2:
            return v
        return None

    @property
    def action_kind(self) -> Optional[ActionKind]:
        """已知类型返回 ActionKind，未知类型返回 None"""
        try:
            return ActionKind(self.kind)
        except ValueError:
            return None

    def to_wire(self) -> dict:
        data = self.model_dump(by_alias=True)
        data["keyString"] = self.key_name
        return data


def parse_actions(items: List[Any]) -> List[ActionSpec]:
    """解析动作列表并按 sequence_id 升序稳定排序"""
    actions = [item if isinstance(item, ActionSpec) else ActionSpec.model_validate(item) for item in items]
    return sorted(actions, key=lambda a: a.sequence_id)


def nop_action(description: str = "") -> ActionSpec:
    return ActionSpec(sequence_id=1, kind=ActionKind.NOP.value, description=description)


__all__ = [
    "ActionKind",
    "HALTING_KINDS",
    "CONTROL_KINDS",
    "Coordinates",
    "ActionSpec",
    "parse_actions",
    "nop_action",
]
