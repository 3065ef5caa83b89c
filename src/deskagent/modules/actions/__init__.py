from .types import ActionKind, Coordinates, ActionSpec, parse_actions, nop_action
from .executor import ActionExecutor, BatchResult

__all__ = [
    "ActionKind",
    "Coordinates",
    "ActionSpec",
    "parse_actions",
    "nop_action",
    "ActionExecutor",
    "BatchResult",
]
