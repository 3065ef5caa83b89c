from .types import SubTask, Verdict, DecisionContext, DecisionService
from .parsing import (
    extract_json,
    parse_subtasks,
    parse_action_list,
    parse_verdict,
    subtasks_or_default,
    actions_or_default,
    verdict_or_default,
)
from .tokens import TokenTracker
from .openai_service import OpenAIDecisionService

__all__ = [
    "SubTask",
    "Verdict",
    "DecisionContext",
    "DecisionService",
    "extract_json",
    "parse_subtasks",
    "parse_action_list",
    "parse_verdict",
    "subtasks_or_default",
    "actions_or_default",
    "verdict_or_default",
    "TokenTracker",
    "OpenAIDecisionService",
]
