from .types import Task, PromptEntry, PromptLog, UserAssistMessage, CancellationToken, new_task_id
from .perception import Snapshot, Perceiver
from .runner import RunOutcome, TaskRunner
from .orchestrator import TaskOrchestrator

__all__ = [
    "Task",
    "PromptEntry",
    "PromptLog",
    "UserAssistMessage",
    "CancellationToken",
    "new_task_id",
    "Snapshot",
    "Perceiver",
    "RunOutcome",
    "TaskRunner",
    "TaskOrchestrator",
]
