"""
常量和枚举定义
"""
from enum import Enum


class TaskStatus(str, Enum):
    """任务状态"""
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELED = "canceled"
    BROKEN = "broken"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    TaskStatus.COMPLETED,
    TaskStatus.CANCELED,
    TaskStatus.BROKEN,
})


class SubtaskOutcome(str, Enum):
    """子任务结束方式"""
    ACHIEVED = "achieved"
    EXHAUSTED = "exhausted"  # 达到迭代上限仍未验证通过


class ExhaustedPolicy(str, Enum):
    """迭代耗尽后的处理策略"""
    CONTINUE = "continue"
    FAIL = "fail"


class EventType(str, Enum):
    """广播事件类型"""
    TASK = "task"
    SUBTASK = "subtask"
    SUBTASK_EXHAUSTED = "subtask_exhausted"
    ACTION = "action"
    TOKENS = "tokens"
    LOG = "log"


# 用户辅助消息注入到子任务描述时使用的前缀
USER_ASSIST_PREFIX = "\n\nHELPER MESSAGE FROM THE USER: "

# 任务状态对外展示的消息
MSG_TASK_CANCELED = "Task canceled by user"
MSG_TASK_COMPLETED = "Task completed successfully"
MSG_CAPTURE_FAILED = "Failed to capture screenshot"
MSG_DECISION_FAILED = "Failed to communicate with decision service"
MSG_ITERATIONS_EXHAUSTED = "Subtask did not reach its goal within the iteration limit"
