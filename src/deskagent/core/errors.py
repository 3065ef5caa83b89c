"""
异常层级

任务最终只对外暴露状态和一条可读消息，异常细节写入日志。
"""
from __future__ import annotations


class DeskAgentError(Exception):
    """所有项目异常的基类"""


class InfrastructureError(DeskAgentError):
    """基础设施故障（截屏等），任务直接标记为 broken，不重试"""


class CaptureError(InfrastructureError):
    """截屏失败"""


class TransportError(DeskAgentError):
    """决策服务通信失败"""


class ParseError(DeskAgentError):
    """决策服务返回内容无法解析

    只在解析层内部抛出，决策层总会将其回退为安全默认值。
    """

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class DetectionMiss(DeskAgentError):
    """感知层未能识别某个候选目标，该候选被忽略"""


class WindowDetectionError(DetectionMiss):
    """窗口标题栏识别失败

    phase 标明失败发生在哪一步（background/right_edge/buttons）。
    """

    def __init__(self, phase: str, reason: str):
        super().__init__(f"{phase}: {reason}")
        self.phase = phase
        self.reason = reason


class TaskCanceled(DeskAgentError):
    """任务已被取消，由取消检查点抛出"""


__all__ = [
    "DeskAgentError",
    "InfrastructureError",
    "CaptureError",
    "TransportError",
    "ParseError",
    "DetectionMiss",
    "WindowDetectionError",
    "TaskCanceled",
]
