from .base import Frame, ScreenCapture, BaseCapture
from .mss_capture import MssCapture

__all__ = [
    "Frame",
    "ScreenCapture",
    "BaseCapture",
    "MssCapture",
]
