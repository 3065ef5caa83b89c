from .base import CursorProvider, InputInjector
from .pyautogui_injector import PyAutoGuiInjector

__all__ = [
    "CursorProvider",
    "InputInjector",
    "PyAutoGuiInjector",
]
