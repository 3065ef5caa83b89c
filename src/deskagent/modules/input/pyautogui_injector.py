"""
基于 pyautogui 的输入注入实现
"""
from __future__ import annotations

from typing import Tuple

from ...core.logger import logger

log = logger.bind(module="PyAutoGuiInjector")


class PyAutoGuiInjector:
    """pyautogui 鼠标键盘注入"""

    # 常用按键别名
    KEY_ALIASES = {
        "return": "enter",
        "esc": "escape",
        "windows": "win",
        "cmd": "command",
        "control": "ctrl",
        "super": "win",
    }

    def __init__(self, move_duration: float = 0.2, drag_duration: float = 0.5):
        import pyautogui  # noqa: delay import

        # 由任务取消机制负责安全停止
        pyautogui.FAILSAFE = False
        pyautogui.PAUSE = 0.05
        self._gui = pyautogui
        self.move_duration = move_duration
        self.drag_duration = drag_duration

    def _key(self, key: str) -> str:
        k = key.strip().lower()
        return self.KEY_ALIASES.get(k, k)

    def position(self) -> Tuple[int, int]:
        x, y = self._gui.position()
        return int(x), int(y)

    def move(self, x: int, y: int) -> None:
        self._gui.moveTo(x, y, duration=self.move_duration)

    def move_relative(self, dx: int, dy: int) -> None:
        x, y = self.position()
        self.move(x + dx, y + dy)

    def click(self, button: str = "left", double: bool = False) -> None:
        self._gui.click(button=button, clicks=2 if double else 1)

    def type_text(self, text: str, interval: float = 0.1) -> None:
        self._gui.write(text, interval=interval)

    def key_tap(self, key: str) -> None:
        # "ctrl+c" 形式按组合键处理
        parts = [self._key(p) for p in key.split("+") if p.strip()]
        if len(parts) > 1:
            self._gui.hotkey(*parts)
        elif parts:
            self._gui.press(parts[0])

    def key_down(self, key: str) -> None:
        self._gui.keyDown(self._key(key))

    def key_up(self, key: str) -> None:
        self._gui.keyUp(self._key(key))

    def drag_to(self, x: int, y: int) -> None:
        self._gui.dragTo(x, y, duration=self.drag_duration, button="left")

    def scroll(self, dx: int, dy: int) -> None:
        if dy:
            self._gui.scroll(int(dy))
        if dx:
            self._gui.hscroll(int(dx))
        log.debug("滚动: dx={} dy={}", dx, dy)
