"""
输入注入接口

鼠标键盘原语均为同步阻塞调用，由 ActionExecutor 放到 I/O 线程池执行。
"""
from __future__ import annotations

from typing import Protocol, Tuple


class CursorProvider(Protocol):
    def position(self) -> Tuple[int, int]:
        ...


class InputInjector(CursorProvider, Protocol):
    def move(self, x: int, y: int) -> None:
        ...

    def move_relative(self, dx: int, dy: int) -> None:
        ...

    def click(self, button: str = "left", double: bool = False) -> None:
        ...

    def type_text(self, text: str, interval: float = 0.1) -> None:
        ...

    def key_tap(self, key: str) -> None:
        ...

    def key_down(self, key: str) -> None:
        ...

    def key_up(self, key: str) -> None:
        ...

    def drag_to(self, x: int, y: int) -> None:
        ...

    def scroll(self, dx: int, dy: int) -> None:
        ...
