"""
Heuristic window title-bar recognizer.

Starting from the bounding box of a recognized title text, the detector
walks outwards over the grayscale frame:

1. sample the title-bar background around the text;
2. trace right across background columns until a solid border column;
3. verify a row of exactly four buttons left of that border;
4. extend the header to the left;
5. find the header top above the text;
6. follow the border color downward to find the window bottom.

Every phase raises ``WindowDetectionError`` with its phase name when the
expected structure is not there. Rectangles are half-open: ``x2``/``y2`` are
exclusive. Pixels outside the image read as black.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import numpy as np
from loguru import logger

from ...core.errors import DetectionMiss, WindowDetectionError
from .utils import BLACK, Color, color_distance, pixel_or_black

log = logger.bind(module="WindowChrome")

SIMILARITY_LIMIT = 32  # 8 位通道差值之和
BUTTON_COUNT = 4
BUTTON_MIN_WIDTH = 4
BUTTON_MAX_WIDTH = 30
BUTTON_MIN_GAP = 12
BUTTON_MAX_GAP = 40
BUTTON_INSET = 5
LEFT_EDGE_MAX_SKIP = 2
MAX_HEIGHT_SEARCH = 2000

# 从右到左
BUTTON_NAMES = ("close", "maximize", "minimize", "roll-up")


@dataclass(frozen=True)
class Rect:
    """半开矩形 [x1, x2) x [y1, y2)"""
    x1: int
    y1: int
    x2: int
    y2: int

    @property
    def width(self) -> int:
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        return self.y2 - self.y1

    def to_dict(self) -> dict:
        return {"x1": self.x1, "y1": self.y1, "x2": self.x2, "y2": self.y2}


@dataclass
class WindowButton:
    name: str
    bbox: Rect

    def to_dict(self) -> dict:
        return {"name": self.name, "bbox": self.bbox.to_dict()}


@dataclass
class WindowDescriptor:
    """识别出的窗口：外框、标题栏以及 4 个按钮（roll-up, minimize, maximize, close）"""
    title: str
    bbox: Rect
    header: Rect
    buttons: List[WindowButton] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "window": {
                "title": self.title,
                "bbox": self.bbox.to_dict(),
                "header": self.header.to_dict(),
                "buttons": [b.to_dict() for b in self.buttons],
            }
        }


@dataclass(frozen=True)
class ButtonEdge:
    right: int
    width: int

    @property
    def left(self) -> int:
        return self.right - self.width


def colors_similar(a: Color, b: Color) -> bool:
    return color_distance(a, b) < SIMILARITY_LIMIT


def _is_background(img: np.ndarray, x: int, y: int, bg: Color) -> bool:
    return colors_similar(pixel_or_black(img, x, y), bg)


def is_background_column(img: np.ndarray, x: int, y1: int, y2: int, bg: Color) -> bool:
    """Every pixel of column x over [y1, y2) is background-like."""
    return all(_is_background(img, x, y, bg) for y in range(y1, y2))


def is_border_column(img: np.ndarray, x: int, y1: int, y2: int, bg: Color) -> bool:
    """No pixel of column x over [y1, y2) is background-like."""
    return not any(_is_background(img, x, y, bg) for y in range(y1, y2))


def sample_background(img: np.ndarray, text: Rect) -> Color:
    """Most frequent color among the in-bounds samples around the text box.

    Ties go to the color sampled first.
    """
    h, w = img.shape[:2]
    points = [
        (text.x1 - 1, text.y1),
        (text.x2 + 1, text.y1),
        (text.x1, text.y1 - 1),
        (text.x1, text.y2 + 1),
    ]
    samples = [pixel_or_black(img, x, y) for x, y in points if 0 <= x < w and 0 <= y < h]
    if not samples:
        raise WindowDetectionError("background", "no sample point inside the image")

    counts = Counter(samples)
    best = max(counts.values())
    return next(c for c in samples if counts[c] == best)


def trace_right_edge(img: np.ndarray, text: Rect, bg: Color) -> Tuple[int, int]:
    """Walk right from the text until a column with no background pixel.

    Returns:
        (header_right, border_right)

    Raises:
        WindowDetectionError: when the image edge is reached first
    """
    w = img.shape[1]
    header_right = text.x2
    for x in range(text.x2, w):
        if is_border_column(img, x, text.y1, text.y2, bg):
            return header_right, x
        header_right = x
    raise WindowDetectionError("right_edge", "no border column right of the title")


def find_vertical_edge(img: np.ndarray, start_x: int, area: Rect, bg: Color) -> Optional[ButtonEdge]:
    """Scan left from start_x for the next button-like shape inside ``area``.

    The right edge is the first column holding a non-background pixel, the
    left edge the next fully background column after it. ``area.x2`` is
    treated as inclusive here, like the right-edge trace.
    """
    right = None
    x = start_x
    while area.x1 <= x <= area.x2:
        if not is_background_column(img, x, area.y1, area.y2, bg):
            right = x
            break
        x -= 1
    if right is None:
        return None

    x = right
    while area.x1 <= x <= area.x2:
        if is_background_column(img, x, area.y1, area.y2, bg):
            return ButtonEdge(right=right, width=right - x)
        x -= 1
    return None


def _edge_fits(edge: ButtonEdge, prev: Optional[ButtonEdge]) -> bool:
    if prev is not None:
        gap = prev.left - edge.right
        if gap < BUTTON_MIN_GAP or gap > BUTTON_MAX_GAP:
            return False
    return BUTTON_MIN_WIDTH <= edge.width <= BUTTON_MAX_WIDTH


def verify_button_pattern(
    img: np.ndarray,
    text: Rect,
    header_right: int,
    border_right: int,
    bg: Color,
) -> List[ButtonEdge]:
    """Find exactly four evenly spaced buttons left of the border.

    Returns:
        the button edges ordered right to left (close first)
    """
    area = Rect(text.x1, text.y1, header_right, text.y2)
    edges: List[ButtonEdge] = []
    current_x = border_right - 1
    prev: Optional[ButtonEdge] = None

    for _ in range(BUTTON_COUNT):
        edge = find_vertical_edge(img, current_x, area, bg)
        if edge is None or not _edge_fits(edge, prev):
            break
        edges.append(edge)
        prev = edge
        current_x = edge.left

    if len(edges) != BUTTON_COUNT:
        raise WindowDetectionError("buttons", f"found {len(edges)} buttons")

    # a fifth button-like shape between the title and the buttons
    extra = find_vertical_edge(img, current_x, area, bg)
    if extra is not None and extra.right >= text.x2 and _edge_fits(extra, prev):
        raise WindowDetectionError("buttons", "more than 4 buttons")

    return edges


def find_left_edge(img: np.ndarray, text: Rect, bg: Color) -> int:
    """Extend the header left of the text over background columns.

    A short run of non-background columns (at most LEFT_EDGE_MAX_SKIP wide,
    e.g. an icon outline) is stepped over when background resumes after it.
    """
    left = text.x1
    x = text.x1 - 1
    while x >= 0:
        if is_background_column(img, x, text.y1, text.y2, bg):
            left = x
            x -= 1
            continue
        resumed = None
        for nx in range(x - 1, max(-1, x - 1 - LEFT_EDGE_MAX_SKIP), -1):
            if is_background_column(img, nx, text.y1, text.y2, bg):
                resumed = nx
                break
        if resumed is None:
            break
        left = resumed
        x = resumed - 1
    return left


def find_header_top(img: np.ndarray, text: Rect, bg: Color) -> int:
    """First non-background row above the text at its horizontal midpoint."""
    mid_x = text.x1 + text.width // 2
    for y in range(text.y1 - 1, -1, -1):
        if not _is_background(img, mid_x, y, bg):
            return y
    return text.y1


def _border_color(img: np.ndarray, header: Rect, trace_x: int) -> Color:
    samples = []
    for y in range(header.y1, header.y2):
        for x in (trace_x - 1, trace_x - 2):
            if x >= 0:
                samples.append(pixel_or_black(img, x, y))
    if not samples:
        return BLACK
    counts = Counter(samples)
    best = max(counts.values())
    return next(c for c in samples if counts[c] == best)


def detect_window_height(img: np.ndarray, header: Rect, trace_x: int) -> int:
    """Follow the border color down from the header bottom.

    Returns the first row where column ``trace_x`` stops matching, or the
    last row checked when the search runs out.
    """
    h, w = img.shape[:2]
    border = _border_color(img, header, trace_x)
    start_y = header.y2
    bottom = start_y
    for y in range(start_y, min(h, start_y + MAX_HEIGHT_SEARCH)):
        if 0 <= trace_x < w and not colors_similar(pixel_or_black(img, trace_x, y), border):
            return y
        bottom = y
    return bottom


def _button_rects(edges: List[ButtonEdge], header: Rect) -> List[WindowButton]:
    inset = min(BUTTON_INSET, max(0, (header.height - 1) // 2))
    buttons = [
        WindowButton(name, Rect(edge.left, header.y1 + inset, edge.right, header.y2 - inset))
        for name, edge in zip(BUTTON_NAMES, edges)
    ]
    buttons.reverse()
    return buttons


def detect_window(gray: np.ndarray, text: Rect, title: str) -> WindowDescriptor:
    """Recognize the window whose title text occupies ``text``.

    Raises:
        WindowDetectionError: when any phase does not find what it expects
    """
    bg = sample_background(gray, text)
    header_right, border_right = trace_right_edge(gray, text, bg)
    edges = verify_button_pattern(gray, text, header_right, border_right, bg)

    left = find_left_edge(gray, text, bg)
    top = find_header_top(gray, text, bg)
    header = Rect(left, top, header_right, text.y2 + (text.y1 - top))

    bottom = detect_window_height(gray, header, border_right - 1)
    descriptor = WindowDescriptor(
        title=title,
        bbox=Rect(header.x1, header.y1, border_right, bottom),
        header=header,
        buttons=_button_rects(edges, header),
    )
    log.debug("识别到窗口: title={} bbox={}", title, descriptor.bbox)
    return descriptor


def detect_windows(gray: np.ndarray, regions: Iterable) -> List[WindowDescriptor]:
    """Try every OCR region as a title candidate; misses are skipped."""
    found: List[WindowDescriptor] = []
    for region in regions:
        box = region.box
        text = Rect(box.x_min, box.y_min, box.x_max, box.y_max)
        try:
            found.append(detect_window(gray, text, region.text))
        except DetectionMiss as exc:
            log.debug("窗口识别跳过 '{}': {}", region.text, exc)
    return found


__all__ = [
    "Rect",
    "WindowButton",
    "WindowDescriptor",
    "ButtonEdge",
    "colors_similar",
    "sample_background",
    "trace_right_edge",
    "find_vertical_edge",
    "verify_button_pattern",
    "find_left_edge",
    "find_header_top",
    "detect_window_height",
    "detect_window",
    "detect_windows",
]
