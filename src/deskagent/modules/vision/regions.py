"""
Region bounding-box detection.

For each candidate color an exact mask and a loose mask (per-channel drift)
are labeled. Components from both masks are pooled, deduplicated, filtered by
purity against the exact mask and by minimum size, and turned into boxes with
sequential IDs.

``find_bounding_boxes`` runs two passes over the grayscale frame:

1. the 40 most frequent gray levels, minimum height 6 and width 9;
2. the frame binarized at 98, all levels, minimum height and width 15.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple, Union

import numpy as np
from loguru import logger

from .colors import ColorCount, all_colors_ranked, dominant_colors
from .components import Component, label_components
from .utils import Color, ImageLike, binarize, load_image, to_gray, to_rgb

log = logger.bind(module="Regions")

DEFAULT_LOOSE_DRIFT = 90
DEFAULT_MIN_PURITY = 80.0

PASS1_TOP_COLORS = 40
PASS1_MIN_HEIGHT = 6
PASS1_MIN_WIDTH = 9
PASS2_THRESHOLD = 98
PASS2_MIN_HEIGHT = 15
PASS2_MIN_WIDTH = 15


@dataclass
class BoundingBox:
    """连通域外接框（闭区间像素坐标）"""
    id: int
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
        return {
            "id": self.id,
            "x": self.x1,
            "y": self.y1,
            "x2": self.x2,
            "y2": self.y2,
            "width": self.width,
            "height": self.height,
        }


def create_mask(image: ImageLike, color: Color, drift: int) -> np.ndarray:
    """Boolean mask of pixels whose every channel lies in [c - drift, c + drift].

    The range is clamped to [0, 255]; ``drift=0`` gives an exact-match mask.
    """
    rgb = to_rgb(load_image(image)).astype(np.int16)
    target = np.array(color[:3], dtype=np.int16)
    lo = np.clip(target - drift, 0, 255)
    hi = np.clip(target + drift, 0, 255)
    return np.all((rgb >= lo) & (rgb <= hi), axis=2)


def find_bounding_box(component: Component) -> Tuple[int, int, int, int]:
    """Return (x1, y1, x2, y2) enclosing every pixel of the component."""
    if not component:
        raise ValueError("component is empty")
    xs = [p[0] for p in component]
    ys = [p[1] for p in component]
    return min(xs), min(ys), max(xs), max(ys)


def calculate_purity(component: Component, exact_mask: np.ndarray) -> float:
    """Percentage of component pixels that are true in ``exact_mask``."""
    if not component:
        return 0.0
    hits = sum(1 for x, y in component if exact_mask[y, x])
    return hits * 100.0 / len(component)


def _as_color(c: Union[Color, ColorCount]) -> Color:
    if isinstance(c, ColorCount):
        return c.color
    return tuple(int(v) for v in c[:3])  # type: ignore[return-value]


def process_dominant_colors(
    image: ImageLike,
    colors: Iterable[Union[Color, ColorCount]],
    start_id: int,
    min_height: int,
    min_width: int,
    *,
    loose_drift: int = DEFAULT_LOOSE_DRIFT,
    min_purity: float = DEFAULT_MIN_PURITY,
) -> Tuple[List[BoundingBox], int]:
    """Detect boxes for each candidate color.

    Args:
        image: BGR(A) or grayscale image
        colors: candidate colors (RGB tuples or ColorCount)
        start_id: first ID to assign
        min_height, min_width: boxes with height/width below these are dropped
        loose_drift: per-channel drift of the loose mask
        min_purity: minimum percentage of exact-color pixels in a component

    Returns:
        (boxes, next_id)
    """
    img = load_image(image)
    next_id = start_id
    boxes: List[BoundingBox] = []

    for c in colors:
        color = _as_color(c)
        exact = create_mask(img, color, 0)
        if not exact.any():
            continue
        loose = create_mask(img, color, loose_drift)

        seen = set()
        for comp in label_components(exact, exact) + label_components(loose, exact):
            key = (comp.seed, comp.size)
            if key in seen:
                continue
            seen.add(key)
            if comp.purity < min_purity:
                continue
            if comp.y2 - comp.y1 < min_height or comp.x2 - comp.x1 < min_width:
                continue
            boxes.append(BoundingBox(next_id, comp.x1, comp.y1, comp.x2, comp.y2))
            next_id += 1

    return boxes, next_id


def find_bounding_boxes(image: ImageLike) -> List[BoundingBox]:
    """Two-pass region detection over the grayscale frame. IDs start at 1."""
    gray = to_gray(load_image(image))

    top = dominant_colors(gray, PASS1_TOP_COLORS)
    boxes, next_id = process_dominant_colors(
        gray, top, 1, PASS1_MIN_HEIGHT, PASS1_MIN_WIDTH,
    )

    binary = binarize(gray, PASS2_THRESHOLD)
    more, next_id = process_dominant_colors(
        binary, all_colors_ranked(binary), next_id, PASS2_MIN_HEIGHT, PASS2_MIN_WIDTH,
    )
    boxes.extend(more)

    log.debug("区域检测完成: pass1={} pass2={}", len(boxes) - len(more), len(more))
    return boxes


def boxes_to_json(boxes: Sequence[BoundingBox]) -> str:
    return json.dumps([b.to_dict() for b in boxes])


__all__ = [
    "BoundingBox",
    "create_mask",
    "find_bounding_box",
    "calculate_purity",
    "process_dominant_colors",
    "find_bounding_boxes",
    "boxes_to_json",
]
