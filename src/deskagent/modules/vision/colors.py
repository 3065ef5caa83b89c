"""
Dominant color extraction.

Pixels are grouped by exact RGB value (alpha ignored) and ranked by count.
Equal counts are ordered by the packed color value ascending so the result
is deterministic for a given image.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .utils import Color, ImageLike, load_image, pack_rgb, to_rgb, unpack_rgb


@dataclass
class ColorCount:
    """单个颜色的统计结果"""
    color: Color
    count: int
    percentage: float

    @property
    def hex(self) -> str:
        r, g, b = self.color
        return f"#{r:02X}{g:02X}{b:02X}"

    def to_dict(self) -> dict:
        return {"color": self.hex, "percentage": f"{self.percentage:.1f}%"}


def dominant_colors(image: ImageLike, k: Optional[int] = 10) -> List[ColorCount]:
    """Return the k most frequent colors of the image.

    Args:
        image: BGR(A) or grayscale image
        k: number of colors to keep; None keeps every distinct color

    Returns:
        List[ColorCount] ordered by count desc, then packed color asc.
        Empty for an empty image.
    """
    img = load_image(image)
    h, w = img.shape[:2]
    total = h * w
    if total == 0:
        return []

    packed = pack_rgb(to_rgb(img)).ravel()
    values, counts = np.unique(packed, return_counts=True)
    # np.unique sorts values ascending; a stable sort on -count keeps that order for ties
    order = np.argsort(-counts, kind="stable")
    if k is not None:
        order = order[:max(0, k)]

    return [
        ColorCount(
            color=unpack_rgb(values[i]),
            count=int(counts[i]),
            percentage=float(counts[i]) * 100.0 / total,
        )
        for i in order
    ]


def all_colors_ranked(image: ImageLike) -> List[ColorCount]:
    """Every distinct color of the image in dominant order."""
    return dominant_colors(image, None)


def colors_to_json(colors: List[ColorCount]) -> str:
    return json.dumps([c.to_dict() for c in colors])


__all__ = [
    "ColorCount",
    "dominant_colors",
    "all_colors_ranked",
    "colors_to_json",
]
