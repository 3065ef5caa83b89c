"""OCR 识别结果数据结构。"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple


@dataclass(frozen=True)
class Box:
    """文本外接框（屏幕坐标）。"""

    x_min: int
    y_min: int
    x_max: int
    y_max: int

    @property
    def center(self) -> Tuple[int, int]:
        return ((self.x_min + self.x_max) // 2, (self.y_min + self.y_max) // 2)

    def union(self, other: "Box") -> "Box":
        """包含两个框的最小外接框。"""
        return Box(
            min(self.x_min, other.x_min),
            min(self.y_min, other.y_min),
            max(self.x_max, other.x_max),
            max(self.y_max, other.y_max),
        )

    def shifted(self, dx: int, dy: int) -> "Box":
        return Box(self.x_min + dx, self.y_min + dy, self.x_max + dx, self.y_max + dy)

    @classmethod
    def from_points(cls, points: Iterable[Sequence[float]]) -> "Box":
        """由四点多边形计算外接框。"""
        pts = list(points)
        xs = [int(p[0]) for p in pts]
        ys = [int(p[1]) for p in pts]
        return cls(min(xs), min(ys), max(xs), max(ys))

    def to_dict(self) -> dict:
        return {"xMin": self.x_min, "yMin": self.y_min, "xMax": self.x_max, "yMax": self.y_max}

    @classmethod
    def from_dict(cls, data: dict) -> "Box":
        return cls(int(data["xMin"]), int(data["yMin"]), int(data["xMax"]), int(data["yMax"]))


@dataclass(frozen=True)
class OcrRegion:
    """单个 OCR 识别结果，confidence 取值 0-100。"""

    text: str
    box: Box
    confidence: float = 0.0

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "confidence": round(float(self.confidence), 2),
            "bb": self.box.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OcrRegion":
        return cls(
            text=str(data["text"]),
            box=Box.from_dict(data["bb"]),
            confidence=float(data.get("confidence", 0.0)),
        )


@dataclass
class OcrDelta:
    """两次 OCR 快照之间的差异。"""

    added: List[OcrRegion] = field(default_factory=list)
    removed: List[OcrRegion] = field(default_factory=list)
    modified: List[OcrRegion] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)

    def to_dict(self) -> dict:
        return {
            "added": [r.to_dict() for r in self.added],
            "removed": [r.to_dict() for r in self.removed],
            "modified": [r.to_dict() for r in self.modified],
        }
