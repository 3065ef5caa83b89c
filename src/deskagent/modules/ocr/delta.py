"""
OCR 快照合并与差异计算。

- ``merge_close_text``: 先把横向相近的片段合并成行，再按 y_min 排序后把
  纵向相近的行合并成块。分组总是和组内第一个元素比较，文本以空格连接，
  外接框取并集，置信度沿用第一个元素。
- ``produce_delta``: 以文本内容为键比较两次快照。

已知限制：以文本为键意味着同一快照中重复的字符串会合并为一个（后出现的
覆盖先出现的）；文本内容和位置同时变化的区域会表现为一次删除加一次新增。
"""
from __future__ import annotations

import json
from typing import Dict, List, Sequence

from loguru import logger

from .types import Box, OcrDelta, OcrRegion

log = logger.bind(module="OcrDelta")

# 任一坐标移动超过该像素数视为位置变化
MOVE_TOLERANCE = 5
# 差异结果中统一使用的置信度
DELTA_CONFIDENCE = 99.0


def _merge_group(group: List[OcrRegion]) -> OcrRegion:
    text = " ".join(r.text for r in group)
    box = group[0].box
    for r in group[1:]:
        box = box.union(r.box)
    return OcrRegion(text=text, box=box, confidence=group[0].confidence)


def _group_by(regions: List[OcrRegion], close) -> List[OcrRegion]:
    used = [False] * len(regions)
    merged: List[OcrRegion] = []
    for i, seed in enumerate(regions):
        if used[i]:
            continue
        used[i] = True
        group = [seed]
        for j in range(i + 1, len(regions)):
            if not used[j] and close(seed.box, regions[j].box):
                group.append(regions[j])
                used[j] = True
        merged.append(_merge_group(group))
    return merged


def merge_close_text(regions: Sequence[OcrRegion], h_prox: int, v_prox: int) -> List[OcrRegion]:
    """合并相邻的 OCR 片段，返回新的列表（不修改输入）。"""

    def close_h(a: Box, b: Box) -> bool:
        return abs(a.x_min - b.x_min) <= h_prox or abs(a.x_max - b.x_max) <= h_prox

    def close_v(a: Box, b: Box) -> bool:
        return abs(a.y_min - b.y_min) <= v_prox or abs(a.y_max - b.y_max) <= v_prox

    lines = _group_by(list(regions), close_h)
    lines.sort(key=lambda r: r.box.y_min)
    return _group_by(lines, close_v)


def _moved(old: Box, new: Box) -> bool:
    return (
        abs(old.x_min - new.x_min) > MOVE_TOLERANCE
        or abs(old.y_min - new.y_min) > MOVE_TOLERANCE
        or abs(old.x_max - new.x_max) > MOVE_TOLERANCE
        or abs(old.y_max - new.y_max) > MOVE_TOLERANCE
    )


def _index_by_text(regions: Sequence[OcrRegion]) -> Dict[str, Box]:
    # dict 保留首次出现的顺序，值取最后一次出现
    index: Dict[str, Box] = {}
    for r in regions:
        index[r.text] = r.box
    return index


def produce_delta(old: Sequence[OcrRegion], new: Sequence[OcrRegion]) -> OcrDelta:
    """计算两次快照之间的新增、删除和移动。"""
    old_index = _index_by_text(old)
    new_index = _index_by_text(new)
    delta = OcrDelta()

    for text, box in old_index.items():
        new_box = new_index.get(text)
        if new_box is None:
            delta.removed.append(OcrRegion(text, box, DELTA_CONFIDENCE))
        elif _moved(box, new_box):
            delta.modified.append(OcrRegion(text, new_box, DELTA_CONFIDENCE))

    for text, box in new_index.items():
        if text not in old_index:
            delta.added.append(OcrRegion(text, box, DELTA_CONFIDENCE))

    return delta


def regions_to_json(regions: Sequence[OcrRegion]) -> str:
    return json.dumps([r.to_dict() for r in regions])


def regions_from_json(raw: str) -> List[OcrRegion]:
    return [OcrRegion.from_dict(item) for item in json.loads(raw)]


def delta_to_json(delta: OcrDelta) -> str:
    return json.dumps(delta.to_dict())


def compact_regions(
    regions: Sequence[OcrRegion],
    limit: int = 10000,
    h_prox: int = 20,
    v_prox: int = 40,
) -> List[OcrRegion]:
    """JSON 超过 limit 字符时合并相邻片段，以缩短发给决策服务的上下文。"""
    if len(regions_to_json(regions)) <= limit:
        return list(regions)
    merged = merge_close_text(regions, h_prox, v_prox)
    log.debug("OCR 结果过长，合并 {} -> {} 个区域", len(regions), len(merged))
    return merged


__all__ = [
    "MOVE_TOLERANCE",
    "DELTA_CONFIDENCE",
    "merge_close_text",
    "produce_delta",
    "regions_to_json",
    "regions_from_json",
    "delta_to_json",
    "compact_regions",
]
