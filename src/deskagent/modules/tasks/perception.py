"""
感知流水线：截屏 -> 主色 -> 灰度 -> OCR -> 窗口识别 -> 区域检测

CPU 密集的步骤放到计算线程池。OCR 和窗口识别是尽力而为的：失败时记录
日志并按空结果继续；截屏失败则抛出 CaptureError 终止任务。
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import List, Optional

from ...core.cancellation import CancellationToken
from ...core.config import settings
from ...core.errors import TaskCanceled
from ...core.logger import logger
from ...core.thread_pool import run_in_compute
from ..capture.base import Frame, ScreenCapture
from ..ocr.delta import compact_regions, regions_to_json
from ..ocr.engine import OcrEngine, async_recognize, async_recognize_near_cursor
from ..ocr.types import OcrRegion
from ..vision.colors import ColorCount, colors_to_json, dominant_colors
from ..vision.regions import BoundingBox, boxes_to_json, find_bounding_boxes
from ..vision.utils import to_gray
from ..vision.window_chrome import WindowDescriptor, detect_windows

log = logger.bind(module="Perceiver")


@dataclass
class Snapshot:
    """一次感知的结构化结果"""
    frame: Frame
    colors: List[ColorCount] = field(default_factory=list)
    ocr: List[OcrRegion] = field(default_factory=list)
    ocr_compact: List[OcrRegion] = field(default_factory=list)
    windows: List[WindowDescriptor] = field(default_factory=list)
    boxes: List[BoundingBox] = field(default_factory=list)

    @property
    def cursor(self):
        return self.frame.cursor

    def colors_json(self) -> str:
        return colors_to_json(self.colors)

    def ocr_json(self) -> str:
        return regions_to_json(self.ocr_compact)

    def windows_json(self) -> str:
        return json.dumps([w.to_dict() for w in self.windows])

    def boxes_json(self) -> str:
        return boxes_to_json(self.boxes)


class Perceiver:
    """把一帧截图转成决策服务可用的结构化事实"""

    def __init__(
        self,
        capture: ScreenCapture,
        ocr_engine: Optional[OcrEngine] = None,
        *,
        color_count: Optional[int] = None,
        detect_regions: bool = True,
    ):
        self.capture = capture
        self.ocr_engine = ocr_engine
        self.color_count = color_count or settings.dominant_color_count
        self.detect_regions = detect_regions

    async def perceive(self, token: CancellationToken) -> Snapshot:
        frame = await token.run(self.capture.capture())
        snap = Snapshot(frame=frame)

        snap.colors = await token.run(run_in_compute(dominant_colors, frame.image, self.color_count))
        gray = await token.run(run_in_compute(to_gray, frame.image))

        if self.ocr_engine is not None:
            snap.ocr = await token.run(async_recognize(self.ocr_engine, frame.image))

        if snap.ocr:
            try:
                snap.windows = await token.run(run_in_compute(detect_windows, gray, snap.ocr))
            except TaskCanceled:
                raise
            except Exception as e:
                log.warning("窗口识别失败，忽略: {}", e)

        snap.ocr_compact = compact_regions(
            snap.ocr,
            settings.ocr_merge_threshold,
            settings.ocr_merge_h_proximity,
            settings.ocr_merge_v_proximity,
        )

        if self.detect_regions:
            snap.boxes = await token.run(run_in_compute(find_bounding_boxes, frame.image))

        log.debug(
            "感知完成: colors={} ocr={} windows={} boxes={}",
            len(snap.colors), len(snap.ocr), len(snap.windows), len(snap.boxes),
        )
        return snap

    async def ocr_near_cursor(self, snap: Snapshot, token: CancellationToken) -> List[OcrRegion]:
        """光标所在横条的 OCR，验证阶段作为补充证据"""
        if self.ocr_engine is None:
            return []
        return await token.run(
            async_recognize_near_cursor(self.ocr_engine, snap.frame.image, snap.cursor[1])
        )


__all__ = [
    "Snapshot",
    "Perceiver",
]
