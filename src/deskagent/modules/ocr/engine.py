"""PaddleOCR 引擎管理（懒加载 + 线程安全）与识别包装。"""
from __future__ import annotations

import functools
import threading
from typing import List, Optional, Protocol, Tuple

import numpy as np

from ...core.config import settings
from ...core.logger import logger
from ...core.thread_pool import run_in_compute
from .types import Box, OcrRegion

log = logger.bind(module="OcrEngine")


class OcrEngine(Protocol):
    """OCR 引擎接口：输入 BGR 图像，返回识别区域列表。"""

    def recognize(self, image: np.ndarray) -> List[OcrRegion]:
        ...


class PaddleOcrEngine:
    """PaddleOCR 适配器。

    首次识别时初始化引擎（约 3-5 秒），后续调用复用同一实例。
    PaddleOCR predict() 非线程安全，推理时持有实例锁串行化。
    """

    def __init__(self, lang: Optional[str] = None, min_confidence: Optional[float] = None):
        self._lang = lang or settings.paddle_ocr_lang
        self._min_confidence = settings.ocr_min_confidence if min_confidence is None else min_confidence
        self._engine = None
        self._init_lock = threading.Lock()
        self._infer_lock = threading.Lock()

    def _get_engine(self):
        if self._engine is not None:
            return self._engine

        with self._init_lock:
            if self._engine is not None:
                return self._engine

            log.info("正在初始化 PaddleOCR (lang={})...", self._lang)
            try:
                from paddleocr import PaddleOCR  # noqa: delay import
            except ImportError as e:
                log.error(f"PaddleOCR 导入失败，请检查依赖: {e}")
                raise

            self._engine = PaddleOCR(
                use_textline_orientation=False,
                use_doc_orientation_classify=False,
                use_doc_unwarping=False,
                lang=self._lang,
                device="cpu",
            )
            log.info("PaddleOCR 初始化完成")
            return self._engine

    def recognize(self, image: np.ndarray) -> List[OcrRegion]:
        engine = self._get_engine()
        if image.ndim == 2:
            import cv2  # noqa: delay import
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)

        # PaddleOCR 3.x: predict() 接受 BGR ndarray，返回 OCRResult 列表
        with self._infer_lock:
            results = engine.predict(image)

        regions: List[OcrRegion] = []
        if results:
            result = results[0]
            for text, score, poly in zip(result["rec_texts"], result["rec_scores"], result["rec_polys"]):
                confidence = float(score) * 100.0
                if not text or confidence < self._min_confidence:
                    continue
                regions.append(OcrRegion(text=text, box=Box.from_points(poly), confidence=confidence))
        return regions


def safe_recognize(engine: OcrEngine, image: np.ndarray) -> List[OcrRegion]:
    """识别失败时记录日志并返回空列表，OCR 永远不会中断任务。"""
    try:
        return list(engine.recognize(image))
    except Exception as e:
        log.warning("OCR 识别失败，按无文本处理: {}", e)
        return []


def cursor_band(image: np.ndarray, cursor_y: int, half_height: int) -> Tuple[np.ndarray, int]:
    """截取光标所在行上下 half_height 像素的横条，返回 (band, y_offset)。"""
    h = image.shape[0]
    top = max(0, cursor_y - half_height)
    bottom = min(h, cursor_y + half_height)
    return image[top:bottom], top


def recognize_near_cursor(engine: OcrEngine, image: np.ndarray, cursor_y: int,
                          half_height: Optional[int] = None) -> List[OcrRegion]:
    """识别光标附近横条内的文本，坐标还原为全屏坐标。"""
    if half_height is None:
        half_height = settings.cursor_band_half_height
    band, offset = cursor_band(image, cursor_y, half_height)
    if band.size == 0:
        return []
    return [
        OcrRegion(r.text, r.box.shifted(0, offset), r.confidence)
        for r in safe_recognize(engine, band)
    ]


async def async_recognize(engine: OcrEngine, image: np.ndarray) -> List[OcrRegion]:
    """异步版本的 safe_recognize()，在计算线程池中执行。"""
    return await run_in_compute(functools.partial(safe_recognize, engine, image))


async def async_recognize_near_cursor(engine: OcrEngine, image: np.ndarray, cursor_y: int) -> List[OcrRegion]:
    return await run_in_compute(functools.partial(recognize_near_cursor, engine, image, cursor_y))
