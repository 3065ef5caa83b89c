import numpy as np
import pytest

from deskagent.modules.ocr.engine import (
    PaddleOcrEngine,
    async_recognize,
    async_recognize_near_cursor,
    cursor_band,
    recognize_near_cursor,
    safe_recognize,
)
from deskagent.modules.ocr.types import Box, OcrRegion


class _DummyEngine:
    def __init__(self, regions=None, error=None):
        self.regions = regions or []
        self.error = error
        self.shapes = []

    def recognize(self, image):
        self.shapes.append(image.shape)
        if self.error:
            raise self.error
        return list(self.regions)


class _FakePaddle:
    def predict(self, image):
        return [{
            "rec_texts": ["Save", "", "noise"],
            "rec_scores": [0.95, 0.99, 0.2],
            "rec_polys": [
                [[10, 5], [40, 5], [40, 15], [10, 15]],
                [[0, 0], [1, 0], [1, 1], [0, 1]],
                [[0, 0], [5, 0], [5, 5], [0, 5]],
            ],
        }]


def test_safe_recognize_swallows_engine_errors():
    engine = _DummyEngine(error=RuntimeError("model crashed"))
    assert safe_recognize(engine, np.zeros((10, 10, 3), dtype=np.uint8)) == []


def test_cursor_band_clamped_to_image():
    image = np.zeros((100, 50, 3), dtype=np.uint8)

    band, offset = cursor_band(image, 10, 23)
    assert offset == 0
    assert band.shape[0] == 33

    band, offset = cursor_band(image, 90, 23)
    assert offset == 67
    assert band.shape[0] == 33


def test_recognize_near_cursor_shifts_boxes():
    engine = _DummyEngine([OcrRegion("prompt $", Box(0, 20, 60, 30), 95.0)])
    image = np.zeros((200, 100, 3), dtype=np.uint8)

    regions = recognize_near_cursor(engine, image, 100, half_height=23)

    assert engine.shapes == [(46, 100, 3)]
    assert regions[0].box == Box(0, 97, 60, 107)


def test_paddle_adapter_converts_results():
    engine = PaddleOcrEngine(lang="en", min_confidence=50)
    engine._engine = _FakePaddle()

    regions = engine.recognize(np.zeros((20, 50), dtype=np.uint8))

    assert len(regions) == 1
    assert regions[0].text == "Save"
    assert regions[0].box == Box(10, 5, 40, 15)
    assert regions[0].confidence == pytest.approx(95.0)


@pytest.mark.asyncio
async def test_async_wrappers_run_off_loop():
    engine = _DummyEngine([OcrRegion("a", Box(0, 0, 1, 1), 90.0)])
    image = np.zeros((60, 10, 3), dtype=np.uint8)

    assert [r.text for r in await async_recognize(engine, image)] == ["a"]
    near = await async_recognize_near_cursor(engine, image, 30)
    assert near[0].box == Box(0, 7, 1, 8)
