import numpy as np
import pytest

from deskagent.core.cancellation import CancellationToken
from deskagent.core.errors import CaptureError
from deskagent.modules.capture.base import BaseCapture, Frame
from deskagent.modules.ocr.types import Box, OcrRegion
from deskagent.modules.tasks.perception import Perceiver


class _StaticCapture(BaseCapture):
    def __init__(self, image, cursor=(3, 4), error=None):
        self.image = image
        self.cursor = cursor
        self.error = error

    async def _capture_raw(self):
        if self.error:
            raise self.error
        return Frame(self.image, self.cursor)

    def is_available(self):
        return True


class _StaticOcr:
    def __init__(self, regions):
        self.regions = regions

    def recognize(self, image):
        return list(self.regions)


def _screen():
    img = np.full((60, 80, 3), 255, dtype=np.uint8)
    img[10:40, 10:50] = (0, 0, 255)
    return img


@pytest.mark.asyncio
async def test_perceive_builds_snapshot():
    ocr = _StaticOcr([OcrRegion("Title", Box(12, 12, 30, 20), 97.0)])
    perceiver = Perceiver(_StaticCapture(_screen()), ocr, color_count=2)

    snap = await perceiver.perceive(CancellationToken())

    assert snap.cursor == (3, 4)
    assert [c.color for c in snap.colors] == [(255, 255, 255), (255, 0, 0)]
    assert [r.text for r in snap.ocr] == ["Title"]
    assert snap.windows == []
    assert any((b.x1, b.y1, b.x2, b.y2) == (10, 10, 49, 39) for b in snap.boxes)
    assert '"text": "Title"' in snap.ocr_json()


@pytest.mark.asyncio
async def test_perceive_without_ocr_engine():
    perceiver = Perceiver(_StaticCapture(_screen()), None, detect_regions=False)
    snap = await perceiver.perceive(CancellationToken())

    assert snap.ocr == []
    assert snap.boxes == []
    assert await perceiver.ocr_near_cursor(snap, CancellationToken()) == []


@pytest.mark.asyncio
async def test_capture_errors_are_wrapped():
    perceiver = Perceiver(_StaticCapture(None, error=OSError("display gone")))
    with pytest.raises(CaptureError):
        await perceiver.perceive(CancellationToken())
