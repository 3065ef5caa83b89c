from .types import Box, OcrRegion, OcrDelta
from .delta import (
    merge_close_text,
    produce_delta,
    regions_to_json,
    regions_from_json,
    delta_to_json,
    compact_regions,
)
from .engine import (
    OcrEngine,
    PaddleOcrEngine,
    safe_recognize,
    recognize_near_cursor,
    async_recognize,
    async_recognize_near_cursor,
)

__all__ = [
    "Box",
    "OcrRegion",
    "OcrDelta",
    "merge_close_text",
    "produce_delta",
    "regions_to_json",
    "regions_from_json",
    "delta_to_json",
    "compact_regions",
    "OcrEngine",
    "PaddleOcrEngine",
    "safe_recognize",
    "recognize_near_cursor",
    "async_recognize",
    "async_recognize_near_cursor",
]
