"""
Vision utilities: image loading/decoding, color packing and pixel helpers.

Frames are BGR numpy arrays (or single-channel grayscale), as produced by
OpenCV. Colors handed to callers are RGB tuples.
"""
from __future__ import annotations

import os
from typing import Tuple, Union

import cv2  # type: ignore
import numpy as np


ImageLike = Union[str, bytes, np.ndarray]
Color = Tuple[int, int, int]

BLACK: Color = (0, 0, 0)


def load_image(img: ImageLike) -> np.ndarray:
    """Load an image into a BGR numpy array.

    - str: treated as a file path and loaded via cv2.imread
    - bytes: decoded via cv2.imdecode
    - np.ndarray: returned as-is (assumed BGR(A) or single-channel)
    """
    if isinstance(img, np.ndarray):
        return img
    if isinstance(img, (bytes, bytearray)):
        arr = np.frombuffer(img, dtype=np.uint8)
        mat = cv2.imdecode(arr, cv2.IMREAD_COLOR)
        if mat is None:
            raise ValueError("Failed to decode image bytes")
        return mat
    if isinstance(img, str):
        if not os.path.isfile(img):
            raise FileNotFoundError(f"Image file not found: {img}")
        mat = cv2.imread(img, cv2.IMREAD_COLOR)
        if mat is None:
            raise ValueError(f"Failed to load image from path: {img}")
        return mat
    raise TypeError(f"Unsupported image type: {type(img)}")


def to_gray(img: np.ndarray) -> np.ndarray:
    """Convert BGR(A) image to grayscale (no-op if already single-channel)."""
    if img.ndim == 2:
        return img
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)


def to_rgb(img: np.ndarray) -> np.ndarray:
    """Return an H x W x 3 RGB view of a BGR(A) or grayscale image.

    Alpha is dropped; a gray value v becomes (v, v, v).
    """
    if img.ndim == 2:
        return np.repeat(img[:, :, None], 3, axis=2)
    return img[:, :, 2::-1]


def pack_rgb(rgb: np.ndarray) -> np.ndarray:
    """Pack an H x W x 3 RGB array into 24-bit integers (R << 16 | G << 8 | B)."""
    rgb = rgb.astype(np.uint32)
    return (rgb[..., 0] << 16) | (rgb[..., 1] << 8) | rgb[..., 2]


def unpack_rgb(value: int) -> Color:
    v = int(value)
    return ((v >> 16) & 0xFF, (v >> 8) & 0xFF, v & 0xFF)


def binarize(gray: np.ndarray, threshold: int) -> np.ndarray:
    """Values below threshold become 0, everything else 255."""
    return np.where(gray < threshold, 0, 255).astype(np.uint8)


def pixel_at(img: np.ndarray, x: int, y: int) -> Color:
    """Return pixel color at (x, y) as RGB tuple.

    Raises IndexError if out of bounds.
    """
    h, w = img.shape[:2]
    if not (0 <= x < w and 0 <= y < h):
        raise IndexError(f"Pixel ({x},{y}) is out of bounds for image {w}x{h}")
    if img.ndim == 2:
        v = int(img[y, x])
        return (v, v, v)
    b, g, r = img[y, x][:3]
    return int(r), int(g), int(b)


def pixel_or_black(img: np.ndarray, x: int, y: int) -> Color:
    """Like pixel_at, but out-of-bounds reads return black."""
    h, w = img.shape[:2]
    if not (0 <= x < w and 0 <= y < h):
        return BLACK
    return pixel_at(img, x, y)


def color_distance(a: Color, b: Color) -> int:
    """Sum of absolute per-channel differences."""
    return abs(a[0] - b[0]) + abs(a[1] - b[1]) + abs(a[2] - b[2])


__all__ = [
    "ImageLike",
    "Color",
    "BLACK",
    "load_image",
    "to_gray",
    "to_rgb",
    "pack_rgb",
    "unpack_rgb",
    "binarize",
    "pixel_at",
    "pixel_or_black",
    "color_distance",
]
