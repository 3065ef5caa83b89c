import json

import numpy as np

from deskagent.modules.vision.colors import all_colors_ranked, colors_to_json, dominant_colors


def _bgr(h, w, rgb):
    img = np.zeros((h, w, 3), dtype=np.uint8)
    img[:, :] = rgb[::-1]
    return img


def test_dominant_colors_ranked_by_count():
    img = _bgr(10, 10, (255, 0, 0))
    img[:3, :] = (0, 255, 0)      # 30 green pixels (BGR)
    img[3, :5] = (255, 255, 255)  # 5 white pixels

    colors = dominant_colors(img, 10)

    assert [c.color for c in colors] == [(255, 0, 0), (0, 255, 0), (255, 255, 255)]
    assert [c.count for c in colors] == [65, 30, 5]
    assert abs(sum(c.percentage for c in colors) - 100.0) < 1e-9


def test_dominant_colors_truncates_and_ignores_alpha():
    img = np.zeros((2, 2, 4), dtype=np.uint8)
    img[0, 0] = (10, 20, 30, 0)
    img[0, 1] = (10, 20, 30, 255)
    img[1, :] = (1, 1, 1, 128)

    colors = dominant_colors(img, 1)

    assert len(colors) == 1
    assert colors[0].count == 2


def test_ties_broken_by_color_value():
    img = np.zeros((1, 2, 3), dtype=np.uint8)
    img[0, 0] = (0, 0, 200)
    img[0, 1] = (0, 0, 100)

    colors = dominant_colors(img, None)
    assert [c.color for c in colors] == [(100, 0, 0), (200, 0, 0)]


def test_grayscale_and_empty_images():
    gray = np.full((4, 4), 7, dtype=np.uint8)
    assert dominant_colors(gray)[0].color == (7, 7, 7)
    assert dominant_colors(np.zeros((0, 0, 3), dtype=np.uint8)) == []


def test_colors_json_format():
    img = _bgr(4, 4, (18, 52, 86))
    img[0, 0] = (0, 0, 0)

    data = json.loads(colors_to_json(all_colors_ranked(img)))

    assert data[0] == {"color": "#123456", "percentage": "93.8%"}
    assert data[1] == {"color": "#000000", "percentage": "6.2%"}
