import json

import numpy as np
import pytest

from deskagent.modules.vision.regions import (
    BoundingBox,
    boxes_to_json,
    calculate_purity,
    create_mask,
    find_bounding_box,
    find_bounding_boxes,
    process_dominant_colors,
)


def _square_image():
    img = np.full((60, 60, 3), 255, dtype=np.uint8)
    img[15:45, 15:45] = 0
    return img


def test_single_square_yields_one_box():
    boxes, next_id = process_dominant_colors(_square_image(), [(0, 0, 0)], 1, 6, 9, loose_drift=0)

    assert next_id == 2
    assert len(boxes) == 1
    box = boxes[0]
    assert (box.id, box.x1, box.y1, box.x2, box.y2) == (1, 15, 15, 44, 44)
    assert (box.width, box.height) == (29, 29)


def test_square_on_two_color_background_with_min_size_ten():
    img = np.full((80, 80, 3), (40, 120, 200), dtype=np.uint8)
    # BGR 帧，候选颜色按 RGB 给出
    img[20:50, 30:60] = (30, 200, 10)

    boxes, next_id = process_dominant_colors(img, [(10, 200, 30)], 1, 10, 10, loose_drift=0)

    assert next_id == 2
    assert len(boxes) == 1
    assert (boxes[0].x1, boxes[0].y1, boxes[0].x2, boxes[0].y2) == (30, 20, 59, 49)


def test_exact_and_loose_duplicates_collapse():
    boxes, next_id = process_dominant_colors(_square_image(), [(0, 0, 0)], 7, 6, 9)
    assert [b.id for b in boxes] == [7]
    assert next_id == 8


def test_small_components_filtered():
    img = np.full((40, 40, 3), 255, dtype=np.uint8)
    img[5:10, 5:30] = 0  # height 4 < 6
    boxes, next_id = process_dominant_colors(img, [(0, 0, 0)], 1, 6, 9, loose_drift=0)
    assert boxes == []
    assert next_id == 1


def test_absent_color_is_skipped():
    boxes, next_id = process_dominant_colors(_square_image(), [(1, 2, 3)], 3, 6, 9)
    assert boxes == []
    assert next_id == 3


def test_low_purity_component_rejected():
    img = np.full((40, 40, 3), 255, dtype=np.uint8)
    img[10:30, 10:30] = 40
    img[10, 10] = 0  # one exact pixel inside a large near-black area
    boxes, _ = process_dominant_colors(img, [(0, 0, 0)], 1, 6, 9, loose_drift=50)
    assert boxes == []


def test_create_mask_clamps_range():
    img = np.array([[[0, 0, 0], [250, 250, 250], [255, 255, 255]]], dtype=np.uint8)
    assert create_mask(img, (255, 255, 255), 10).tolist() == [[False, True, True]]
    assert create_mask(img, (0, 0, 0), 0).tolist() == [[True, False, False]]


def test_find_bounding_box_and_purity():
    component = [(3, 4), (5, 2), (4, 7)]
    assert find_bounding_box(component) == (3, 2, 5, 7)

    exact = np.zeros((10, 10), dtype=bool)
    exact[4, 3] = True
    assert calculate_purity(component, exact) == pytest.approx(100.0 / 3)

    with pytest.raises(ValueError):
        find_bounding_box([])


def test_find_bounding_boxes_ids_are_sequential():
    boxes = find_bounding_boxes(_square_image())
    assert boxes
    assert [b.id for b in boxes] == list(range(1, len(boxes) + 1))
    assert any((b.x1, b.y1, b.x2, b.y2) == (15, 15, 44, 44) for b in boxes)


def test_box_json_shape():
    data = json.loads(boxes_to_json([BoundingBox(1, 10, 20, 30, 25)]))
    assert data == [{"id": 1, "x": 10, "y": 20, "x2": 30, "y2": 25, "width": 20, "height": 5}]
    assert list(data[0]) == ["id", "x", "y", "x2", "y2", "width", "height"]
