import numpy as np

from deskagent.modules.vision.components import find_connected_components, label_components


def _mask():
    mask = np.zeros((8, 10), dtype=bool)
    mask[1:3, 1:4] = True   # 6 px
    mask[5, 0:10] = True    # 10 px line
    mask[0, 8] = True       # single pixel
    mask[2, 5] = True       # diagonal neighbours are not connected
    mask[3, 6] = True
    return mask


def test_components_partition_true_pixels():
    mask = _mask()
    components = find_connected_components(mask)

    pixels = [p for comp in components for p in comp]
    assert len(pixels) == len(set(pixels)) == int(mask.sum())
    assert all(mask[y, x] for x, y in pixels)


def test_components_in_raster_order_of_seed():
    components = find_connected_components(_mask())
    seeds = [min(comp, key=lambda p: (p[1], p[0])) for comp in components]

    assert seeds == [(8, 0), (1, 1), (5, 2), (6, 3), (0, 5)]
    assert sorted(len(c) for c in components) == [1, 1, 1, 6, 10]


def test_empty_mask_has_no_components():
    assert find_connected_components(np.zeros((3, 3), dtype=bool)) == []
    assert label_components(np.zeros((3, 3), dtype=bool)) == []


def test_label_components_agrees_with_flood_fill():
    mask = _mask()
    components = find_connected_components(mask)
    stats = label_components(mask)

    assert len(stats) == len(components)
    for comp, stat in zip(components, stats):
        xs = [p[0] for p in comp]
        ys = [p[1] for p in comp]
        assert stat.size == len(comp)
        assert (stat.x1, stat.y1, stat.x2, stat.y2) == (min(xs), min(ys), max(xs), max(ys))
        assert stat.seed == min(comp, key=lambda p: (p[1], p[0]))


def test_label_components_purity():
    mask = np.zeros((4, 4), dtype=bool)
    mask[0, :] = True
    exact = np.zeros((4, 4), dtype=bool)
    exact[0, :3] = True

    (stat,) = label_components(mask, exact)
    assert stat.purity == 75.0
