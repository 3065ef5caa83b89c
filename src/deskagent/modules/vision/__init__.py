from .colors import ColorCount, dominant_colors, all_colors_ranked, colors_to_json
from .components import ComponentStats, find_connected_components, label_components
from .regions import (
    BoundingBox,
    create_mask,
    find_bounding_box,
    calculate_purity,
    process_dominant_colors,
    find_bounding_boxes,
    boxes_to_json,
)
from .window_chrome import (
    Rect,
    WindowButton,
    WindowDescriptor,
    detect_window,
    detect_windows,
)
from .utils import (
    ImageLike,
    load_image,
    to_gray,
    pixel_at,
)

__all__ = [
    "ColorCount",
    "dominant_colors",
    "all_colors_ranked",
    "colors_to_json",
    "ComponentStats",
    "find_connected_components",
    "label_components",
    "BoundingBox",
    "create_mask",
    "find_bounding_box",
    "calculate_purity",
    "process_dominant_colors",
    "find_bounding_boxes",
    "boxes_to_json",
    "Rect",
    "WindowButton",
    "WindowDescriptor",
    "detect_window",
    "detect_windows",
    "ImageLike",
    "load_image",
    "to_gray",
    "pixel_at",
]
