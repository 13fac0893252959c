from __future__ import annotations

from typing import Iterable, Optional, Tuple

import numpy as np

from .catalog import ANIMALS, FOOD, PEOPLE, VEHICLES, ClassCatalog
from .types import Detection, NormalizedRect

# OpenCV expects BGR
_CATEGORY_COLORS = {
    PEOPLE: (0, 0, 255),
    VEHICLES: (255, 0, 0),
    ANIMALS: (0, 255, 0),
    FOOD: (0, 165, 255),
}
_DEFAULT_COLOR = (0, 255, 255)


def color_for_label(label: str, catalog: ClassCatalog) -> Tuple[int, int, int]:
    """
    Deterministic BGR color keyed by the label's category.
    """

    category = catalog.category_of(label)
    return _CATEGORY_COLORS.get(category, _DEFAULT_COLOR) if category else _DEFAULT_COLOR


def to_view_rect(box: NormalizedRect, view_width: float, view_height: float) -> Tuple[float, float, float, float]:
    """
    Map a normalized box into view-space pixels as (x, y, width, height).
    """

    return (
        box.x * view_width,
        box.y * view_height,
        box.width * view_width,
        box.height * view_height,
    )


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    catalog: Optional[ClassCatalog] = None,
    show_score: bool = True,
    box_thickness: int = 3,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw bounding boxes + labels on an OpenCV BGR image and return a copy.

    Args:
        image_bgr: input image in BGR (H, W, 3).
        detections: detections with normalized boxes.
        catalog: used for category colors; COCO groups if omitted.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    catalog = catalog if catalog is not None else ClassCatalog.coco()
    out = image_bgr.copy()
    h, w = out.shape[:2]

    for det in detections:
        x, y, bw, bh = to_view_rect(det.box, w, h)
        x1i = int(np.clip(round(x), 0, w - 1))
        y1i = int(np.clip(round(y), 0, h - 1))
        x2i = int(np.clip(round(x + bw), 0, w - 1))
        y2i = int(np.clip(round(y + bh), 0, h - 1))

        color = color_for_label(det.class_label, catalog)
        cv2.rectangle(out, (x1i, y1i), (x2i, y2i), color, thickness=box_thickness)

        label = det.class_label
        if show_score:
            label = f"{label} {det.confidence:.2f}"

        (tw, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        y_text_top = y1i - th - baseline
        if y_text_top < 0:
            y_text_top = y1i

        x_text_right = min(x1i + tw, w - 1)
        y_text_bottom = min(y_text_top + th + baseline, h - 1)

        cv2.rectangle(out, (x1i, y_text_top), (x_text_right, y_text_bottom), color, thickness=-1)
        cv2.putText(
            out,
            label,
            (x1i, min(y_text_top + th, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (0, 0, 0),
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out
