from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from .types import Detection, NormalizedRect


@dataclass
class NMSConfig:
    iou_threshold: float = 0.45
    max_detections: int = 10


def iou(a: NormalizedRect, b: NormalizedRect) -> float:
    """
    Intersection over union of two xywh boxes. Disjoint or empty boxes give 0.
    """

    ax1, ay1, ax2, ay2 = a.as_xyxy()
    bx1, by1, bx2, by2 = b.as_xyxy()
    inter_w = max(0.0, min(ax2, bx2) - max(ax1, bx1))
    inter_h = max(0.0, min(ay2, by2) - max(ay1, by1))
    inter = inter_w * inter_h
    area_a = (ax2 - ax1) * (ay2 - ay1)
    area_b = (bx2 - bx1) * (by2 - by1)
    union = area_a + area_b - inter
    if inter <= 0.0 or union <= 0.0:
        return 0.0
    return inter / union


def _iou_one_to_many(box: np.ndarray, others: np.ndarray) -> np.ndarray:
    bx2, by2 = box[0] + box[2], box[1] + box[3]
    ox2 = others[:, 0] + others[:, 2]
    oy2 = others[:, 1] + others[:, 3]

    x1 = np.maximum(box[0], others[:, 0])
    y1 = np.maximum(box[1], others[:, 1])
    x2 = np.minimum(bx2, ox2)
    y2 = np.minimum(by2, oy2)

    inter = np.maximum(0.0, x2 - x1) * np.maximum(0.0, y2 - y1)
    area_box = (bx2 - box[0]) * (by2 - box[1])
    area_others = (ox2 - others[:, 0]) * (oy2 - others[:, 1])
    union = area_box + area_others - inter
    out = np.zeros_like(inter)
    np.divide(inter, union, out=out, where=(union > 0) & (inter > 0))
    return out


def nms(boxes: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NMS over boxes that are already sorted by confidence (best first).

    Expects boxes shape (N, 4) as normalized x, y, width, height. A box is
    dropped when its IoU with any kept box exceeds `cfg.iou_threshold`; the
    earlier box always wins. Returns indices of boxes to keep, in input order.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int32)

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    keep: List[int] = []

    for i in range(boxes.shape[0]):
        if len(keep) >= cfg.max_detections:
            break
        if keep:
            overlaps = _iou_one_to_many(boxes[i], boxes[keep])
            if np.any(overlaps > cfg.iou_threshold):
                continue
        keep.append(i)

    return np.array(keep, dtype=np.int32)


def suppress(ranked: Sequence[Detection], cfg: NMSConfig) -> List[Detection]:
    """
    `nms` over a confidence-descending list of detections. Class-agnostic:
    overlapping boxes suppress each other regardless of label.
    """

    if not ranked:
        return []
    boxes = np.array([d.box.as_xywh() for d in ranked], dtype=np.float64)
    return [ranked[i] for i in nms(boxes, cfg)]
