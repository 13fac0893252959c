from __future__ import annotations

from typing import Tuple

import numpy as np

from .tensor import TensorView
from .types import NormalizedRect


def _clamp01(values: np.ndarray) -> np.ndarray:
    clipped = np.clip(values, 0.0, 1.0)
    return np.nan_to_num(clipped, nan=0.0, posinf=1.0, neginf=0.0)


def _sanitize_scores(scores: np.ndarray) -> np.ndarray:
    scores = np.asarray(scores, dtype=np.float32)
    return np.where(np.isfinite(scores), scores, np.float32(0.0))


def above_threshold(scores, threshold: float) -> np.ndarray:
    """
    Strict `score > threshold` at float32, the precision the model emits.

    A score equal to float32(threshold) is excluded. Accepts arrays or the
    plain floats returned by `BoxDecoder.decode_anchor`.
    """

    return np.asarray(scores, dtype=np.float32) > np.float32(threshold)


class BoxDecoder:
    """
    Turns one anchor's raw attributes into (score, class index, normalized box).

    Scores stay float32, as emitted by the model (no softmax). Box components are
    scaled by the model input size and clamped to [0, 1] independently.
    """

    def __init__(self, input_size: float = 640.0):
        if input_size <= 0:
            raise ValueError("input_size must be > 0")
        self.input_size = float(input_size)

    def decode_anchor(self, view: TensorView, index: int) -> Tuple[float, int, NormalizedRect]:
        if not 0 <= index < view.num_boxes:
            raise IndexError(f"anchor index {index} out of range [0, {view.num_boxes})")

        scores = _sanitize_scores(view.class_scores[:, index])
        class_index = int(np.argmax(scores))
        score = float(scores[class_index])

        cx, cy, w, h = view.boxes[:, index].astype(np.float64)
        s = self.input_size
        with np.errstate(invalid="ignore", over="ignore"):
            raw = np.array([cx / s - w / (2 * s), cy / s - h / (2 * s), w / s, h / s])
        x, y, width, height = _clamp01(raw)
        return score, class_index, NormalizedRect(float(x), float(y), float(width), float(height))

    def decode_all(self, view: TensorView) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Vectorised `decode_anchor` over every anchor.

        Returns:
            scores: (N,) best class score per anchor
            class_ids: (N,) argmax class index per anchor
            boxes: (N, 4) normalized x, y, width, height
        """

        class_scores = _sanitize_scores(view.class_scores)
        class_ids = np.argmax(class_scores, axis=0)
        scores = class_scores[class_ids, np.arange(class_scores.shape[1])]

        cx, cy, w, h = view.boxes.astype(np.float64)
        s = self.input_size
        with np.errstate(invalid="ignore", over="ignore"):
            boxes = np.stack([cx / s - w / (2 * s), cy / s - h / (2 * s), w / s, h / s], axis=1)
        return scores, class_ids, _clamp01(boxes)
