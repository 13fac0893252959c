"""
Read-only view over the raw detector output.

The buffer is attribute-major: 4 box planes (cx, cy, w, h) followed by one
plane of scores per class, each plane contiguous across all anchors.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


class MalformedTensorError(ValueError):
    """Raised when a detector output does not match the configured layout."""


@dataclass(frozen=True)
class TensorLayout:
    num_classes: int = 80
    num_boxes: int = 8400

    def __post_init__(self) -> None:
        if self.num_classes <= 0:
            raise ValueError("num_classes must be > 0")
        if self.num_boxes <= 0:
            raise ValueError("num_boxes must be > 0")

    @property
    def attributes(self) -> int:
        return 4 + self.num_classes

    @property
    def size(self) -> int:
        return self.attributes * self.num_boxes

    def check_shape(self, shape) -> None:
        """
        Raise `MalformedTensorError` unless `shape` fits `(1, 4 + C, N)`.

        Symbolic dimensions (strings or None, as in ONNX output metadata) match
        anything.
        """
        expected = (1, self.attributes, self.num_boxes)
        dims = tuple(shape)
        if len(dims) != len(expected):
            raise MalformedTensorError(f"Detector output {dims} has rank {len(dims)}, expected {expected}.")
        for got, want in zip(dims, expected):
            if isinstance(got, (int, np.integer)) and int(got) != want:
                raise MalformedTensorError(f"Detector output shape {dims} does not match layout {expected}.")


class TensorView:
    """
    Zero-copy `(4 + C, N)` float32 view. Only valid while the source buffer is.
    """

    def __init__(self, data: np.ndarray, layout: TensorLayout):
        self._data = data
        self.layout = layout

    @classmethod
    def from_buffer(cls, buffer, layout: TensorLayout) -> "TensorView":
        try:
            arr = np.asarray(buffer, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise MalformedTensorError(f"Detector output is not numeric: {e}") from e

        expected = (layout.attributes, layout.num_boxes)
        if arr.ndim == 1:
            if arr.size != layout.size:
                raise MalformedTensorError(
                    f"Flat buffer has {arr.size} elements, expected {layout.size} "
                    f"for shape (1, {layout.attributes}, {layout.num_boxes})."
                )
            arr = arr.reshape(expected)
        elif arr.ndim == 3:
            if arr.shape[0] != 1:
                raise MalformedTensorError(f"Batch > 1 is not supported (got shape {arr.shape}).")
            arr = arr[0]
        elif arr.ndim != 2:
            raise MalformedTensorError(f"Unsupported detector output shape: {arr.shape}")

        if arr.shape != expected:
            raise MalformedTensorError(f"Detector output shape {arr.shape} does not match layout {expected}.")

        view = arr.view()
        view.setflags(write=False)
        return cls(view, layout)

    @property
    def num_boxes(self) -> int:
        return self.layout.num_boxes

    @property
    def num_classes(self) -> int:
        return self.layout.num_classes

    @property
    def boxes(self) -> np.ndarray:
        # (4, N) as cx, cy, w, h in model-input pixels
        return self._data[0:4]

    @property
    def class_scores(self) -> np.ndarray:
        return self._data[4:]

    def plane(self, row: int) -> np.ndarray:
        return self._data[row]

    def value(self, row: int, anchor: int) -> float:
        return float(self._data[row, anchor])
