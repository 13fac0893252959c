from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from .postprocess import YoloPostConfig, YoloPostprocessor
from .types import Detection


PathLike = Union[str, Path]


class DetectionPipeline:
    """
    preprocess (stretch resize) -> opaque inference -> postprocess.

    The model is treated as a black box: `infer_fn` takes an NCHW float32 blob
    and returns the raw `(1, 4 + C, N)` output. Boxes come back normalized to
    the frame, so no letterbox bookkeeping is needed.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        post: YoloPostprocessor,
        *,
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
    ):
        self._infer_fn = infer_fn
        self.post = post
        self.backend = backend
        self.backend_name = backend_name

    @property
    def input_size(self) -> int:
        return int(self.post.cfg.input_size)

    def preprocess(self, image_bgr: np.ndarray) -> np.ndarray:
        if image_bgr is None or not hasattr(image_bgr, "shape"):
            raise TypeError("image_bgr must be a NumPy array (BGR).")
        if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
            raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

        size = self.input_size
        img = image_bgr
        if img.shape[:2] != (size, size):
            try:
                import cv2  # type: ignore
            except Exception as e:  # pragma: no cover
                raise ImportError("OpenCV is required to resize frames. Install with `pip install opencv-python`.") from e
            img = cv2.resize(img, (size, size), interpolation=cv2.INTER_LINEAR)

        # BGR -> RGB, normalize, HWC -> CHW, add batch
        blob = img[:, :, ::-1].astype(np.float32) / 255.0
        return np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])

    def infer(self, image_bgr: np.ndarray) -> np.ndarray:
        return self._infer_fn(self.preprocess(image_bgr))

    def __call__(self, image_bgr: np.ndarray) -> List[Detection]:
        return self.post.process(self.infer(image_bgr))


def load_pipeline(
    model_path: PathLike,
    *,
    post: Optional[YoloPostprocessor] = None,
    post_cfg: YoloPostConfig = YoloPostConfig(),
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
    onnx_output_name: Optional[str] = None,
) -> DetectionPipeline:
    """
    Create a pipeline for an ONNX detector on disk.

    Typical usage:
        pipe = load_pipeline("Models/yolov8n.onnx")
        detections = pipe(frame_bgr)
    """

    resolved = Path(model_path).expanduser().resolve()
    if resolved.suffix.lower() != ".onnx":
        raise ValueError(f"Only .onnx models are supported (got '{resolved.suffix}').")

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    post = post if post is not None else YoloPostprocessor(post_cfg)
    ort_backend = OnnxRuntimeBackend.load(
        resolved,
        post.layout,
        OnnxRuntimeBackendConfig(
            providers=onnx_providers,
            input_name=onnx_input_name,
            output_name=onnx_output_name,
        ),
    )
    return DetectionPipeline(
        ort_backend.infer,
        post,
        backend=ort_backend,
        backend_name="onnxruntime",
    )
