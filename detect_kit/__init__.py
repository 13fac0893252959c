"""
YOLO post-processing for ingredient detection.

Turns the raw `(1, 4 + C, N)` detector tensor into a short, de-duplicated list
of normalized detections. Depends only on NumPy; OpenCV and ONNX Runtime are
imported lazily by the drawing and inference helpers.
"""

from .types import Detection, NormalizedRect
from .catalog import COCO_CLASS_LABELS, ClassCatalog
from .tensor import MalformedTensorError, TensorLayout, TensorView
from .decoder import BoxDecoder, above_threshold
from .nms import NMSConfig, iou, nms, suppress
from .postprocess import YoloPostConfig, YoloPostprocessor, extract_detections, rank_detections
from .metadata import load_catalog, load_class_names
from .runtime import DetectionPipeline, load_pipeline
from .visualize import color_for_label, draw_detections, to_view_rect

__all__ = [
    "Detection",
    "NormalizedRect",
    "COCO_CLASS_LABELS",
    "ClassCatalog",
    "MalformedTensorError",
    "TensorLayout",
    "TensorView",
    "BoxDecoder",
    "above_threshold",
    "NMSConfig",
    "iou",
    "nms",
    "suppress",
    "YoloPostConfig",
    "YoloPostprocessor",
    "extract_detections",
    "rank_detections",
    "load_catalog",
    "load_class_names",
    "DetectionPipeline",
    "load_pipeline",
    "color_for_label",
    "draw_detections",
    "to_view_rect",
]
