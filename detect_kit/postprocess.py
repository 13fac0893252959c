from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .catalog import ClassCatalog
from .decoder import BoxDecoder, above_threshold
from .nms import NMSConfig, suppress
from .tensor import TensorLayout, TensorView
from .types import Detection, NormalizedRect


@dataclass(frozen=True)
class YoloPostConfig:
    """
    Post-processing knobs. `max_detections` caps both the ranked candidate list
    and the NMS output.
    """

    conf_threshold: float = 0.2
    iou_threshold: float = 0.45
    max_detections: int = 10
    input_size: float = 640.0
    # If True, NMS is class-agnostic (default, a person holding an apple can hide the apple).
    # If False, runs NMS per class then merges results by score.
    class_agnostic_nms: bool = True

    def __post_init__(self) -> None:
        if not (0.0 <= self.conf_threshold < 1.0):
            raise ValueError("conf_threshold must be within [0, 1)")
        if not (0.0 <= self.iou_threshold <= 1.0):
            raise ValueError("iou_threshold must be within [0, 1]")
        if self.max_detections <= 0:
            raise ValueError("max_detections must be > 0")
        if self.input_size <= 0:
            raise ValueError("input_size must be > 0")


def extract_detections(
    view: TensorView,
    catalog: ClassCatalog,
    conf_threshold: float,
    decoder: Optional[BoxDecoder] = None,
) -> List[Detection]:
    """
    Decode every anchor and keep the ones whose best score is strictly above
    `conf_threshold`. Output is in anchor-index order.
    """

    decoder = decoder or BoxDecoder()
    scores, class_ids, boxes = decoder.decode_all(view)

    keep = np.flatnonzero(above_threshold(scores, conf_threshold))
    detections: List[Detection] = []
    for i in keep:
        cls_id = int(class_ids[i])
        label = catalog.label_for(cls_id)
        if label is None:
            continue
        x, y, w, h = boxes[i]
        detections.append(
            Detection(
                box=NormalizedRect(float(x), float(y), float(w), float(h)),
                confidence=float(scores[i]),
                class_label=label,
                class_id=cls_id,
            )
        )
    return detections


def rank_detections(detections: Sequence[Detection], max_count: int = 10) -> List[Detection]:
    # sorted() is stable, so equal confidences keep anchor order
    ranked = sorted(detections, key=lambda d: d.confidence, reverse=True)
    return ranked[:max_count]


class YoloPostprocessor:
    """
    Raw `(1, 4 + C, N)` detector output -> final per-frame detections.

    Steps: confidence filter -> rank/top-K -> greedy NMS. Boxes stay in
    normalized image-fraction coordinates.
    """

    def __init__(
        self,
        cfg: YoloPostConfig = YoloPostConfig(),
        catalog: Optional[ClassCatalog] = None,
        layout: Optional[TensorLayout] = None,
    ):
        self.cfg = cfg
        self.catalog = catalog if catalog is not None else ClassCatalog.coco()
        self.layout = layout if layout is not None else TensorLayout(num_classes=len(self.catalog))
        self.decoder = BoxDecoder(cfg.input_size)

    def process(self, preds) -> List[Detection]:
        """
        Raises `MalformedTensorError` if `preds` does not match the layout.
        """

        view = TensorView.from_buffer(preds, self.layout)
        candidates = extract_detections(view, self.catalog, self.cfg.conf_threshold, self.decoder)
        if not candidates:
            return []
        ranked = rank_detections(candidates, self.cfg.max_detections)
        return self._apply_nms(ranked)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _apply_nms(self, ranked: List[Detection]) -> List[Detection]:
        nms_cfg = NMSConfig(iou_threshold=self.cfg.iou_threshold, max_detections=self.cfg.max_detections)

        if self.cfg.class_agnostic_nms:
            return suppress(ranked, nms_cfg)

        kept: List[Detection] = []
        for label in dict.fromkeys(d.class_label for d in ranked):
            kept.extend(suppress([d for d in ranked if d.class_label == label], nms_cfg))
        return rank_detections(kept, self.cfg.max_detections)
