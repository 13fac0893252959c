from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from detect_kit.postprocess import YoloPostprocessor
from detect_kit.tensor import MalformedTensorError
from detect_kit.types import Detection

from .pacing import FramePacer
from .tracker import AcceptanceProposal, SustainedDetectionTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameResult:
    time_s: float
    # what the overlay should draw (accepted labels removed)
    detections: List[Detection] = field(default_factory=list)
    proposals: List[AcceptanceProposal] = field(default_factory=list)
    # all detections after NMS, before accepted labels are hidden
    raw_detections: List[Detection] = field(default_factory=list)
    error: Optional[str] = None


class IngredientDetector:
    """
    One detection session: post-processing + sustained tracking, one frame at a time.

    A frame is applied to the tracker completely or not at all. A malformed
    tensor yields an empty result and leaves the tracker untouched.
    """

    def __init__(
        self,
        post: YoloPostprocessor,
        tracker: SustainedDetectionTracker,
        pacer: Optional[FramePacer] = None,
    ):
        self.post = post
        self.tracker = tracker
        self.pacer = pacer
        self.frames_processed = 0
        self.frames_failed = 0

    def process(self, preds, now: float) -> FrameResult:
        try:
            detections = self.post.process(preds)
        except MalformedTensorError as e:
            self.frames_failed += 1
            logger.warning("Dropping frame at %.3fs: %s", now, e)
            return FrameResult(time_s=now, error=str(e))

        observed = self.tracker.observe(detections, now)
        self.frames_processed += 1
        return FrameResult(
            time_s=now,
            detections=observed.detections,
            proposals=observed.proposals,
            raw_detections=detections,
        )

    def submit(self, infer: Callable[[], Any], now: float) -> Optional[FrameResult]:
        """
        Paced `process`. `infer` produces the raw tensor and is only called for
        admitted frames, so dropped frames never reach the model.

        Returns None for dropped frames.
        """
        if self.pacer is None:
            return self.process(infer(), now)
        if not self.pacer.try_acquire(now):
            return None
        try:
            return self.process(infer(), now)
        finally:
            self.pacer.release()

    def accept(self, label: str) -> None:
        self.tracker.accept(label)

    def unaccept(self, label: str) -> None:
        self.tracker.unaccept(label)
