"""
Ingredient detection logic built on top of `detect_kit`.

`detect_kit` turns detector output into per-frame detections; this package
adds what happens across frames:
- sustained-detection tracking + acceptance proposals
- frame pacing (minimum interval + single in-flight frame)
- detection profiles (JSON)
- runner (video/webcam loop)
"""

from __future__ import annotations

from .config import DetectionProfile, load_detection_profile
from .pacing import FramePacer, FramePacingConfig
from .session import FrameResult, IngredientDetector
from .tracker import (
    AcceptanceProposal,
    LabelState,
    ObserveResult,
    SustainedDetectionConfig,
    SustainedDetectionTracker,
    TrackingState,
)

__all__ = [
    "DetectionProfile",
    "load_detection_profile",
    "FramePacer",
    "FramePacingConfig",
    "FrameResult",
    "IngredientDetector",
    "AcceptanceProposal",
    "LabelState",
    "ObserveResult",
    "SustainedDetectionConfig",
    "SustainedDetectionTracker",
    "TrackingState",
]
