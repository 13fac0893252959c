from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple

from detect_kit.catalog import FOOD, ClassCatalog
from detect_kit.postprocess import YoloPostConfig

from .pacing import FramePacingConfig
from .tracker import SustainedDetectionConfig


@dataclass(frozen=True)
class DetectionProfile:
    schema_version: int = 1
    conf_threshold: float = 0.2
    iou_threshold: float = 0.45
    max_detections: int = 10
    input_size: int = 640
    sustained_seconds: float = 2.0
    min_frame_interval_s: float = 0.2
    eligible_category: Optional[str] = FOOD
    # explicit labels win over eligible_category
    eligible_labels: Optional[Tuple[str, ...]] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if self.schema_version != 1:
            raise ValueError("detection profile schema_version must be 1")
        if not (0.0 <= self.conf_threshold < 1.0):
            raise ValueError("conf_threshold must be within [0, 1)")
        if not (0.0 <= self.iou_threshold <= 1.0):
            raise ValueError("iou_threshold must be within [0, 1]")
        if self.max_detections <= 0:
            raise ValueError("max_detections must be > 0")
        if self.input_size < 32:
            raise ValueError("input_size must be >= 32")
        if self.sustained_seconds < 0:
            raise ValueError("sustained_seconds must be >= 0")
        if self.min_frame_interval_s < 0:
            raise ValueError("min_frame_interval_s must be >= 0")
        if self.eligible_category is None and self.eligible_labels is None:
            raise ValueError("one of eligible_category / eligible_labels is required")

    def post_config(self) -> YoloPostConfig:
        return YoloPostConfig(
            conf_threshold=self.conf_threshold,
            iou_threshold=self.iou_threshold,
            max_detections=self.max_detections,
            input_size=float(self.input_size),
        )

    def resolve_eligible_labels(self, catalog: ClassCatalog) -> FrozenSet[str]:
        if self.eligible_labels is not None:
            unknown = sorted(label for label in self.eligible_labels if label not in catalog)
            if unknown:
                raise ValueError(f"eligible_labels not in class catalog: {unknown}")
            return frozenset(self.eligible_labels)
        if self.eligible_category is None or self.eligible_category not in catalog.categories:
            raise ValueError(f"Unknown eligible_category: {self.eligible_category!r}")
        return catalog.labels_in(self.eligible_category)

    def tracker_config(self, catalog: ClassCatalog) -> SustainedDetectionConfig:
        return SustainedDetectionConfig(
            sustained_seconds=self.sustained_seconds,
            eligible_labels=self.resolve_eligible_labels(catalog),
        )

    def pacing_config(self) -> FramePacingConfig:
        return FramePacingConfig(min_interval_s=self.min_frame_interval_s)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    value = payload.get(key)
    if value is None:
        return float(default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_int(payload: Dict[str, Any], key: str, default: int) -> int:
    value = payload.get(key)
    if value is None:
        return int(default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{key} must be an integer")
    return int(value)


def load_detection_profile(path: Path) -> DetectionProfile:
    if not path.exists():
        raise FileNotFoundError(f"Detection profile not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detection profile JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detection profile must be a JSON object")

    allowed = {
        "schema_version",
        "conf_threshold",
        "iou_threshold",
        "max_detections",
        "input_size",
        "sustained_seconds",
        "min_frame_interval_s",
        "eligible_category",
        "eligible_labels",
        "notes",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detection profile keys: {unknown}")

    defaults = DetectionProfile()

    eligible_category = payload.get("eligible_category", defaults.eligible_category)
    if eligible_category is not None and not isinstance(eligible_category, str):
        raise ValueError("eligible_category must be a string if provided")

    eligible_labels = payload.get("eligible_labels")
    if eligible_labels is not None:
        if not isinstance(eligible_labels, list) or not all(isinstance(x, str) and x.strip() for x in eligible_labels):
            raise ValueError("eligible_labels must be a list of non-empty strings")
        eligible_labels = tuple(x.strip() for x in eligible_labels)

    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValueError("notes must be a string if provided")

    return DetectionProfile(
        schema_version=_require_int(payload, "schema_version"),
        conf_threshold=_optional_number(payload, "conf_threshold", defaults.conf_threshold),
        iou_threshold=_optional_number(payload, "iou_threshold", defaults.iou_threshold),
        max_detections=_optional_int(payload, "max_detections", defaults.max_detections),
        input_size=_optional_int(payload, "input_size", defaults.input_size),
        sustained_seconds=_optional_number(payload, "sustained_seconds", defaults.sustained_seconds),
        min_frame_interval_s=_optional_number(payload, "min_frame_interval_s", defaults.min_frame_interval_s),
        eligible_category=eligible_category,
        eligible_labels=eligible_labels,
        notes=notes,
    )
