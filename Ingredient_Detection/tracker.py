"""
Sustained-detection tracker.

Watches per-frame detections per class label and proposes a label for
acceptance once it has been continuously visible for `sustained_seconds`.
Labels the caller has accepted are hidden from the visible stream and are no
longer tracked until un-accepted.

Per-label states: ABSENT -> TRACKING -> ELIGIBLE -> ACCEPTED. A single frame
without the label drops it back to ABSENT (no grace period).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Set

from detect_kit.catalog import FOOD, ClassCatalog
from detect_kit.types import Detection

logger = logging.getLogger(__name__)


class LabelState(str, Enum):
    ABSENT = "ABSENT"
    TRACKING = "TRACKING"
    ELIGIBLE = "ELIGIBLE"
    ACCEPTED = "ACCEPTED"


@dataclass(frozen=True)
class SustainedDetectionConfig:
    sustained_seconds: float = 2.0
    eligible_labels: FrozenSet[str] = field(default_factory=lambda: ClassCatalog.coco().labels_in(FOOD))

    def __post_init__(self) -> None:
        if self.sustained_seconds < 0:
            raise ValueError("sustained_seconds must be >= 0")
        object.__setattr__(self, "eligible_labels", frozenset(self.eligible_labels))

    @classmethod
    def for_category(
        cls,
        catalog: ClassCatalog,
        category: str = FOOD,
        sustained_seconds: float = 2.0,
    ) -> "SustainedDetectionConfig":
        return cls(sustained_seconds=sustained_seconds, eligible_labels=catalog.labels_in(category))


@dataclass(frozen=True)
class AcceptanceProposal:
    label: str
    first_seen_at: float
    time_s: float

    @property
    def elapsed_s(self) -> float:
        return self.time_s - self.first_seen_at


@dataclass(frozen=True)
class ObserveResult:
    # frame detections minus accepted labels, in input order
    detections: List[Detection]
    proposals: List[AcceptanceProposal]


@dataclass
class TrackingState:
    """
    All mutable tracker state. `first_seen_at` and `alert_raised` always hold the
    same keys; accepted labels never appear in either.
    """

    first_seen_at: Dict[str, float] = field(default_factory=dict)
    alert_raised: Dict[str, bool] = field(default_factory=dict)
    accepted: Set[str] = field(default_factory=set)

    def is_tracked(self, label: str) -> bool:
        return label in self.first_seen_at

    def start(self, label: str, now: float) -> None:
        self.first_seen_at[label] = now
        self.alert_raised[label] = False

    def forget(self, label: str) -> None:
        self.first_seen_at.pop(label, None)
        self.alert_raised.pop(label, None)

    def accept(self, label: str) -> None:
        self.accepted.add(label)
        self.forget(label)

    def unaccept(self, label: str) -> None:
        self.accepted.discard(label)

    def clear(self) -> None:
        self.first_seen_at.clear()
        self.alert_raised.clear()
        self.accepted.clear()


ProposalSink = Callable[[AcceptanceProposal], None]


class SustainedDetectionTracker:
    """
    Not thread-safe: callers must serialize `observe` / `accept` / `unaccept`.

    The optional `on_propose` sink is a plain callback; the tracker keeps no
    reference to whoever owns it beyond the callable itself.
    """

    def __init__(
        self,
        cfg: SustainedDetectionConfig = SustainedDetectionConfig(),
        *,
        on_propose: Optional[ProposalSink] = None,
        clock: Callable[[], float] = time.monotonic,
        accepted: Iterable[str] = (),
    ):
        self.cfg = cfg
        self.on_propose = on_propose
        self._clock = clock
        self.state = TrackingState()
        for label in accepted:
            self.state.accept(label)

    @property
    def accepted(self) -> FrozenSet[str]:
        return frozenset(self.state.accepted)

    def state_of(self, label: str) -> LabelState:
        if label in self.state.accepted:
            return LabelState.ACCEPTED
        if not self.state.is_tracked(label):
            return LabelState.ABSENT
        if self.state.alert_raised.get(label, False):
            return LabelState.ELIGIBLE
        return LabelState.TRACKING

    def observe(self, frame_detections: Sequence[Detection], now: Optional[float] = None) -> ObserveResult:
        if now is None:
            now = self._clock()
        state = self.state
        proposals: List[AcceptanceProposal] = []

        for det in frame_detections:
            label = det.class_label
            if label not in self.cfg.eligible_labels or label in state.accepted:
                continue

            if not state.is_tracked(label):
                state.start(label, now)
                logger.debug("Started tracking %s at %.3f", label, now)

            elapsed = now - state.first_seen_at[label]
            if elapsed >= self.cfg.sustained_seconds and not state.alert_raised[label]:
                state.alert_raised[label] = True
                proposals.append(AcceptanceProposal(label=label, first_seen_at=state.first_seen_at[label], time_s=now))
                logger.info("%s visible for %.1fs, proposing acceptance", label, elapsed)

        visible = {d.class_label for d in frame_detections}
        for label in [lbl for lbl in state.first_seen_at if lbl not in visible]:
            state.forget(label)
            logger.debug("%s no longer visible, tracking reset", label)

        if self.on_propose is not None:
            for proposal in proposals:
                self.on_propose(proposal)

        detections = [d for d in frame_detections if d.class_label not in state.accepted]
        return ObserveResult(detections=detections, proposals=proposals)

    def accept(self, label: str) -> None:
        self.state.accept(label)
        logger.debug("Accepted %s", label)

    def unaccept(self, label: str) -> None:
        self.state.unaccept(label)
        logger.debug("Un-accepted %s", label)

    def reset(self) -> None:
        """
        Drop all tracking and acceptance state (e.g., a new camera session).
        """
        self.state.clear()
