import unittest
from typing import List

from detect_kit.catalog import ClassCatalog
from detect_kit.types import Detection, NormalizedRect
from Ingredient_Detection.tracker import (
    AcceptanceProposal,
    LabelState,
    SustainedDetectionConfig,
    SustainedDetectionTracker,
)


def _det(label: str, conf: float = 0.8) -> Detection:
    return Detection(box=NormalizedRect(0.1, 0.1, 0.2, 0.2), confidence=conf, class_label=label)


class TestSustainedDetectionTracker(unittest.TestCase):
    def setUp(self) -> None:
        self.events: List[AcceptanceProposal] = []
        self.tracker = SustainedDetectionTracker(
            SustainedDetectionConfig(sustained_seconds=2.0),
            on_propose=self.events.append,
        )

    def _labels(self) -> List[str]:
        return [e.label for e in self.events]

    def test_default_eligible_labels_are_food(self) -> None:
        cfg = SustainedDetectionConfig()
        self.assertIn("apple", cfg.eligible_labels)
        self.assertIn("hot dog", cfg.eligible_labels)
        self.assertNotIn("person", cfg.eligible_labels)
        self.assertEqual(cfg.sustained_seconds, 2.0)

    def test_fires_once_when_dwell_reached(self) -> None:
        r0 = self.tracker.observe([_det("apple")], now=10.0)
        r1 = self.tracker.observe([_det("apple")], now=11.25)
        r2 = self.tracker.observe([_det("apple")], now=12.5)
        self.assertEqual(r0.proposals, [])
        self.assertEqual(r1.proposals, [])
        self.assertEqual([p.label for p in r2.proposals], ["apple"])
        self.assertEqual(self._labels(), ["apple"])
        self.assertEqual(r2.proposals[0].first_seen_at, 10.0)
        self.assertAlmostEqual(r2.proposals[0].elapsed_s, 2.5)

        self.tracker.observe([_det("apple")], now=13.0)
        self.tracker.observe([_det("apple")], now=20.0)
        self.assertEqual(self._labels(), ["apple"])
        self.assertEqual(self.tracker.state_of("apple"), LabelState.ELIGIBLE)

    def test_threshold_is_inclusive(self) -> None:
        self.tracker.observe([_det("apple")], now=0.0)
        result = self.tracker.observe([_det("apple")], now=2.0)
        self.assertEqual([p.label for p in result.proposals], ["apple"])

    def test_missed_frame_resets_timer(self) -> None:
        self.tracker.observe([_det("apple")], now=0.0)
        self.tracker.observe([_det("apple")], now=1.5)
        self.tracker.observe([], now=1.7)
        self.assertEqual(self.tracker.state_of("apple"), LabelState.ABSENT)
        self.tracker.observe([_det("apple")], now=1.9)
        self.tracker.observe([_det("apple")], now=2.9)
        self.assertEqual(self.events, [])
        self.assertEqual(self.tracker.state_of("apple"), LabelState.TRACKING)

    def test_window_restart_can_fire_again(self) -> None:
        self.tracker.observe([_det("apple")], now=0.0)
        self.tracker.observe([_det("apple")], now=2.0)
        self.tracker.observe([_det("banana")], now=2.5)
        self.tracker.observe([_det("apple")], now=3.0)
        self.tracker.observe([_det("apple")], now=5.0)
        self.assertEqual(self._labels(), ["apple", "apple"])

    def test_accept_hides_label_and_stops_tracking(self) -> None:
        self.tracker.observe([_det("banana")], now=0.0)
        self.tracker.accept("banana")
        self.assertEqual(self.tracker.state_of("banana"), LabelState.ACCEPTED)
        self.assertEqual(self.tracker.state.first_seen_at, {})
        self.assertEqual(self.tracker.state.alert_raised, {})

        apple = _det("apple")
        result = self.tracker.observe([_det("banana"), apple], now=1.0)
        self.assertEqual(result.detections, [apple])
        result = self.tracker.observe([_det("banana")], now=5.0)
        self.assertEqual(result.detections, [])
        self.assertEqual(self.events, [])

    def test_unaccept_makes_label_trackable_again(self) -> None:
        self.tracker.accept("banana")
        self.tracker.observe([_det("banana")], now=0.0)
        self.tracker.unaccept("banana")
        self.assertEqual(self.tracker.state_of("banana"), LabelState.ABSENT)

        r = self.tracker.observe([_det("banana")], now=1.0)
        self.assertEqual(len(r.detections), 1)
        self.tracker.observe([_det("banana")], now=3.0)
        self.assertEqual(self._labels(), ["banana"])

    def test_accept_unseen_label_is_preemptive(self) -> None:
        self.tracker.accept("pizza")
        self.tracker.unaccept("never-seen")
        result = self.tracker.observe([_det("pizza")], now=0.0)
        self.assertEqual(result.detections, [])

    def test_non_eligible_labels_are_reported_not_tracked(self) -> None:
        person = _det("person")
        result = self.tracker.observe([person], now=0.0)
        self.tracker.observe([person], now=5.0)
        self.assertEqual(result.detections, [person])
        self.assertEqual(self.tracker.state_of("person"), LabelState.ABSENT)
        self.assertEqual(self.events, [])

    def test_duplicate_label_in_frame_fires_once(self) -> None:
        self.tracker.observe([_det("apple"), _det("apple", 0.5)], now=0.0)
        self.tracker.observe([_det("apple"), _det("apple", 0.5)], now=2.0)
        self.assertEqual(self._labels(), ["apple"])

    def test_independent_labels(self) -> None:
        self.tracker.observe([_det("apple")], now=0.0)
        self.tracker.observe([_det("apple"), _det("carrot")], now=1.0)
        self.tracker.observe([_det("apple"), _det("carrot")], now=2.0)
        self.tracker.observe([_det("apple"), _det("carrot")], now=3.0)
        self.assertEqual(self._labels(), ["apple", "carrot"])

    def test_state_keys_stay_consistent(self) -> None:
        self.tracker.observe([_det("apple"), _det("banana")], now=0.0)
        self.tracker.observe([_det("banana")], now=1.0)
        self.tracker.accept("banana")
        st = self.tracker.state
        self.assertEqual(set(st.first_seen_at), set(st.alert_raised))
        self.assertEqual(st.first_seen_at, {})

    def test_clock_is_used_when_now_is_omitted(self) -> None:
        t = [100.0]
        tracker = SustainedDetectionTracker(SustainedDetectionConfig(sustained_seconds=1.0), clock=lambda: t[0])
        tracker.observe([_det("apple")])
        t[0] = 101.0
        result = tracker.observe([_det("apple")])
        self.assertEqual([p.label for p in result.proposals], ["apple"])

    def test_callback_can_accept_immediately(self) -> None:
        tracker = SustainedDetectionTracker(SustainedDetectionConfig(sustained_seconds=0.0))
        tracker.on_propose = lambda p: tracker.accept(p.label)
        result = tracker.observe([_det("apple")], now=0.0)
        self.assertEqual([p.label for p in result.proposals], ["apple"])
        self.assertEqual(result.detections, [])
        self.assertEqual(tracker.accepted, frozenset({"apple"}))

    def test_reset_and_initial_accepted(self) -> None:
        tracker = SustainedDetectionTracker(accepted=["apple"])
        self.assertEqual(tracker.state_of("apple"), LabelState.ACCEPTED)
        tracker.observe([_det("banana")], now=0.0)
        tracker.reset()
        self.assertEqual(tracker.state_of("apple"), LabelState.ABSENT)
        self.assertEqual(tracker.state_of("banana"), LabelState.ABSENT)

    def test_for_category(self) -> None:
        catalog = ClassCatalog.from_labels(["cup", "fork", "apple"], {"kitchen": ["cup", "fork"]})
        cfg = SustainedDetectionConfig.for_category(catalog, "kitchen", sustained_seconds=1.0)
        self.assertEqual(cfg.eligible_labels, frozenset({"cup", "fork"}))
        with self.assertRaises(ValueError):
            SustainedDetectionConfig(sustained_seconds=-1.0)


if __name__ == "__main__":
    unittest.main()
