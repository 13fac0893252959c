import unittest

import numpy as np

from Ingredient_Detection.ingest import FrameSource


class _FakeCapture:
    def __init__(self, n: int):
        self.remaining = n
        self.released = False

    def read(self):
        if self.remaining <= 0:
            return False, None
        self.remaining -= 1
        return True, np.zeros((4, 4, 3), dtype=np.uint8)

    def release(self) -> None:
        self.released = True


class TestFrameSource(unittest.TestCase):
    def test_media_time_follows_frame_index(self) -> None:
        source = FrameSource(_FakeCapture(3), fps=25.0, media_time=True)
        stamps = [(i, now) for i, now, _ in source]
        self.assertEqual(stamps, [(0, 0.0), (1, 0.04), (2, 0.08)])
        self.assertEqual(source.frames_read, 3)

    def test_wall_clock_is_relative_to_start(self) -> None:
        ticks = iter([100.0, 100.5, 101.25])
        source = FrameSource(_FakeCapture(2), clock=lambda: next(ticks))
        self.assertEqual([now for _, now, _ in source], [0.5, 1.25])

    def test_media_time_needs_fps(self) -> None:
        with self.assertRaises(ValueError):
            FrameSource(_FakeCapture(1), media_time=True)

    def test_context_manager_releases(self) -> None:
        cap = _FakeCapture(1)
        with FrameSource(cap, fps=30.0, media_time=True) as source:
            list(source)
        self.assertTrue(cap.released)

    def test_open_requires_exactly_one_source(self) -> None:
        with self.assertRaises(ValueError):
            FrameSource.open()
        with self.assertRaises(ValueError):
            FrameSource.open(video="clip.mp4", webcam=0)


if __name__ == "__main__":
    unittest.main()
