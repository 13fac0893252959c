from __future__ import annotations

import logging
import time
from typing import Callable, Iterator, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)


def _positive(value) -> Optional[float]:
    return float(value) if value and value > 0 else None


class FrameSource:
    """
    Frames from a capture, each stamped with the time the detector should see.

    Video files run on media time (`index / fps`) so dwell thresholds match the
    footage regardless of how fast it decodes. Live sources and files without a
    usable FPS fall back to the injected monotonic clock.
    """

    def __init__(
        self,
        cap,
        *,
        fps: Optional[float] = None,
        media_time: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        if media_time and fps is None:
            raise ValueError("media_time requires a positive fps")
        self._cap = cap
        self.fps = fps
        self.media_time = media_time
        self._clock = clock
        self.frames_read = 0

    @classmethod
    def open(
        cls,
        *,
        video: Optional[str] = None,
        webcam: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "FrameSource":
        if (video is None) == (webcam is None):
            raise ValueError("Exactly one of video/webcam must be provided.")

        import cv2  # type: ignore

        source = video if video is not None else int(webcam)
        cap = cv2.VideoCapture(source)
        if not cap.isOpened():
            raise RuntimeError(f"Failed to open video source: {source}")

        fps = _positive(cap.get(cv2.CAP_PROP_FPS))
        media_time = video is not None and fps is not None
        logger.info("Opened %s (fps=%s, %s time)", source, fps, "media" if media_time else "wall-clock")
        return cls(cap, fps=fps, media_time=media_time, clock=clock)

    def __iter__(self) -> Iterator[Tuple[int, float, np.ndarray]]:
        """Yields `(index, time_s, frame_bgr)` until the capture runs dry."""
        t0 = self._clock()
        while True:
            ok, frame = self._cap.read()
            if not ok:
                return
            index = self.frames_read
            self.frames_read += 1
            now = index / self.fps if self.media_time else self._clock() - t0
            yield index, now, frame

    def release(self) -> None:
        self._cap.release()

    def __enter__(self) -> "FrameSource":
        return self

    def __exit__(self, *exc) -> None:
        self.release()
