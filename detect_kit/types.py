from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class NormalizedRect:
    """
    Box in image-fraction coordinates, stored as top-left + size.

    Each field is clamped to [0, 1] on its own, so `x + width` may still exceed 1.
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_xywh(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height


@dataclass(frozen=True)
class Detection:
    """
    One labeled detection for a single frame.
    """

    box: NormalizedRect
    confidence: float
    class_label: str
    class_id: Optional[int] = None

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.box.as_xyxy()
