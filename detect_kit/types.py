from dataclasses import dataclass, replace
from typing import Optional, Tuple


@dataclass(frozen=True)
class Detection:
    """
    One labeled box. Coordinates are either model-space (0..input_size) or
    original-image pixels; the instance itself does not record which.
    """

    label: str
    confidence: float
    x1: float
    y1: float
    x2: float
    y2: float
    class_id: Optional[int] = None

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def area(self) -> float:
        # Degenerate or inverted boxes count as empty.
        return max(0.0, self.width) * max(0.0, self.height)

    def scaled(self, sx: float, sy: float) -> "Detection":
        return replace(
            self,
            x1=self.x1 * sx,
            y1=self.y1 * sy,
            x2=self.x2 * sx,
            y2=self.y2 * sy,
        )
