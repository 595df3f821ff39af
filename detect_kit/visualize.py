from __future__ import annotations

from typing import Iterable, Optional, Tuple

import cv2
import numpy as np

from .mapping import clip_to_image
from .types import Detection


# Small deterministic palette (BGR), indexed by class id.
_PALETTE = [
    (56, 56, 255),
    (151, 157, 255),
    (31, 112, 255),
    (29, 178, 255),
    (49, 210, 207),
    (10, 249, 72),
    (23, 204, 146),
    (134, 219, 61),
    (52, 147, 26),
    (187, 212, 0),
    (168, 153, 44),
    (255, 194, 0),
    (147, 69, 52),
    (255, 115, 100),
    (236, 24, 0),
    (255, 56, 132),
    (133, 0, 82),
    (255, 56, 203),
    (200, 149, 255),
    (199, 55, 255),
]


def color_for_class_id(class_id: Optional[int]) -> Tuple[int, int, int]:
    """
    Deterministic BGR color for a class id.
    """

    if class_id is None:
        return (0, 255, 255)
    if 0 <= class_id < len(_PALETTE):
        return _PALETTE[class_id]

    # Seeded RNG for ids past the palette.
    rng = np.random.default_rng(int(class_id))
    bgr = rng.integers(0, 256, size=3, dtype=np.uint8)
    return int(bgr[0]), int(bgr[1]), int(bgr[2])


def format_label(det: Detection) -> str:
    return f"{det.label} {det.confidence * 100:.1f}%"


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    box_thickness: int = 2,
    font_scale: float = 0.6,
    font_thickness: int = 1,
    text_color: Tuple[int, int, int] = (255, 255, 255),
) -> np.ndarray:
    """
    Draw boxes and "label 87.5%" captions on a copy of an OpenCV BGR image.

    Detections must already be in original image coordinates. Boxes outside
    the frame are clipped before drawing.
    """

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for det in detections:
        clipped = clip_to_image(det, w - 1, h - 1)
        x1i, y1i, x2i, y2i = (int(round(v)) for v in clipped.as_xyxy())

        color = color_for_class_id(det.class_id)
        cv2.rectangle(out, (x1i, y1i), (x2i, y2i), color, thickness=box_thickness)

        label = format_label(det)
        (tw, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        # Place label above the box if possible, else inside.
        y_text_top = y1i - th - baseline
        if y_text_top < 0:
            y_text_top = y1i

        x_text_right = min(x1i + tw, w - 1)
        y_text_bottom = min(y_text_top + th + baseline, h - 1)

        cv2.rectangle(out, (x1i, y_text_top), (x_text_right, y_text_bottom), color, thickness=-1)
        cv2.putText(
            out,
            label,
            (x1i, min(y_text_top + th, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            text_color,
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out
