from __future__ import annotations

from typing import Iterable, List

from .types import Detection


def map_to_original(
    detections: Iterable[Detection],
    input_size: int,
    orig_width: int,
    orig_height: int,
) -> List[Detection]:
    """
    Rescale model-space detections to original image pixels.

    Each axis is scaled independently (the preprocessor stretches rather than
    letterboxes). Results are not clamped to the image; renderers should
    clip.
    """

    if input_size < 1:
        raise ValueError(f"input_size must be >= 1, got {input_size}")
    scale_x = orig_width / input_size
    scale_y = orig_height / input_size
    return [det.scaled(scale_x, scale_y) for det in detections]


def clip_to_image(det: Detection, width: int, height: int) -> Detection:
    x1 = min(max(det.x1, 0.0), float(width))
    y1 = min(max(det.y1, 0.0), float(height))
    x2 = min(max(det.x2, 0.0), float(width))
    y2 = min(max(det.y2, 0.0), float(height))
    return Detection(
        label=det.label,
        confidence=det.confidence,
        x1=x1,
        y1=y1,
        x2=x2,
        y2=y2,
        class_id=det.class_id,
    )
