from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

import numpy as np

from .labels import LabelTable
from .types import Detection


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecoderConfig:
    """
    Thresholds for turning raw anchor rows into candidates.

    Both thresholds default to the same value; objectness is checked first as
    a cheap pre-filter, then objectness * best class score.
    """

    objectness_threshold: float = 0.3
    confidence_threshold: float = 0.3
    # Some exports emit cx, cy, w, h in [0, 1] instead of input pixels.
    normalized_coords: bool = False

    def __post_init__(self) -> None:
        if not 0.0 <= self.objectness_threshold <= 1.0:
            raise ValueError(f"objectness_threshold must be in [0, 1], got {self.objectness_threshold}")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(f"confidence_threshold must be in [0, 1], got {self.confidence_threshold}")


class DetectionDecoder:
    """
    Decode a dense YOLO-style output into model-space candidates.

    Supported layout (per image):
    - (1, A, 5 + C) or (A, 5 + C): [cx, cy, w, h, obj, class_scores...]

    Rows that fail a threshold, carry NaN or infinite values, score above 1 or
    resolve to a class index outside the label table are dropped silently.
    Boxes are not clamped.
    """

    def __init__(self, labels: Union[LabelTable, Sequence[str]], cfg: DecoderConfig = DecoderConfig()):
        self.labels = labels if isinstance(labels, LabelTable) else LabelTable(labels)
        self.cfg = cfg

    def decode(self, raw_output: np.ndarray, input_size: int) -> List[Detection]:
        boxes_xyxy, scores, class_ids = self.decode_arrays(raw_output, input_size)
        names = self.labels.names
        return [
            Detection(
                label=names[int(cls_id)],
                confidence=float(score),
                x1=float(x1),
                y1=float(y1),
                x2=float(x2),
                y2=float(y2),
                class_id=int(cls_id),
            )
            for (x1, y1, x2, y2), score, cls_id in zip(boxes_xyxy, scores, class_ids)
        ]

    def decode_arrays(self, raw_output: np.ndarray, input_size: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Array form of `decode`: returns (boxes_xyxy (K, 4), scores (K,),
        class_ids (K,)) for the rows that survive every filter.
        """

        if input_size < 1:
            raise ValueError(f"input_size must be >= 1, got {input_size}")
        p = rows_of(raw_output)

        empty = (
            np.empty((0, 4), dtype=np.float32),
            np.empty((0,), dtype=np.float32),
            np.empty((0,), dtype=np.int64),
        )
        if p.shape[0] == 0:
            return empty

        # Cheap pre-filter on objectness before the class scan. NaN compares False.
        objectness = p[:, 4]
        p = p[(objectness >= self.cfg.objectness_threshold) & (objectness <= 1.0)]
        if p.shape[0] == 0:
            return empty

        class_scores = p[:, 5:]
        # argmax returns the first maximum, so ties go to the lowest index.
        class_ids = np.argmax(class_scores, axis=1)
        class_conf = class_scores[np.arange(class_scores.shape[0]), class_ids]
        scores = p[:, 4] * class_conf

        # A row whose best class score is not positive has no class at all.
        # Non-finite geometry and scores outside [0, 1] (raw logits, inf) are dropped.
        keep = (
            (scores >= self.cfg.confidence_threshold)
            & (scores <= 1.0)
            & (class_conf > 0)
            & (class_ids < len(self.labels))
            & np.isfinite(p[:, 0:4]).all(axis=1)
        )
        p, scores, class_ids = p[keep], scores[keep], class_ids[keep]
        if p.shape[0] == 0:
            return empty

        # Convert cxcywh -> xyxy
        cx, cy, w_box, h_box = p[:, 0:4].T
        if self.cfg.normalized_coords:
            cx, cy, w_box, h_box = (v * float(input_size) for v in (cx, cy, w_box, h_box))
        x1 = cx - w_box / 2
        y1 = cy - h_box / 2
        x2 = cx + w_box / 2
        y2 = cy + h_box / 2
        boxes_xyxy = np.stack([x1, y1, x2, y2], axis=1)

        return boxes_xyxy, scores, class_ids.astype(np.int64)


def rows_of(raw_output: np.ndarray) -> np.ndarray:
    """
    View a raw output tensor as (A, 5 + C) rows. Does not copy or modify the
    caller's array.
    """

    p = np.asarray(raw_output)
    if p.ndim == 3:
        if p.shape[0] != 1:
            raise ValueError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
        p = p[0]
    if p.ndim != 2:
        raise ValueError(f"Unsupported output shape: {p.shape}; expected (1, A, 5 + C)")
    if p.shape[1] < 6:
        raise ValueError(f"Output rows need at least 6 columns (box, objectness, one class), got {p.shape[1]}")
    return p


def decode(
    raw_output: np.ndarray,
    input_size: int,
    labels: Union[LabelTable, Sequence[str]],
    cfg: DecoderConfig = DecoderConfig(),
) -> List[Detection]:
    detections = DetectionDecoder(labels, cfg).decode(raw_output, input_size)
    logger.debug("Decoded %d candidates", len(detections))
    return detections
