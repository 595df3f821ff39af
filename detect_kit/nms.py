from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .types import Detection


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.3
    max_results: int = 10

    def __post_init__(self) -> None:
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError(f"iou_threshold must be in [0, 1], got {self.iou_threshold}")
        if self.max_results < 0:
            raise ValueError(f"max_results must be >= 0, got {self.max_results}")


def iou(a: Detection, b: Detection) -> float:
    """
    Intersection-over-union of two axis-aligned boxes.

    Disjoint boxes give 0. A box with zero (or negative) area gives 0 rather
    than NaN.
    """

    area_a = (a.x2 - a.x1) * (a.y2 - a.y1)
    area_b = (b.x2 - b.x1) * (b.y2 - b.y1)
    if area_a <= 0.0 or area_b <= 0.0:
        return 0.0

    ix1 = max(a.x1, b.x1)
    iy1 = max(a.y1, b.y1)
    ix2 = min(a.x2, b.x2)
    iy2 = min(a.y2, b.y2)
    if ix2 < ix1 or iy2 < iy1:
        return 0.0

    inter = (ix2 - ix1) * (iy2 - iy1)
    union = area_a + area_b - inter
    if union <= 0.0:
        return 0.0
    return float(inter / union)


def iou_one_to_many(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    IoU between one xyxy box (4,) and many (N, 4). Same degenerate-box rules
    as `iou`.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    if boxes.shape[0] == 0:
        return np.empty((0,), dtype=np.float64)

    x1, y1, x2, y2 = (float(v) for v in box)
    area = (x2 - x1) * (y2 - y1)
    areas = (boxes[:, 2] - boxes[:, 0]) * (boxes[:, 3] - boxes[:, 1])

    xx1 = np.maximum(x1, boxes[:, 0])
    yy1 = np.maximum(y1, boxes[:, 1])
    xx2 = np.minimum(x2, boxes[:, 2])
    yy2 = np.minimum(y2, boxes[:, 3])

    w = np.maximum(0.0, xx2 - xx1)
    h = np.maximum(0.0, yy2 - yy1)
    inter = w * h
    union = area + areas - inter

    out = np.zeros(boxes.shape[0], dtype=np.float64)
    valid = (area > 0.0) & (areas > 0.0) & (union > 0.0)
    out[valid] = inter[valid] / union[valid]
    return out


def nms(
    boxes: np.ndarray,
    scores: np.ndarray,
    labels: Optional[Sequence[object]],
    cfg: NMSConfig,
) -> np.ndarray:
    """
    Greedy per-label NMS with a global cap.

    Expects boxes shape (N, 4) in xyxy, scores shape (N,) and one label per
    box (any hashable; `None` puts every box in the same group). Returns the
    indices of kept boxes in descending-score order, at most
    `cfg.max_results` of them.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    n = boxes.shape[0]
    if n == 0 or cfg.max_results == 0:
        return np.empty((0,), dtype=np.int64)
    if scores.shape[0] != n:
        raise ValueError(f"boxes and scores disagree: {n} boxes, {scores.shape[0]} scores")

    if labels is None:
        groups = np.zeros(n, dtype=np.int64)
    else:
        if len(labels) != n:
            raise ValueError(f"boxes and labels disagree: {n} boxes, {len(labels)} labels")
        # Map arbitrary labels to integer group ids so equality is a vector op.
        _, groups = np.unique(np.asarray([str(lbl) for lbl in labels]), return_inverse=True)
        groups = groups.reshape(-1)

    # Stable: equal scores keep input order.
    order = np.argsort(-scores, kind="stable")
    boxes = boxes[order]
    groups = groups[order]

    suppressed = np.zeros(n, dtype=bool)
    keep: List[int] = []

    for i in range(n):
        if suppressed[i]:
            continue
        keep.append(int(order[i]))
        if len(keep) >= cfg.max_results:
            break

        rest = np.arange(i + 1, n)
        rest = rest[~suppressed[rest] & (groups[rest] == groups[i])]
        if rest.size == 0:
            continue
        overlaps = iou_one_to_many(boxes[i], boxes[rest])
        suppressed[rest[overlaps > cfg.iou_threshold]] = True

    return np.array(keep, dtype=np.int64)


def suppress(detections: Sequence[Detection], cfg: NMSConfig = NMSConfig()) -> List[Detection]:
    """
    Remove same-label duplicates. Detections with different labels never
    suppress each other, even with identical boxes.

    The result is sorted by confidence (descending) and capped at
    `cfg.max_results`.
    """

    if not detections:
        return []

    boxes = np.array([d.as_xyxy() for d in detections], dtype=np.float64)
    scores = np.array([d.confidence for d in detections], dtype=np.float64)
    keep = nms(boxes, scores, [d.label for d in detections], cfg)

    kept = [detections[int(i)] for i in keep]
    logger.debug("NMS kept %d of %d candidates", len(kept), len(detections))
    return kept
