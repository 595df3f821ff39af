from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np
from tqdm import tqdm

from detect_kit import DecoderConfig, DetectionDecoder, LabelTable, NMSConfig, suppress


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms_sorted = sorted(v * 1000.0 for v in values_s)
    return TimingSummary(
        n=len(ms_sorted),
        mean_ms=float(statistics.fmean(ms_sorted)),
        p50_ms=_percentile(ms_sorted, 50.0),
        p90_ms=_percentile(ms_sorted, 90.0),
        p95_ms=_percentile(ms_sorted, 95.0),
    )


def _format_summary(label: str, s: TimingSummary) -> str:
    return (
        f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms "
        f"p90={s.p90_ms:.3f}ms p95={s.p95_ms:.3f}ms"
    )


def synthetic_output(anchors: int, classes: int, imgsz: int, seed: int = 0) -> np.ndarray:
    """
    Random (1, A, 5 + C) tensor with clustered boxes so NMS has work to do.
    """

    rng = np.random.default_rng(seed)
    centers = rng.uniform(0, imgsz, size=(max(1, anchors // 50), 2))
    picks = rng.integers(0, centers.shape[0], size=anchors)
    cxcy = centers[picks] + rng.normal(0, 6.0, size=(anchors, 2))
    wh = rng.uniform(20, 120, size=(anchors, 2))
    obj = rng.uniform(0.0, 1.0, size=(anchors, 1))
    cls = rng.uniform(0.0, 1.0, size=(anchors, classes))
    return np.concatenate([cxcy, wh, obj, cls], axis=1).astype(np.float32)[None, ...]


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark decode + per-class NMS on synthetic model outputs.")
    parser.add_argument("--anchors", type=int, default=25200, help="Rows in the synthetic output tensor.")
    parser.add_argument("--classes", type=int, default=80, help="Number of classes.")
    parser.add_argument("--imgsz", type=int, default=640, help="Model input size.")
    parser.add_argument("--conf", type=float, default=0.3, help="Objectness and confidence threshold.")
    parser.add_argument("--iou", type=float, default=0.3, help="IoU threshold for NMS.")
    parser.add_argument("--max-results", type=int, default=10, help="Max detections to keep after NMS.")
    parser.add_argument("--warmup", type=int, default=5, help="Warmup iterations to run but not record.")
    parser.add_argument("--repeats", type=int, default=50, help="Timed iterations.")
    args = parser.parse_args()

    if args.anchors < 1:
        raise ValueError("--anchors must be >= 1")
    if args.classes < 1:
        raise ValueError("--classes must be >= 1")
    if args.repeats < 1:
        raise ValueError("--repeats must be >= 1")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")

    labels = LabelTable(f"class_{i}" for i in range(args.classes))
    decoder = DetectionDecoder(labels, DecoderConfig(objectness_threshold=args.conf, confidence_threshold=args.conf))
    nms_cfg = NMSConfig(iou_threshold=args.iou, max_results=args.max_results)
    raw = synthetic_output(args.anchors, args.classes, args.imgsz)

    t_decode: List[float] = []
    t_nms: List[float] = []
    candidates = 0
    kept = 0

    for i in tqdm(range(args.warmup + args.repeats), desc="postprocess"):
        t0 = time.perf_counter()
        dets = decoder.decode(raw, args.imgsz)
        t1 = time.perf_counter()
        final = suppress(dets, nms_cfg)
        t2 = time.perf_counter()
        if i < args.warmup:
            continue
        t_decode.append(t1 - t0)
        t_nms.append(t2 - t1)
        candidates, kept = len(dets), len(final)

    print(f"anchors={args.anchors} classes={args.classes} candidates={candidates} kept={kept}")
    print(_format_summary("decode", _summarize_ms(t_decode)))
    print(_format_summary("nms", _summarize_ms(t_nms)))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
