"""
JSON export of final detections for downstream logging.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .types import Detection


PathLike = Union[str, Path]


def iso_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def detection_to_dict(det: Detection) -> Dict[str, Any]:
    return {
        "label": det.label,
        "class_id": det.class_id,
        "confidence": round(float(det.confidence), 6),
        "bbox": [round(float(v), 2) for v in det.as_xyxy()],
    }


def detections_to_dicts(detections: Iterable[Detection]) -> List[Dict[str, Any]]:
    return [detection_to_dict(d) for d in detections]


def detection_record(
    source: str,
    detections: Iterable[Detection],
    *,
    timings: Optional[Mapping[str, float]] = None,
) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "timestamp": iso_timestamp(),
        "source": source,
        "detections": detections_to_dicts(detections),
    }
    if timings is not None:
        record["timings_ms"] = {k: round(v * 1000.0, 3) for k, v in timings.items()}
    return record


def append_jsonl(path: PathLike, record: Dict[str, Any]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("a", encoding="utf-8") as f:
        f.write(json.dumps(record, ensure_ascii=True, sort_keys=True) + "\n")
    return p
