from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Union

from .decode import DecoderConfig
from .nms import NMSConfig


PathLike = Union[str, Path]


@dataclass(frozen=True)
class DetectorConfig:
    input_size: int = 640
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    nms: NMSConfig = field(default_factory=NMSConfig)

    def __post_init__(self) -> None:
        if self.input_size < 1:
            raise ValueError("input_size must be >= 1")


_ALLOWED_KEYS = {
    "input_size",
    "objectness_threshold",
    "confidence_threshold",
    "normalized_coords",
    "iou_threshold",
    "max_results",
}


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    if key not in payload:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_int(payload: Dict[str, Any], key: str, default: int) -> int:
    if key not in payload:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _optional_bool(payload: Dict[str, Any], key: str, default: bool) -> bool:
    if key not in payload:
        return default
    value = payload[key]
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")
    return value


def detector_config_from_dict(payload: Dict[str, Any]) -> DetectorConfig:
    if not isinstance(payload, dict):
        raise ValueError("Detector config must be a JSON object")

    unknown = sorted(set(payload.keys()) - _ALLOWED_KEYS)
    if unknown:
        raise ValueError(f"Unknown detector config keys: {unknown}")

    base_decoder = DecoderConfig()
    base_nms = NMSConfig()
    decoder = DecoderConfig(
        objectness_threshold=_optional_number(payload, "objectness_threshold", base_decoder.objectness_threshold),
        confidence_threshold=_optional_number(payload, "confidence_threshold", base_decoder.confidence_threshold),
        normalized_coords=_optional_bool(payload, "normalized_coords", base_decoder.normalized_coords),
    )
    nms = NMSConfig(
        iou_threshold=_optional_number(payload, "iou_threshold", base_nms.iou_threshold),
        max_results=_optional_int(payload, "max_results", base_nms.max_results),
    )
    return DetectorConfig(
        input_size=_optional_int(payload, "input_size", DetectorConfig.input_size),
        decoder=decoder,
        nms=nms,
    )


def load_detector_config(path: PathLike) -> DetectorConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Detector config not found: {p}")
    raw = p.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector config JSON: {p}") from exc
    return detector_config_from_dict(payload)


def detector_config_to_dict(cfg: DetectorConfig) -> Dict[str, Any]:
    return {
        "input_size": cfg.input_size,
        "objectness_threshold": cfg.decoder.objectness_threshold,
        "confidence_threshold": cfg.decoder.confidence_threshold,
        "normalized_coords": cfg.decoder.normalized_coords,
        "iou_threshold": cfg.nms.iou_threshold,
        "max_results": cfg.nms.max_results,
    }
