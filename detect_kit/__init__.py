"""
Detection post-processing for single-stage, dense-grid detectors.

Turns raw pixels into a model tensor, and the model's (1, A, 5 + C) output
back into a short, per-class deduplicated list of labeled boxes in original
image pixels. Inference runtimes are optional; everything else needs only
NumPy and OpenCV.
"""

from .types import Detection
from .errors import DetectKitError, InferenceFailure, InvalidImage, ModelLoadFailure
from .labels import LabelTable, load_labels
from .preprocess import PreprocessResult, prepare, preprocess, read_image
from .decode import DecoderConfig, DetectionDecoder, decode
from .nms import NMSConfig, iou, nms, suppress
from .mapping import clip_to_image, map_to_original
from .engine import CallableEngine, InferenceEngine, LockedEngine
from .config import DetectorConfig, load_detector_config
from .runtime import DetectionCycle, DetectorPipeline, find_project_root, load_pipeline, resolve_path
from .visualize import draw_detections

__all__ = [
    "Detection",
    "DetectKitError",
    "InferenceFailure",
    "InvalidImage",
    "ModelLoadFailure",
    "LabelTable",
    "load_labels",
    "PreprocessResult",
    "prepare",
    "preprocess",
    "read_image",
    "DecoderConfig",
    "DetectionDecoder",
    "decode",
    "NMSConfig",
    "iou",
    "nms",
    "suppress",
    "clip_to_image",
    "map_to_original",
    "CallableEngine",
    "InferenceEngine",
    "LockedEngine",
    "DetectorConfig",
    "load_detector_config",
    "DetectionCycle",
    "DetectorPipeline",
    "find_project_root",
    "load_pipeline",
    "resolve_path",
    "draw_detections",
]
