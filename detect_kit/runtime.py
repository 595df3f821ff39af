from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from .config import DetectorConfig
from .decode import DetectionDecoder, rows_of
from .engine import InferenceEngine, LockedEngine
from .errors import InferenceFailure, ModelLoadFailure
from .labels import LabelTable, load_labels
from .mapping import map_to_original
from .nms import suppress
from .preprocess import prepare
from .types import Detection


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery, used to resolve relative model and
    label paths such as `models/yolov5s.onnx`.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Absolute paths are returned as-is; relative ones resolve against `root`,
    or the project root when `root` is "auto"/None.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


@dataclass(frozen=True)
class DetectionCycle:
    detections: List[Detection]
    candidates: int
    timings: Dict[str, float] = field(default_factory=dict)


class DetectorPipeline:
    """
    One synchronous detection cycle: preprocess -> inference -> decode ->
    NMS -> rescale.

    Takes OpenCV BGR images and returns detections in original image pixels,
    highest confidence first, at most `config.nms.max_results` of them. The
    label table and engine are shared read-only between calls; wrap the
    engine in `LockedEngine` when cycles run on several threads.
    """

    def __init__(
        self,
        engine: InferenceEngine,
        labels: Union[LabelTable, Sequence[str]],
        *,
        config: DetectorConfig = DetectorConfig(),
        backend_name: Optional[str] = None,
    ):
        self.engine = engine
        self.labels = labels if isinstance(labels, LabelTable) else LabelTable(labels)
        self.config = config
        self.backend_name = backend_name
        self.decoder = DetectionDecoder(self.labels, config.decoder)

    def _infer(self, tensor: np.ndarray) -> np.ndarray:
        try:
            raw = self.engine.infer(tensor)
        except Exception as exc:
            raise InferenceFailure(f"Inference failed: {exc}") from exc

        if raw is None or not hasattr(raw, "shape"):
            raise InferenceFailure(f"Engine returned {type(raw).__name__}, expected a NumPy array")
        try:
            rows_of(raw)
        except ValueError as exc:
            raise InferenceFailure(str(exc)) from exc
        if not np.issubdtype(np.asarray(raw).dtype, np.floating):
            raise InferenceFailure(f"Engine output must be floating point, got {np.asarray(raw).dtype}")
        return raw

    def run(self, image_bgr: np.ndarray) -> DetectionCycle:
        size = self.config.input_size

        t0 = time.perf_counter()
        prep = prepare(image_bgr, size)
        t1 = time.perf_counter()
        raw = self._infer(prep.tensor)
        t2 = time.perf_counter()
        candidates = self.decoder.decode(raw, size)
        kept = suppress(candidates, self.config.nms)
        t3 = time.perf_counter()
        orig_w, orig_h = prep.orig_size
        detections = map_to_original(kept, size, orig_w, orig_h)

        timings = {"preprocess": t1 - t0, "inference": t2 - t1, "postprocess": t3 - t2}
        logger.debug(
            "Detected %d objects after filtering (%d candidates); pre=%.1fms infer=%.1fms post=%.1fms",
            len(detections),
            len(candidates),
            timings["preprocess"] * 1000.0,
            timings["inference"] * 1000.0,
            timings["postprocess"] * 1000.0,
        )
        return DetectionCycle(detections=detections, candidates=len(candidates), timings=timings)

    def __call__(self, image_bgr: np.ndarray) -> List[Detection]:
        return self.run(image_bgr).detections

    def close(self) -> None:
        close = getattr(self.engine, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "DetectorPipeline":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def infer_backend(model_path: Path) -> str:
    suffix = model_path.suffix.lower()
    if suffix == ".onnx":
        return "onnxruntime"
    if suffix == ".tflite":
        return "tflite"
    if suffix in {".torchscript", ".ts", ".pt"}:
        return "torchscript"
    raise ModelLoadFailure(f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly.")


def load_engine(
    model_path: Path,
    backend: str,
    *,
    onnx_providers: Optional[Sequence[str]] = None,
    torch_device: str = "cpu",
    tflite_threads: Optional[int] = None,
) -> InferenceEngine:
    chosen = backend.lower()
    if chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        return OnnxRuntimeBackend.from_path(model_path, OnnxRuntimeBackendConfig(providers=onnx_providers))

    if chosen == "torchscript":
        from .backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        return TorchScriptBackend.from_path(model_path, TorchScriptBackendConfig(device=torch_device))

    if chosen == "tflite":
        from .backends.tflite_backend import TFLiteBackend, TFLiteBackendConfig

        return TFLiteBackend.from_path(model_path, TFLiteBackendConfig(num_threads=tflite_threads))

    raise ModelLoadFailure(f"Unsupported backend: {backend!r}")


def load_pipeline(
    model_path: PathLike,
    labels_path: PathLike,
    *,
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
    config: DetectorConfig = DetectorConfig(),
    onnx_providers: Optional[Sequence[str]] = None,
    torch_device: str = "cpu",
    tflite_threads: Optional[int] = None,
) -> DetectorPipeline:
    """
    Build a pipeline from files on disk.

        pipe = load_pipeline("models/yolov5s.onnx", "models/labels.txt")

    Relative paths resolve against the project root by default. The backend
    is inferred from the model extension unless given. Any failure to load
    labels or the model raises `ModelLoadFailure`.
    """

    labels = load_labels(resolve_path(labels_path, root=root))
    logger.info("Loaded %d labels from %s", len(labels), labels_path)

    resolved = resolve_path(model_path, root=root)
    chosen = backend or infer_backend(resolved)
    engine = load_engine(
        resolved,
        chosen,
        onnx_providers=onnx_providers,
        torch_device=torch_device,
        tflite_threads=tflite_threads,
    )
    logger.info("Loaded %s model from %s", chosen, resolved)

    return DetectorPipeline(LockedEngine(engine), labels, config=config, backend_name=chosen)
