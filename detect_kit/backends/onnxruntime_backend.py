from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import numpy as np

from ..errors import ModelLoadFailure


PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name/output_name: override auto-selected I/O names if needed
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None


class OnnxRuntimeBackend:
    """
    Engine around an `onnxruntime.InferenceSession`. Feeds the NHWC float32
    tensor produced by `detect_kit.preprocess` to the first (or configured)
    input and returns the selected output as a NumPy array.
    """

    def __init__(self, session: Any, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        self.session = session
        self.input_name = cfg.input_name or session.get_inputs()[0].name
        self.output_name = cfg.output_name or session.get_outputs()[0].name

    @classmethod
    def from_path(
        cls, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()
    ) -> "OnnxRuntimeBackend":
        try:
            import onnxruntime as ort  # type: ignore
        except ImportError as e:  # pragma: no cover
            raise ModelLoadFailure(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        path = Path(model_path)
        if not path.exists():
            raise ModelLoadFailure(f"Model not found: {path}")

        providers = list(cfg.providers) if cfg.providers is not None else None
        try:
            session = ort.InferenceSession(str(path), sess_options=ort.SessionOptions(), providers=providers)
        except Exception as e:
            raise ModelLoadFailure(f"Could not create ONNX Runtime session for {path}: {e}") from e
        return cls(session, cfg)

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self.session.get_providers())

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        outputs = self.session.run([self.output_name], {self.input_name: tensor})
        return np.asarray(outputs[0])
