from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np

from ..errors import ModelLoadFailure


PathLike = Union[str, Path]


@dataclass(frozen=True)
class TFLiteBackendConfig:
    num_threads: Optional[int] = None
    output_index: int = 0


def _quantize(tensor: np.ndarray, details: dict) -> np.ndarray:
    dtype = np.dtype(details["dtype"])
    if not np.issubdtype(dtype, np.integer):
        return tensor.astype(dtype, copy=False)
    scale, zero_point = details.get("quantization", (0.0, 0))
    if scale:
        values = tensor / scale + zero_point
    else:
        # Unparameterised uint8 inputs take raw pixel values.
        values = tensor * 255.0
    info = np.iinfo(dtype)
    return np.clip(np.rint(values), info.min, info.max).astype(dtype)


def _dequantize(output: np.ndarray, details: dict) -> np.ndarray:
    scale, zero_point = details.get("quantization", (0.0, 0))
    if scale:
        output = (output.astype(np.float32) - zero_point) * scale
    return np.asarray(output, dtype=np.float32)


class TFLiteBackend:
    """
    Engine around a `tflite_runtime` interpreter with tensors allocated.
    Integer inputs are quantized with the model's own (scale, zero_point),
    integer outputs are dequantized back to float32.
    """

    def __init__(self, interpreter: Any, cfg: TFLiteBackendConfig = TFLiteBackendConfig()):
        self.interpreter = interpreter
        self.input_details = interpreter.get_input_details()[0]
        self.output_details = interpreter.get_output_details()[cfg.output_index]

    @classmethod
    def from_path(cls, model_path: PathLike, cfg: TFLiteBackendConfig = TFLiteBackendConfig()) -> "TFLiteBackend":
        try:
            from tflite_runtime.interpreter import Interpreter  # type: ignore
        except ImportError as e:  # pragma: no cover
            raise ModelLoadFailure(
                "tflite-runtime is required for the TFLite backend. Install with `pip install tflite-runtime`."
            ) from e

        path = Path(model_path)
        if not path.exists():
            raise ModelLoadFailure(f"Model not found: {path}")

        try:
            interpreter = Interpreter(model_path=str(path), num_threads=cfg.num_threads)
            interpreter.allocate_tensors()
        except Exception as e:
            raise ModelLoadFailure(f"Could not load TFLite model {path}: {e}") from e
        return cls(interpreter, cfg)

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        self.interpreter.set_tensor(self.input_details["index"], _quantize(tensor, self.input_details))
        self.interpreter.invoke()
        output = self.interpreter.get_tensor(self.output_details["index"])
        return _dequantize(output, self.output_details)
