from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import numpy as np

from ..errors import ModelLoadFailure


PathLike = Union[str, Path]


@dataclass(frozen=True)
class TorchScriptBackendConfig:
    """
    - device: "cpu" or "cuda" (if available)
    - half: cast input to float16 (only if the model expects it)
    - output_index: if the model returns multiple outputs, select this index
    """

    device: str = "cpu"
    half: bool = False
    output_index: int = 0


def _import_torch():
    try:
        import torch  # type: ignore
    except ImportError as e:  # pragma: no cover
        raise ModelLoadFailure("torch is required for the TorchScript backend. Install with `pip install torch`.") from e
    return torch


class TorchScriptBackend:
    """
    Engine around a loaded TorchScript (or any eval-mode torch) module.
    Takes the same NHWC tensor as the other backends.
    """

    def __init__(self, module: Any, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        self._torch = _import_torch()
        self.device = self._torch.device(cfg.device)
        self.half = cfg.half
        self.output_index = cfg.output_index
        module.eval()
        self.model = module

    @classmethod
    def from_path(
        cls, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()
    ) -> "TorchScriptBackend":
        torch = _import_torch()
        path = Path(model_path)
        if not path.exists():
            raise ModelLoadFailure(f"Model not found: {path}")
        try:
            module = torch.jit.load(str(path), map_location=torch.device(cfg.device))
        except Exception as e:
            raise ModelLoadFailure(f"Could not load TorchScript model {path}: {e}") from e
        return cls(module, cfg)

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        torch = self._torch
        x = torch.as_tensor(tensor, device=self.device)
        x = (x.half() if self.half else x.float()).contiguous()

        with torch.no_grad():
            y = self.model(x)

        # Multi-head exports return a tuple; the detection head is picked by index.
        if isinstance(y, (tuple, list)):
            y = y[self.output_index]

        return y.detach().to("cpu").float().numpy()
