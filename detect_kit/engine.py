"""
Inference engine boundary.

The post-processing code only needs "tensor in, tensor out". Concrete
runtimes live in `detect_kit.backends` so pre/post-processing stays usable
without any of them installed.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional, Protocol

import numpy as np


class InferenceEngine(Protocol):
    """Maps a (1, S, S, 3) float32 tensor to a (1, A, 5 + C) float32 tensor."""

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        ...


class CallableEngine:
    """Adapts a plain function to the engine interface."""

    def __init__(self, fn: Callable[[np.ndarray], np.ndarray], name: Optional[str] = None):
        self._fn = fn
        self.name = name or getattr(fn, "__name__", "callable")

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        return self._fn(tensor)


class LockedEngine:
    """
    Serializes `infer` calls on a shared engine. Most native runtimes are not
    reentrant, so whole detection cycles can run on worker threads while
    this wrapper holds the engine for one call at a time.
    """

    def __init__(self, engine: InferenceEngine):
        self.engine = engine
        self._lock = threading.Lock()

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        with self._lock:
            return self.engine.infer(tensor)

    def close(self) -> None:
        with self._lock:
            close = getattr(self.engine, "close", None)
            if callable(close):
                close()
