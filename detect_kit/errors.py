"""
Error taxonomy for a detection cycle.

Decoding never raises for row-level conditions (low confidence, NaN scores,
unknown class ids); those rows are simply dropped.
"""

from __future__ import annotations


class DetectKitError(Exception):
    """Base class for detect_kit errors."""


class InvalidImage(DetectKitError, ValueError):
    """Source image is unreadable or has a zero dimension."""


class ModelLoadFailure(DetectKitError, RuntimeError):
    """Label table or inference engine could not be initialised."""


class InferenceFailure(DetectKitError, RuntimeError):
    """The inference engine failed or returned an unusable tensor."""


__all__ = ["DetectKitError", "InvalidImage", "ModelLoadFailure", "InferenceFailure"]
