from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from .errors import InvalidImage


@dataclass(frozen=True)
class PreprocessResult:
    tensor: np.ndarray
    orig_size: Tuple[int, int]  # (width, height)
    input_size: int


def _to_bgr(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 3:
        return image
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    if image.ndim == 3 and image.shape[2] == 1:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    raise InvalidImage(f"Expected image shape (H, W), (H, W, 3) or (H, W, 4), got {image.shape}")


def _to_uint8(image: np.ndarray) -> np.ndarray:
    """
    Float images in [0, 1] are scaled by 255, other float images are taken
    as 0..255 and rounded. Integer types other than uint8 are rejected.
    """

    if image.dtype == np.uint8:
        return image
    if not np.issubdtype(image.dtype, np.floating):
        raise InvalidImage(f"Unsupported image dtype {image.dtype}; expected uint8 or float")
    if not np.isfinite(image).all():
        raise InvalidImage("Image contains NaN or infinite values")
    values = image * 255.0 if float(image.max()) <= 1.0 else image
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def preprocess(image: np.ndarray, input_size: int) -> np.ndarray:
    """
    Stretch an OpenCV image to `input_size x input_size` and normalize it.

    Aspect ratio is not preserved (no letterbox): each axis is scaled
    independently, which `map_to_original` undoes per axis.

    Returns a float32 tensor of shape (1, input_size, input_size, 3),
    channel-last RGB, values in [0, 1].
    """

    if image is None or not hasattr(image, "shape"):
        raise InvalidImage("image must be a NumPy array (BGR).")
    if input_size < 1:
        raise ValueError(f"input_size must be >= 1, got {input_size}")
    if image.ndim < 2 or image.shape[0] == 0 or image.shape[1] == 0:
        raise InvalidImage(f"Image has zero width or height: shape={image.shape}")

    bgr = _to_bgr(_to_uint8(image))

    if bgr.shape[:2] != (input_size, input_size):
        bgr = cv2.resize(bgr, (input_size, input_size), interpolation=cv2.INTER_LINEAR)

    # BGR -> RGB, normalize, add batch (NHWC)
    rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
    tensor = rgb.astype(np.float32) / 255.0
    return np.ascontiguousarray(tensor[None, ...])


def prepare(image: np.ndarray, input_size: int) -> PreprocessResult:
    tensor = preprocess(image, input_size)
    orig_h, orig_w = image.shape[:2]
    return PreprocessResult(tensor=tensor, orig_size=(int(orig_w), int(orig_h)), input_size=int(input_size))


def read_image(path: str) -> np.ndarray:
    img = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if img is None:
        raise InvalidImage(f"Could not read image at path: {path}")
    return img
