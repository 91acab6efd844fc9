from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .types import Rect

ASPECT_MODES = ("scale_to_fit", "aspect_fill", "none")


@dataclass(frozen=True)
class PreprocessConfig:
    """
    How an image is fitted into the model input.

    - input_size: model input (width, height); None takes it from the model in `load_predictor`
    - aspect_mode: "scale_to_fit" (letterbox), "aspect_fill" (center crop) or "none" (stretch)
    - mean/std: per-channel normalization applied as (pixel - mean) / std
    - channels_last: emit an NHWC blob instead of NCHW
    - rgb: convert OpenCV BGR to RGB before normalizing
    """

    input_size: Optional[Tuple[int, int]] = (300, 300)
    aspect_mode: str = "scale_to_fit"
    mean: Tuple[float, float, float] = (127.5, 127.5, 127.5)
    std: Tuple[float, float, float] = (127.5, 127.5, 127.5)
    pad_color: Tuple[int, int, int] = (0, 0, 0)
    channels_last: bool = False
    rgb: bool = True

    def __post_init__(self) -> None:
        if self.aspect_mode not in ASPECT_MODES:
            raise ValueError(f"aspect_mode must be one of {ASPECT_MODES}, got {self.aspect_mode!r}")
        if self.input_size is not None and (len(self.input_size) != 2 or min(self.input_size) <= 0):
            raise ValueError(f"input_size must be a positive (width, height), got {self.input_size!r}")
        if len(self.mean) != 3 or len(self.std) != 3:
            raise ValueError("mean and std must have 3 channels")
        if any(s == 0 for s in self.std):
            raise ValueError("std must be non-zero")


@dataclass(frozen=True)
class ImageTransform:
    """
    Maps normalized model-input coordinates back to normalized source-image
    coordinates.

    ratio is the (rw, rh) resize gain; pad is the (dw, dh) offset of the
    resized image inside the model input, in model pixels (negative when the
    image was cropped).
    """

    source_size: Tuple[int, int]
    model_size: Tuple[int, int]
    ratio: Tuple[float, float] = (1.0, 1.0)
    pad: Tuple[float, float] = (0.0, 0.0)

    def transform_rect(self, rect: Rect) -> Rect:
        src_w, src_h = self.source_size
        model_w, model_h = self.model_size
        rw, rh = self.ratio
        dw, dh = self.pad

        def map_x(x: float) -> float:
            return (x * model_w - dw) / rw / src_w

        def map_y(y: float) -> float:
            return (y * model_h - dh) / rh / src_h

        return Rect.from_corners(map_x(rect.x_min), map_y(rect.y_min), map_x(rect.x_max), map_y(rect.y_max))

    __call__ = transform_rect


def _require_cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for image preprocessing. Install with `pip install opencv-python`.") from e
    return cv2


def letterbox(
    image: np.ndarray,
    new_shape: Tuple[int, int] = (300, 300),
    color: Tuple[int, int, int] = (0, 0, 0),
):
    """
    Resize keeping aspect ratio and pad the remainder symmetrically.

    Returns:
        padded: resized + padded image
        ratio: (w_ratio, h_ratio)
        pad: (dw, dh) padding applied to width/height (left/top only; right/bottom equal)
    """
    cv2 = _require_cv2()

    h, w = image.shape[:2]
    new_w, new_h = new_shape

    r = min(new_w / w, new_h / h)
    resized_w, resized_h = int(round(w * r)), int(round(h * r))
    dw = (new_w - resized_w) / 2
    dh = (new_h - resized_h) / 2

    if (w, h) != (resized_w, resized_h):
        image = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)

    top, bottom = int(round(dh - 0.1)), int(round(dh + 0.1))
    left, right = int(round(dw - 0.1)), int(round(dw + 0.1))
    padded = cv2.copyMakeBorder(image, top, bottom, left, right, cv2.BORDER_CONSTANT, value=color)

    return padded, (r, r), (dw, dh)


def center_crop(image: np.ndarray, new_shape: Tuple[int, int] = (300, 300)):
    """
    Resize so the image covers `new_shape`, then crop the overflow evenly.

    Returns the cropped image, ratio and a negative (dw, dh) crop offset.
    """
    cv2 = _require_cv2()

    h, w = image.shape[:2]
    new_w, new_h = new_shape

    r = max(new_w / w, new_h / h)
    resized_w, resized_h = max(new_w, int(round(w * r))), max(new_h, int(round(h * r)))
    if (w, h) != (resized_w, resized_h):
        image = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)

    x0 = (resized_w - new_w) // 2
    y0 = (resized_h - new_h) // 2
    cropped = image[y0 : y0 + new_h, x0 : x0 + new_w]
    return cropped, (resized_w / w, resized_h / h), (-float(x0), -float(y0))


def fit_image(image: np.ndarray, cfg: PreprocessConfig) -> Tuple[np.ndarray, ImageTransform]:
    """
    Fit a BGR image into the model input size according to `cfg.aspect_mode`.
    """

    if image is None or not hasattr(image, "shape"):
        raise TypeError("image must be a NumPy array (BGR).")
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image, 'shape', None)}")

    if cfg.input_size is None:
        raise ValueError("PreprocessConfig.input_size is unset; pass a size or build the predictor with load_predictor")

    h, w = image.shape[:2]
    new_w, new_h = cfg.input_size

    if cfg.aspect_mode == "scale_to_fit":
        out, ratio, pad = letterbox(image, new_shape=(new_w, new_h), color=cfg.pad_color)
    elif cfg.aspect_mode == "aspect_fill":
        out, ratio, pad = center_crop(image, new_shape=(new_w, new_h))
    else:
        cv2 = _require_cv2()
        out = image
        if (w, h) != (new_w, new_h):
            out = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_LINEAR)
        ratio, pad = (new_w / w, new_h / h), (0.0, 0.0)

    transform = ImageTransform(source_size=(w, h), model_size=(new_w, new_h), ratio=ratio, pad=pad)
    return out, transform


def prepare_image(image: np.ndarray, cfg: PreprocessConfig) -> Tuple[np.ndarray, ImageTransform]:
    """
    Fit, normalize and batch a BGR image.

    Returns a float32 blob shaped (1, 3, H, W), or (1, H, W, 3) when
    `cfg.channels_last`, plus the transform back to source-image space.
    """

    fitted, transform = fit_image(image, cfg)
    if cfg.rgb:
        fitted = fitted[:, :, ::-1]

    mean = np.asarray(cfg.mean, dtype=np.float32)
    std = np.asarray(cfg.std, dtype=np.float32)
    blob = (fitted.astype(np.float32) - mean) / std

    if not cfg.channels_last:
        blob = np.transpose(blob, (2, 0, 1))
    blob = np.ascontiguousarray(blob[None, ...])
    return blob, transform
