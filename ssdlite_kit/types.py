from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple, Union

import numpy as np

if TYPE_CHECKING:
    from .letterbox import PreprocessConfig


@dataclass(frozen=True)
class Rect:
    """
    Normalized axis-aligned rectangle with a top-left origin.

    Coordinates are nominally in [0, 1] but are never clamped; remapping
    through a letterbox transform can push them outside that range.
    """

    x_min: float
    y_min: float
    x_max: float
    y_max: float

    @classmethod
    def from_corners(cls, x0: float, y0: float, x1: float, y1: float) -> "Rect":
        """Build a rect from two opposite corners, in any order."""
        # np.minimum/np.maximum propagate NaN from either argument.
        return cls(
            float(np.minimum(x0, x1)),
            float(np.minimum(y0, y1)),
            float(np.maximum(x0, x1)),
            float(np.maximum(y0, y1)),
        )

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x_min, self.y_min, self.x_max, self.y_max

    def scaled(self, width: float, height: float) -> Tuple[float, float, float, float]:
        """Pixel coordinates for an image of the given size."""
        return self.x_min * width, self.y_min * height, self.x_max * width, self.y_max * height


@dataclass(frozen=True)
class Detection:
    """
    One detected object: normalized rect, class label and confidence.
    """

    rect: Rect
    label: str
    score: float

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.rect.as_xyxy()


@dataclass(frozen=True)
class ImageInput:
    """
    A BGR image (OpenCV-style, shape (H, W, 3)) to be prepared for the model.

    `preprocess` overrides the predictor's default preprocessing (aspect mode,
    normalization) for this image only.
    """

    image: np.ndarray
    preprocess: Optional["PreprocessConfig"] = None


@dataclass(frozen=True)
class ArrayInput:
    """
    An already-prepared model input tensor, fed to the engine as-is.

    Detections come back in model-input space since no coordinate transform
    is known for a raw tensor.
    """

    tensor: np.ndarray


PredictorInput = Union[ImageInput, ArrayInput]
