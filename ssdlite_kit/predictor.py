from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .letterbox import ImageTransform, PreprocessConfig, prepare_image
from .postprocess import SSDPostConfig, SSDPostprocessor
from .types import ArrayInput, Detection, ImageInput

logger = logging.getLogger(__name__)

InferFn = Callable[[np.ndarray], Tuple[np.ndarray, np.ndarray]]


class PredictorClosedError(RuntimeError):
    """Raised when a predictor is used after `close()`."""


class SSDLitePredictor:
    """
    Single Shot Detector Lite predictor for general object detection.

    Accepts one `ImageInput` or `ArrayInput` per call and returns detections
    with normalized rects, labels and scores.

    A predictor reuses internal scratch buffers between calls and is not safe
    to call from several threads at once. Use one instance per thread, or
    guard it with a lock.
    """

    def __init__(
        self,
        infer_fn: InferFn,
        labels: Sequence[str],
        *,
        post_cfg: SSDPostConfig = SSDPostConfig(),
        preprocess: PreprocessConfig = PreprocessConfig(),
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
    ):
        self._infer_fn: Optional[InferFn] = infer_fn
        self.labels = tuple(labels)
        self.preprocess = preprocess
        self.backend = backend
        self.backend_name = backend_name
        self.post = SSDPostprocessor(post_cfg)
        logger.debug(
            "Created SSD Lite predictor (%d labels, min_score=%.3f, max_iou=%.3f, backend=%s)",
            len(self.labels),
            post_cfg.min_score,
            post_cfg.max_iou,
            backend_name,
        )

    @property
    def closed(self) -> bool:
        return self._infer_fn is None

    def predict(self, *inputs: object) -> List[Detection]:
        """
        Detect objects in one input.

        Raises:
            ValueError: not exactly one input, or an unsupported input kind.
            TypeError: the input's payload is not a NumPy array.
            PredictorClosedError: the predictor was closed.
        """

        if self._infer_fn is None:
            raise PredictorClosedError("SSD Lite predictor has been closed")
        if len(inputs) != 1:
            raise ValueError(f"SSD Lite predictor expects a single input, got {len(inputs)}")

        blob, transform = self._prepare(inputs[0])
        scores, boxes = self._infer_fn(blob)
        return self.post.process(scores, boxes, self.labels, transform)

    __call__ = predict

    def _prepare(self, item: object) -> Tuple[np.ndarray, Optional[ImageTransform]]:
        if isinstance(item, ImageInput):
            if not isinstance(item.image, np.ndarray):
                raise TypeError("ImageInput.image must be a NumPy array (BGR).")
            return prepare_image(item.image, item.preprocess or self.preprocess)
        if isinstance(item, ArrayInput):
            if not isinstance(item.tensor, np.ndarray):
                raise TypeError("ArrayInput.tensor must be a NumPy array.")
            return item.tensor, None
        raise ValueError(f"SSD Lite predictor expects an ImageInput or ArrayInput, got {type(item).__name__}")

    def close(self) -> None:
        """Release the inference backend. Calling it again does nothing."""
        if self._infer_fn is None:
            return
        self._infer_fn = None
        close = getattr(self.backend, "close", None)
        if callable(close):
            close()
        self.backend = None
        logger.debug("Closed SSD Lite predictor (backend=%s)", self.backend_name)

    def __enter__(self) -> "SSDLitePredictor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
