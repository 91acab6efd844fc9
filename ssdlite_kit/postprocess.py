from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .decode import RectTransform, decode_box
from .nms import NMSConfig, nms, rects_to_array
from .types import Detection, Rect


@dataclass(frozen=True)
class SSDPostConfig:
    """
    Thresholds for SSD post-processing.

    - min_score: minimum class confidence for a candidate to be kept
    - max_iou: maximum overlap allowed between two kept boxes of the same class
    """

    min_score: float = 0.6
    max_iou: float = 0.5

    def __post_init__(self) -> None:
        if not 0.0 <= self.min_score <= 1.0:
            raise ValueError("min_score must be in [0, 1]")
        if not 0.0 < self.max_iou <= 1.0:
            raise ValueError("max_iou must be in (0, 1]")


class CandidateBuffer:
    """
    Per-class scratch lists of candidate rects and scores.

    Owned by one postprocessor and reused for every class of every call, so it
    must not be shared between threads. Nothing outside `process` may hold on
    to these lists.
    """

    def __init__(self) -> None:
        self.rects: List[Rect] = []
        self.scores: List[float] = []
        self.anchors: List[int] = []

    def clear(self) -> None:
        self.rects.clear()
        self.scores.clear()
        self.anchors.clear()

    def add(self, rect: Rect, score: float, anchor: int) -> None:
        self.rects.append(rect)
        self.scores.append(score)
        self.anchors.append(anchor)

    def __len__(self) -> int:
        return len(self.scores)


class SSDPostprocessor:
    """
    Turns raw SSD outputs into labeled detections.

    Expected layout (per image):
    - scores: (1, P, C) class confidences, class 0 is background
    - boxes:  (1, P, 4) `(x0, y0, x1, y1)` regressions with a bottom-left origin

    Output is ordered by ascending class, then descending score.
    """

    def __init__(self, cfg: SSDPostConfig = SSDPostConfig()):
        self.cfg = cfg
        self._nms_cfg = NMSConfig(max_iou=cfg.max_iou)
        self._candidates = CandidateBuffer()

    def process(
        self,
        scores: np.ndarray,
        boxes: np.ndarray,
        labels: Sequence[str],
        transform: Optional[RectTransform] = None,
    ) -> List[Detection]:
        """
        Filter, suppress and label detections for one image.

        Args:
            scores: raw score tensor, (1, P, C) or (P, C)
            boxes: raw box tensor, (1, P, 4) or (P, 4)
            labels: class names, one per class including background
            transform: optional model-space to image-space rect mapping
        """

        scores = np.asarray(scores)
        boxes = np.asarray(boxes)
        if scores.ndim == 3:
            scores = scores[0]
        if boxes.ndim == 3:
            boxes = boxes[0]

        result: List[Detection] = []
        for c in range(1, scores.shape[1]):
            self._filter_class(scores, boxes, c, transform)
            for idx in self._suppress():
                result.append(
                    Detection(rect=self._candidates.rects[idx], label=labels[c], score=self._candidates.scores[idx])
                )
        # Drop the last class's candidates so nothing outlives the call.
        self._candidates.clear()
        return result

    # ------------------------------------------------------------------ #
    # Helper internal
    # ------------------------------------------------------------------ #
    def _filter_class(
        self,
        scores: np.ndarray,
        boxes: np.ndarray,
        c: int,
        transform: Optional[RectTransform],
    ) -> CandidateBuffer:
        """
        Collect candidates of class `c` scoring at least `min_score`.

        Only passing anchors are decoded.
        """

        buf = self._candidates
        buf.clear()
        for p in np.flatnonzero(scores[:, c] >= self.cfg.min_score):
            rect = decode_box(boxes[p], transform)
            buf.add(rect, float(scores[p, c]), int(p))
        return buf

    def _suppress(self) -> List[int]:
        buf = self._candidates
        if len(buf) == 0:
            return []
        keep = nms(rects_to_array(buf.rects), np.asarray(buf.scores, dtype=np.float64), self._nms_cfg)
        return keep.tolist()
