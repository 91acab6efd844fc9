from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .types import Rect


@dataclass(frozen=True)
class NMSConfig:
    max_iou: float = 0.5

    def __post_init__(self) -> None:
        if not 0.0 < self.max_iou <= 1.0:
            raise ValueError("max_iou must be in (0, 1]")


def iou(a: Rect, b: Rect) -> float:
    """
    Intersection-over-union of two rects. Zero when either rect has no area.
    """

    area_a = a.area
    area_b = b.area
    if area_a <= 0.0 or area_b <= 0.0:
        return 0.0
    w = max(0.0, min(a.x_max, b.x_max) - max(a.x_min, b.x_min))
    h = max(0.0, min(a.y_max, b.y_max) - max(a.y_min, b.y_min))
    inter = w * h
    return inter / (area_a + area_b - inter)


def rects_to_array(rects: Sequence[Rect]) -> np.ndarray:
    if not rects:
        return np.empty((0, 4), dtype=np.float64)
    return np.array([r.as_xyxy() for r in rects], dtype=np.float64)


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).

    Candidates are visited by descending score, ties broken by ascending index,
    and a candidate is dropped when its IoU with an already kept box exceeds
    `cfg.max_iou`. Returns kept indices in the order they were kept.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if boxes.shape[0] == 0:
        return np.empty((0,), dtype=np.int64)

    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    x2 = boxes[:, 2]
    y2 = boxes[:, 3]
    areas = (x2 - x1) * (y2 - y1)

    # Stable sort on negated scores keeps equal scores in index order.
    order = np.argsort(-scores, kind="stable")
    keep = []

    while order.size > 0:
        i = order[0]
        keep.append(i)
        rest = order[1:]

        xx1 = np.maximum(x1[i], x1[rest])
        yy1 = np.maximum(y1[i], y1[rest])
        xx2 = np.minimum(x2[i], x2[rest])
        yy2 = np.minimum(y2[i], y2[rest])

        w = np.maximum(0.0, xx2 - xx1)
        h = np.maximum(0.0, yy2 - yy1)
        inter = w * h
        union = areas[i] + areas[rest] - inter
        valid = (areas[i] > 0.0) & (areas[rest] > 0.0)
        overlap = np.zeros_like(inter)
        np.divide(inter, union, out=overlap, where=valid)

        order = rest[overlap <= cfg.max_iou]

    return np.array(keep, dtype=np.int64)
