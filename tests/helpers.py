from typing import Sequence, Tuple

import numpy as np


def raw_box(x_min: float, y_min: float, x_max: float, y_max: float) -> Tuple[float, float, float, float]:
    """Encode a top-left-origin rect the way the SSD model emits it."""
    return (x_min, 1.0 - y_max, x_max, 1.0 - y_min)


def make_tensors(
    class_scores: Sequence[Sequence[float]],
    rects: Sequence[Tuple[float, float, float, float]],
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build (1, P, C) scores and (1, P, 4) boxes.

    class_scores[p] lists scores for every class (background first) at anchor p;
    rects[p] is the expected decoded rect at anchor p.
    """

    scores = np.asarray(class_scores, dtype=np.float64)[None, ...]
    boxes = np.asarray([raw_box(*r) for r in rects], dtype=np.float64)[None, ...]
    return scores, boxes
