from __future__ import annotations

from typing import Callable, Optional, Sequence

from .types import Rect

RectTransform = Callable[[Rect], Rect]


def decode_box(raw: Sequence[float], transform: Optional[RectTransform] = None) -> Rect:
    """
    Decode one SSD box regression `(x0, y0, x1, y1)` into a `Rect`.

    The model emits boxes with a bottom-left origin, so the vertical axis is
    flipped: left=x0, bottom=1-y1, right=x1, top=1-y0. The two corners are
    then reconciled into min/max order.

    Non-finite values are propagated, not rejected.
    """

    x0, y0, x1, y1 = (float(v) for v in raw[:4])
    rect = Rect.from_corners(x0, 1.0 - y1, x1, 1.0 - y0)
    if transform is not None:
        rect = transform(rect)
    return rect

