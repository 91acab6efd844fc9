"""
Optional inference backends for ssdlite_kit.

Backends are kept in a separate module so core functionality (decode/NMS)
stays lightweight and can be used without installing inference runtimes.
Every backend exposes `infer(blob) -> (scores, boxes)` and `close()`.
"""

from __future__ import annotations

__all__ = []
