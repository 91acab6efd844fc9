from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .letterbox import ASPECT_MODES


@dataclass(frozen=True)
class PredictorProfile:
    schema_version: int
    model: str
    labels: str
    backend: Optional[str] = None
    min_score: float = 0.6
    max_iou: float = 0.5
    input_size: Optional[Tuple[int, int]] = None
    aspect_mode: str = "scale_to_fit"
    mean: Tuple[float, float, float] = (127.5, 127.5, 127.5)
    std: Tuple[float, float, float] = (127.5, 127.5, 127.5)

    def __post_init__(self) -> None:
        if self.schema_version != 1:
            raise ValueError("predictor profile schema_version must be 1")
        if not 0.0 <= self.min_score <= 1.0:
            raise ValueError("min_score must be in [0, 1]")
        if not 0.0 < self.max_iou <= 1.0:
            raise ValueError("max_iou must be in (0, 1]")
        if self.aspect_mode not in ASPECT_MODES:
            raise ValueError(f"aspect_mode must be one of {ASPECT_MODES}")


def _require_number(payload: Dict[str, Any], key: str) -> float:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _require_str(payload: Dict[str, Any], key: str) -> str:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if not isinstance(value, str) or not value:
        raise ValueError(f"{key} must be a non-empty string")
    return value


def _number_tuple(payload: Dict[str, Any], key: str, length: int, default: Optional[Tuple[Any, ...]], integer: bool = False):
    if key not in payload:
        return default
    value = payload[key]
    kinds = (int,) if integer else (int, float)
    if (
        not isinstance(value, list)
        or len(value) != length
        or any(isinstance(v, bool) or not isinstance(v, kinds) for v in value)
    ):
        kind = "integers" if integer else "numbers"
        raise ValueError(f"{key} must be a list of {length} {kind}")
    return tuple(int(v) if integer else float(v) for v in value)


def load_predictor_profile(path: Path) -> PredictorProfile:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Predictor profile not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid predictor profile JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Predictor profile must be a JSON object")

    allowed = {
        "schema_version",
        "model",
        "labels",
        "backend",
        "min_score",
        "max_iou",
        "input_size",
        "aspect_mode",
        "mean",
        "std",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown predictor profile keys: {unknown}")

    backend = payload.get("backend")
    if backend is not None and not isinstance(backend, str):
        raise ValueError("backend must be a string if provided")
    aspect_mode = payload.get("aspect_mode", "scale_to_fit")
    if not isinstance(aspect_mode, str):
        raise ValueError("aspect_mode must be a string")

    return PredictorProfile(
        schema_version=_require_int(payload, "schema_version"),
        model=_require_str(payload, "model"),
        labels=_require_str(payload, "labels"),
        backend=backend,
        min_score=_require_number(payload, "min_score") if "min_score" in payload else 0.6,
        max_iou=_require_number(payload, "max_iou") if "max_iou" in payload else 0.5,
        input_size=_number_tuple(payload, "input_size", 2, None, integer=True),
        aspect_mode=aspect_mode,
        mean=_number_tuple(payload, "mean", 3, (127.5, 127.5, 127.5)),
        std=_number_tuple(payload, "std", 3, (127.5, 127.5, 127.5)),
    )
