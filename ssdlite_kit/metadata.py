from __future__ import annotations

import json
from pathlib import Path
from typing import List, Union


def load_labels(labels_path: Union[str, Path]) -> List[str]:
    """
    Load a class label table, index-aligned with the model's class dimension.

    Two formats are accepted:

        labels.txt   one label per line, background first
        labels.json  a JSON list of strings, or {"labels": [...]}

    Line positions are class ids: a blank line is an unnamed class and keeps
    its slot as an empty label, so later labels stay aligned.
    """

    path = Path(labels_path)
    if not path.exists():
        raise FileNotFoundError(f"Labels file not found: {path}")
    raw = path.read_text(encoding="utf-8")

    if path.suffix.lower() == ".json":
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid labels JSON: {path}") from exc
        if isinstance(payload, dict):
            payload = payload.get("labels")
        if not isinstance(payload, list) or not all(isinstance(v, str) for v in payload):
            raise ValueError("Labels JSON must be a list of strings")
        labels = payload
    else:
        labels = [line.strip() for line in raw.splitlines()]

    if len(labels) < 2:
        raise ValueError(f"Expected background plus at least one class label, got {len(labels)}")
    return labels
