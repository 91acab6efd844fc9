from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class TorchScriptBackendConfig:
    """
    Configuration for TorchScript inference.

    - device: "cpu" or "cuda" (if available)
    - half: cast input to float16 (only if the model expects it)
    - score_index/box_index: positions of scores and boxes in the model's output tuple
    """

    device: str = "cpu"
    half: bool = False
    score_index: int = 0
    box_index: int = 1


class TorchScriptBackend:
    """
    Minimal TorchScript backend using `torch.jit.load`.

    TorchScript carries no static shapes, so `num_classes` and `input_shape` are unknown.
    """

    num_classes: Optional[int] = None
    input_shape: Optional[Tuple[int, ...]] = None

    def __init__(self, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("torch is required for the TorchScript backend. Install with `pip install torch`.") from e

        self._torch = torch
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        self.device = torch.device(cfg.device)
        self.half = cfg.half
        self.score_index = cfg.score_index
        self.box_index = cfg.box_index

        model = torch.jit.load(str(self.model_path), map_location=self.device)
        model.eval()
        self.model = model
        logger.debug("Loaded TorchScript model %s on %s", self.model_path, self.device)

    def _to_numpy(self, y) -> np.ndarray:
        if hasattr(y, "detach"):
            y = y.detach()
        return y.float().to("cpu").numpy()

    def infer(self, blob: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        torch = self._torch
        x = torch.as_tensor(blob, device=self.device)
        if self.half:
            x = x.half()
        else:
            x = x.float()
        x = x.contiguous()

        with torch.no_grad():
            y = self.model(x)

        if not isinstance(y, (tuple, list)) or len(y) < 2:
            raise ValueError("SSD TorchScript model must return (scores, boxes)")
        return self._to_numpy(y[self.score_index]), self._to_numpy(y[self.box_index])

    def close(self) -> None:
        self.model = None
        if self.device.type == "cuda":
            self._torch.cuda.empty_cache()
