from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
OutputRef = Union[int, str]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name: override the auto-selected input name
    - score_output/box_output: output name or index of the (1, P, C) scores and (1, P, 4) boxes
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    score_output: OutputRef = 0
    box_output: OutputRef = 1


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime backend for SSD exports with two outputs.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        outputs = self.session.get_outputs()
        if len(outputs) < 2:
            raise ValueError(f"SSD model must have score and box outputs, {self.model_path} has {len(outputs)}")

        self.input_name = cfg.input_name or self.session.get_inputs()[0].name
        self.score_name = self._output_name(cfg.score_output)
        self.box_name = self._output_name(cfg.box_output)
        logger.debug(
            "Loaded %s with providers %s (input=%s, scores=%s, boxes=%s)",
            self.model_path,
            self.providers_in_use,
            self.input_name,
            self.score_name,
            self.box_name,
        )

    def _output_name(self, ref: OutputRef) -> str:
        if isinstance(ref, str):
            return ref
        return self.session.get_outputs()[ref].name

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self.session.get_providers())

    @property
    def input_shape(self) -> Tuple[Any, ...]:
        return tuple(self.session.get_inputs()[0].shape)

    @property
    def output_shapes(self) -> Dict[str, Tuple[Any, ...]]:
        # Dynamic dimensions come back as strings or None.
        return {o.name: tuple(o.shape) for o in self.session.get_outputs()}

    @property
    def num_classes(self) -> Optional[int]:
        dim = self.output_shapes.get(self.score_name, ())[-1:]
        return dim[0] if dim and isinstance(dim[0], int) else None

    def infer(self, blob: np.ndarray, extra_inputs: Optional[Dict[str, Any]] = None) -> Tuple[np.ndarray, np.ndarray]:
        inputs: Dict[str, Any] = {self.input_name: blob}
        if extra_inputs:
            inputs.update(extra_inputs)
        scores, boxes = self.session.run([self.score_name, self.box_name], inputs)
        return scores, boxes

    def close(self) -> None:
        # ORT releases native resources when the session is garbage collected.
        self.session = None
