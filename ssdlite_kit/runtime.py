from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple, Union

from .config import load_predictor_profile
from .letterbox import PreprocessConfig
from .metadata import load_labels
from .postprocess import SSDPostConfig
from .predictor import SSDLitePredictor

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery, so `models/ssdlite.onnx` resolves the
    same way from any working directory inside the project.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against `root` if provided, otherwise
      against the project root.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


def _infer_backend_name(model_path: Path) -> str:
    suffix = model_path.suffix.lower()
    if suffix == ".onnx":
        return "onnxruntime"
    if suffix in {".torchscript", ".ts", ".pt"}:
        return "torchscript"
    raise ValueError(f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly.")


def fit_to_input_shape(preprocess: PreprocessConfig, input_shape: Optional[Tuple[Any, ...]]) -> PreprocessConfig:
    """
    Fill in an unset `input_size` (and the matching layout) from the model's
    input shape, NCHW `(1, 3, H, W)` or NHWC `(1, H, W, 3)`.

    An explicit size is returned unchanged. Dynamic or unknown shapes fall back
    to 300x300.
    """

    if preprocess.input_size is not None:
        return preprocess

    shape = tuple(input_shape or ())
    if len(shape) == 4 and all(isinstance(d, int) for d in shape[1:]):
        if shape[1] == 3:
            return replace(preprocess, input_size=(shape[3], shape[2]), channels_last=False)
        if shape[3] == 3:
            return replace(preprocess, input_size=(shape[2], shape[1]), channels_last=True)

    logger.warning("Model input shape %s is not static; using 300x300", shape)
    return replace(preprocess, input_size=(300, 300))


def load_predictor(
    model_path: PathLike,
    labels: Union[PathLike, Sequence[str]],
    *,
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
    post_cfg: SSDPostConfig = SSDPostConfig(),
    preprocess: PreprocessConfig = PreprocessConfig(input_size=None),
    onnx_providers: Optional[Sequence[str]] = None,
    torch_device: str = "cpu",
    torch_half: bool = False,
) -> SSDLitePredictor:
    """
    Create a predictor for an SSD Lite model on disk.

    Args:
        model_path: .onnx or TorchScript file; relative paths resolve against the project root
        labels: label table, or a path to one (see `load_labels`)
        backend: "onnxruntime" or "torchscript"; None infers it from the extension
        preprocess: input fitting; with `input_size=None` the size comes from the model
    """

    resolved = resolve_path(model_path, root=root)
    if isinstance(labels, (str, Path)):
        label_table = load_labels(resolve_path(labels, root=root))
    else:
        label_table = list(labels)

    chosen = (backend or _infer_backend_name(resolved)).lower()
    if chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        engine = OnnxRuntimeBackend(resolved, OnnxRuntimeBackendConfig(providers=onnx_providers))
    elif chosen == "torchscript":
        from .backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        engine = TorchScriptBackend(resolved, TorchScriptBackendConfig(device=torch_device, half=torch_half))
    else:
        raise ValueError(f"Unsupported backend: {backend!r}")

    num_classes = engine.num_classes
    if num_classes is not None and num_classes != len(label_table):
        engine.close()
        raise ValueError(f"Model has {num_classes} classes but {len(label_table)} labels were given")

    logger.info("Loaded %s with %s backend (%d labels)", resolved, chosen, len(label_table))
    return SSDLitePredictor(
        engine.infer,
        label_table,
        post_cfg=post_cfg,
        preprocess=fit_to_input_shape(preprocess, engine.input_shape),
        backend=engine,
        backend_name=chosen,
    )


def load_predictor_from_profile(
    profile_path: PathLike,
    *,
    onnx_providers: Optional[Sequence[str]] = None,
    torch_device: str = "cpu",
) -> SSDLitePredictor:
    """
    Create a predictor from a JSON profile (see `load_predictor_profile`).

    Relative model and label paths resolve against the profile's directory.
    """

    path = Path(profile_path)
    profile = load_predictor_profile(path)
    return load_predictor(
        profile.model,
        Path(profile.labels),
        backend=profile.backend,
        root=path.resolve().parent,
        post_cfg=SSDPostConfig(min_score=profile.min_score, max_iou=profile.max_iou),
        preprocess=PreprocessConfig(
            input_size=profile.input_size,
            aspect_mode=profile.aspect_mode,
            mean=profile.mean,
            std=profile.std,
        ),
        onnx_providers=onnx_providers,
        torch_device=torch_device,
    )
