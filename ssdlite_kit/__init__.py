"""
SSD Lite object detection post-processing.

Decodes raw SSD score/box tensors into labeled, non-overlapping detections.
The core (decode, NMS, assembly) needs only NumPy; OpenCV is used for image
preprocessing and drawing, and inference runtimes are optional backends.
"""

from .types import ArrayInput, Detection, ImageInput, Rect
from .decode import decode_box
from .nms import NMSConfig, iou, nms
from .letterbox import ImageTransform, PreprocessConfig, letterbox, prepare_image
from .postprocess import CandidateBuffer, SSDPostConfig, SSDPostprocessor
from .predictor import PredictorClosedError, SSDLitePredictor
from .config import PredictorProfile, load_predictor_profile
from .metadata import load_labels
from .runtime import find_project_root, fit_to_input_shape, load_predictor, load_predictor_from_profile, resolve_path
from .visualize import draw_detections

__all__ = [
    "ArrayInput",
    "Detection",
    "ImageInput",
    "Rect",
    "decode_box",
    "NMSConfig",
    "iou",
    "nms",
    "ImageTransform",
    "PreprocessConfig",
    "letterbox",
    "prepare_image",
    "CandidateBuffer",
    "SSDPostConfig",
    "SSDPostprocessor",
    "PredictorClosedError",
    "SSDLitePredictor",
    "PredictorProfile",
    "load_predictor_profile",
    "load_labels",
    "find_project_root",
    "fit_to_input_shape",
    "load_predictor",
    "load_predictor_from_profile",
    "resolve_path",
    "draw_detections",
]
