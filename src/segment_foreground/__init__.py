"""
Foreground segmentation with pre-trained matting models.

Turns a decoded image into a single-channel alpha matte by running MODNet
or U2Net ONNX graphs through ONNX Runtime.
"""

from .backend import InferenceSession, OnnxRuntimeBackend, open_session, run
from .errors import (
    ImageDecodeError,
    ImageEncodeError,
    InferenceExecutionError,
    InvalidImageDimensions,
    ModelLoadError,
    SegmentationError,
    TensorShapeMismatch,
    UnsupportedImageFormat,
)
from .image import Image, MatteResult, load_image, save_matte
from .models import MODEL_REGISTRY, MODNET, U2NET, ModelKind, ModelSpec, OutputKind, get_model_spec
from .pipeline import (
    ForegroundSegmenter,
    PipelineState,
    SegmentationConfig,
    SegmentationPipeline,
    segment,
)
from .postprocessing import finalize
from .preprocessing import prepare
from .tensor import Tensor

__all__ = [
    "ForegroundSegmenter",
    "Image",
    "ImageDecodeError",
    "ImageEncodeError",
    "InferenceExecutionError",
    "InferenceSession",
    "InvalidImageDimensions",
    "MatteResult",
    "MODEL_REGISTRY",
    "MODNET",
    "ModelKind",
    "ModelLoadError",
    "ModelSpec",
    "OnnxRuntimeBackend",
    "OutputKind",
    "PipelineState",
    "SegmentationConfig",
    "SegmentationError",
    "SegmentationPipeline",
    "Tensor",
    "TensorShapeMismatch",
    "U2NET",
    "UnsupportedImageFormat",
    "finalize",
    "get_model_spec",
    "load_image",
    "open_session",
    "prepare",
    "run",
    "save_matte",
    "segment",
]
