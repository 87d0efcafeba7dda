"""
Exception hierarchy for the segmentation pipeline.

Every failure raised by the library derives from :class:`SegmentationError`.
The library never turns an error into user-facing text; the CLI does.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SegmentationError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidImageDimensions(SegmentationError):
    """Raised when an image has a zero width or height."""


class ModelLoadError(SegmentationError):
    """Raised when weights are missing, unreadable or incompatible with the model spec."""


class InferenceExecutionError(SegmentationError):
    """Raised when the inference backend fails during a forward pass."""


class TensorShapeMismatch(SegmentationError):
    """Raised when a model output cannot be interpreted as a matte."""


class ImageCodecError(SegmentationError):
    """Base class for image decode/encode failures."""


class UnsupportedImageFormat(ImageCodecError):
    pass


class ImageDecodeError(ImageCodecError):
    pass


class ImageEncodeError(ImageCodecError):
    pass


__all__ = [
    "SegmentationError",
    "InvalidImageDimensions",
    "ModelLoadError",
    "InferenceExecutionError",
    "TensorShapeMismatch",
    "ImageCodecError",
    "UnsupportedImageFormat",
    "ImageDecodeError",
    "ImageEncodeError",
]
