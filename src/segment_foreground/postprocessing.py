from __future__ import annotations

import logging

import numpy as np
import torch

from .errors import InvalidImageDimensions, TensorShapeMismatch
from .image import MatteResult
from .models import ModelSpec, OutputKind
from .preprocessing import resize_bilinear
from .tensor import Tensor

__all__ = ["finalize", "select_matte_channel", "to_byte_range"]

logger = logging.getLogger(__name__)


def select_matte_channel(output: Tensor, spec: ModelSpec) -> torch.Tensor:
    """
    Return the ``H x W`` matte plane of a model output.

    Accepts ``HxW``, ``1xHxW`` and ``1xCxHxW`` layouts. MODNet-style outputs
    must carry exactly one channel; U2Net-style outputs use channel 0.
    """
    data = output.data
    shape = output.shape

    if data.ndim == 2:
        plane = data
    elif data.ndim == 3:
        if shape[0] != 1:
            raise TensorShapeMismatch(
                f"Expected a single 1xHxW map, got shape {shape}.", details={"shape": shape}
            )
        plane = data[0]
    elif data.ndim == 4:
        if shape[0] != 1:
            raise TensorShapeMismatch(
                f"Expected batch size 1, got shape {shape}.", details={"shape": shape}
            )
        channels = shape[1]
        if channels == 0:
            raise TensorShapeMismatch(
                f"Model output has no channels (shape {shape}).", details={"shape": shape}
            )
        if spec.output_kind is OutputKind.SINGLE_CHANNEL and channels != 1:
            raise TensorShapeMismatch(
                f"{spec.display_name} output must have 1 channel, got {channels}.",
                details={"shape": shape},
            )
        plane = data[0, 0]
    else:
        raise TensorShapeMismatch(
            f"Unexpected output dimensionality from model: {data.ndim}", details={"shape": shape}
        )

    size = spec.input_size
    if tuple(plane.shape) != (size, size):
        raise TensorShapeMismatch(
            f"{spec.display_name} output plane is {tuple(plane.shape)}, expected {size}x{size}.",
            details={"shape": shape},
        )
    return plane


def _round_half_up(values: torch.Tensor) -> torch.Tensor:
    # Inputs are non-negative, so this rounds half away from zero.
    return torch.floor(values + 0.5).clamp(0, 255)


def to_byte_range(plane: torch.Tensor) -> torch.Tensor:
    """Clamp a float matte to [0, 1] and scale it to rounded [0, 255] values."""
    plane = torch.nan_to_num(plane, nan=0.0, posinf=1.0, neginf=0.0).clamp(0, 1)
    return _round_half_up(plane * 255.0)


def finalize(
    output: Tensor,
    spec: ModelSpec,
    original_width: int,
    original_height: int,
) -> MatteResult:
    if original_width <= 0 or original_height <= 0:
        raise InvalidImageDimensions(
            f"Cannot restore matte to {original_width}x{original_height}.",
            details={"width": original_width, "height": original_height},
        )

    plane = select_matte_channel(output, spec)
    matte = to_byte_range(plane)
    matte = resize_bilinear(matte.unsqueeze(0), original_height, original_width)[0]
    alpha = _round_half_up(matte).to(torch.uint8).numpy()

    logger.debug(
        "Finalized %s output %s into %dx%d matte",
        spec.name,
        output.shape,
        original_width,
        original_height,
    )
    return MatteResult(original_width, original_height, np.ascontiguousarray(alpha))
