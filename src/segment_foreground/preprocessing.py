"""
Image preprocessing for the segmentation models.

Images are stretched to the model's fixed square input (no letterboxing),
scaled to [0, 1] and normalized with the per-model mean/std before being
laid out as a ``1 x 3 x S x S`` tensor.
"""

from __future__ import annotations

import logging

import torch
import torch.nn.functional as F
from torchvision.transforms import functional as TF

from .errors import InvalidImageDimensions
from .image import Image
from .models import ModelSpec
from .tensor import Tensor

__all__ = ["prepare", "resize_bilinear", "normalize", "denormalize"]

logger = logging.getLogger(__name__)


def resize_bilinear(chw: torch.Tensor, height: int, width: int) -> torch.Tensor:
    """
    Bilinearly resize a ``C x H x W`` float tensor.

    Uses half-pixel centres (``align_corners=False``) without antialiasing.
    Returns an unchanged copy when the size already matches.
    """
    if chw.ndim != 3:
        raise ValueError(f"Expected a CxHxW tensor, got shape {tuple(chw.shape)}.")
    if height <= 0 or width <= 0:
        raise ValueError(f"Target size must be positive, got {width}x{height}.")
    if tuple(chw.shape[1:]) == (height, width):
        return chw.clone()
    return F.interpolate(
        chw.unsqueeze(0),
        size=(height, width),
        mode="bilinear",
        align_corners=False,
    )[0]


def normalize(chw: torch.Tensor, spec: ModelSpec) -> torch.Tensor:
    """Map raw ``[0, 255]`` RGB values to ``(raw/255 - mean) / std``."""
    return TF.normalize(chw / 255.0, mean=list(spec.mean), std=list(spec.std))


def denormalize(chw: torch.Tensor, spec: ModelSpec) -> torch.Tensor:
    mean = torch.tensor(spec.mean, dtype=chw.dtype).view(-1, 1, 1)
    std = torch.tensor(spec.std, dtype=chw.dtype).view(-1, 1, 1)
    return (chw * std + mean) * 255.0


def prepare(image: Image, spec: ModelSpec) -> Tensor:
    if image.width == 0 or image.height == 0:
        raise InvalidImageDimensions(
            f"Image has invalid dimensions {image.width}x{image.height}.",
            details={"width": image.width, "height": image.height},
        )

    rgb = torch.from_numpy(image.pixels[:, :, :3].copy()).permute(2, 0, 1).float()
    size = spec.input_size
    resized = resize_bilinear(rgb, size, size)
    tensor = normalize(resized, spec).unsqueeze(0)

    logger.debug(
        "Prepared %dx%d image for %s as %s",
        image.width,
        image.height,
        spec.name,
        tuple(tensor.shape),
    )
    return Tensor(tensor)
