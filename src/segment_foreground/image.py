"""
Image containers and the Pillow-backed codec used around the pipeline.

``Image`` is the decoded RGBA8 input; ``MatteResult`` is the single-channel
output. Decoding and encoding live here so the pipeline itself stays free
of I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from .errors import ImageDecodeError, ImageEncodeError, UnsupportedImageFormat

__all__ = ["Image", "MatteResult", "load_image", "save_matte"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Image:
    """RGBA8 pixels in row-major order, shape ``(height, width, 4)``."""

    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Image dimensions must be non-negative, got {self.width}x{self.height}.")
        pixels = np.asarray(self.pixels)
        if pixels.dtype != np.uint8:
            raise ValueError(f"Image pixels must be uint8, got {pixels.dtype}.")
        expected = (self.height, self.width, 4)
        if pixels.ndim == 1:
            if pixels.size != self.width * self.height * 4:
                raise ValueError(
                    f"Pixel buffer holds {pixels.size} samples, expected "
                    f"{self.width}x{self.height}x4 = {self.width * self.height * 4}."
                )
        elif pixels.shape != expected:
            raise ValueError(f"Pixel array shape {pixels.shape} does not match {expected}.")
        object.__setattr__(self, "pixels", pixels.reshape(self.height, self.width, 4))

    @classmethod
    def from_buffer(cls, width: int, height: int, buffer: bytes) -> "Image":
        return cls(width, height, np.frombuffer(buffer, dtype=np.uint8).copy())

    @classmethod
    def from_pil(cls, image: PILImage.Image) -> "Image":
        rgba = image.convert("RGBA")
        return cls(rgba.width, rgba.height, np.array(rgba, dtype=np.uint8))

    @property
    def size(self):
        return self.width, self.height


@dataclass(frozen=True)
class MatteResult:
    """Single-channel matte, one byte per original-resolution pixel."""

    width: int
    height: int
    alpha: np.ndarray

    def __post_init__(self) -> None:
        alpha = np.asarray(self.alpha)
        if alpha.dtype != np.uint8:
            raise ValueError(f"Matte must be uint8, got {alpha.dtype}.")
        if alpha.shape != (self.height, self.width):
            raise ValueError(
                f"Matte shape {alpha.shape} does not match {self.height}x{self.width}."
            )
        object.__setattr__(self, "alpha", alpha)

    @property
    def size(self):
        return self.width, self.height

    def to_pil(self) -> PILImage.Image:
        return PILImage.fromarray(self.alpha)


def load_image(path: Union[str, Path]) -> Image:
    """
    Decode an image file into an RGBA :class:`Image`.

    Raises
    ------
    UnsupportedImageFormat
        Pillow does not recognise the file format.
    ImageDecodeError
        The file is missing or its contents cannot be decoded.
    """
    path = Path(path)
    if not path.is_file():
        raise ImageDecodeError(f"Image not found: {path}", details={"path": str(path)})

    try:
        with PILImage.open(path) as img:
            image = Image.from_pil(img)
    except UnidentifiedImageError as exc:
        raise UnsupportedImageFormat(
            f"Unsupported image format: {path}", details={"path": str(path)}
        ) from exc
    except (OSError, SyntaxError, ValueError, PILImage.DecompressionBombError) as exc:
        # Pillow reports some corrupt payloads as SyntaxError.
        raise ImageDecodeError(
            f"Failed to decode image {path}: {exc}", details={"path": str(path)}
        ) from exc

    logger.debug("Decoded %s (%dx%d)", path, image.width, image.height)
    return image


def save_matte(matte: MatteResult, path: Union[str, Path]) -> Path:
    """Encode ``matte`` as a grayscale image; the format follows the file extension."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        matte.to_pil().save(path)
    except (OSError, ValueError, KeyError) as exc:
        raise ImageEncodeError(
            f"Failed to encode matte to {path}: {exc}", details={"path": str(path)}
        ) from exc
    return path
