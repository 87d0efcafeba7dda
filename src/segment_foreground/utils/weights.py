"""Locating (and optionally fetching) ONNX weight files."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional, Union

import requests

from ..errors import ModelLoadError
from ..models import ModelSpec
from .downloads import download_file

logger = logging.getLogger(__name__)

DEFAULT_MODELS_DIR = Path("models")


def executable_dir() -> Path:
    return Path(sys.argv[0] or sys.executable).resolve().parent


def candidate_paths(
    spec: ModelSpec,
    models_dir: Union[str, Path] = DEFAULT_MODELS_DIR,
    cwd: Optional[Path] = None,
) -> List[Path]:
    """Weight locations in lookup order: next to the executable, then the working directory."""
    models_dir = Path(models_dir).expanduser()
    if models_dir.is_absolute():
        return [spec.weights_path(models_dir)]

    cwd = Path.cwd() if cwd is None else cwd
    candidates = [
        spec.weights_path(executable_dir() / models_dir),
        spec.weights_path(cwd / models_dir),
    ]
    unique: List[Path] = []
    for path in candidates:
        if path not in unique:
            unique.append(path)
    return unique


def resolve_weights_path(
    spec: ModelSpec,
    models_dir: Union[str, Path] = DEFAULT_MODELS_DIR,
    cwd: Optional[Path] = None,
) -> Path:
    candidates = candidate_paths(spec, models_dir, cwd)
    for path in candidates:
        if path.is_file():
            return path
    raise ModelLoadError(
        f"Cannot find the model {spec.weights_filename} "
        f"(looked in: {', '.join(str(p) for p in candidates)})",
        details={"candidates": [str(p) for p in candidates]},
    )


def ensure_weights(
    spec: ModelSpec,
    models_dir: Union[str, Path] = DEFAULT_MODELS_DIR,
    download: bool = False,
    cwd: Optional[Path] = None,
) -> Path:
    """
    Return the weights path for ``spec``, downloading it when allowed.

    Downloads land in the last lookup location (the working directory, or
    ``models_dir`` itself when absolute).
    """
    try:
        return resolve_weights_path(spec, models_dir, cwd)
    except ModelLoadError:
        if not download:
            raise

    if not spec.weights_url:
        raise ModelLoadError(
            f"No download source available for model '{spec.name}'.",
            details={"model": spec.name},
        )

    destination = candidate_paths(spec, models_dir, cwd)[-1]
    try:
        return download_file(spec.weights_url, destination)
    except (requests.RequestException, OSError, ValueError) as exc:
        logger.warning("Download of %s failed: %s", spec.weights_url, exc)
        raise ModelLoadError(
            f"Failed to download weights for '{spec.name}': {exc}",
            details={"url": spec.weights_url, "path": str(destination)},
        ) from exc
