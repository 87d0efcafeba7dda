from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

__all__ = [
    "ModelKind",
    "OutputKind",
    "ModelSpec",
    "MODNET",
    "U2NET",
    "MODEL_REGISTRY",
    "get_model_spec",
]


class ModelKind(enum.Enum):
    MODNET = "modnet"
    U2NET = "u2net"


class OutputKind(enum.Enum):
    # One channel holding the matte, values expected in [0, 1].
    SINGLE_CHANNEL = "single_channel"
    # One or more channels; channel 0 is the salient-object mask.
    FIRST_CHANNEL = "first_channel"


@dataclass(frozen=True)
class ModelSpec:
    """
    Static description of a segmentation model variant.

    The constants must match the shipped ONNX weights; they are not
    user-configurable.
    """

    name: str
    kind: ModelKind
    display_name: str
    input_size: int
    mean: Tuple[float, float, float]
    std: Tuple[float, float, float]
    output_kind: OutputKind
    weights_filename: str
    weights_url: Optional[str] = None

    def __post_init__(self) -> None:
        if self.input_size <= 0:
            raise ValueError(f"input_size must be positive, got {self.input_size}.")
        if len(self.mean) != 3 or len(self.std) != 3:
            raise ValueError("mean and std must have exactly three entries (RGB).")
        if any(value == 0 for value in self.std):
            raise ValueError("std entries must be non-zero.")

    def weights_path(self, root: Path) -> Path:
        return Path(root) / self.weights_filename


MODNET = ModelSpec(
    name="modnet",
    kind=ModelKind.MODNET,
    display_name="MODNet",
    input_size=512,
    mean=(0.5, 0.5, 0.5),
    std=(0.5, 0.5, 0.5),
    output_kind=OutputKind.SINGLE_CHANNEL,
    weights_filename="modnet.onnx",
)

U2NET = ModelSpec(
    name="u2net",
    kind=ModelKind.U2NET,
    display_name="U2Net",
    input_size=320,
    mean=(0.485, 0.456, 0.406),
    std=(0.229, 0.224, 0.225),
    output_kind=OutputKind.FIRST_CHANNEL,
    weights_filename="u2net.onnx",
    weights_url=(
        "https://github.com/danielgatis/rembg/releases/download/v0.0.0/"
        "u2net.onnx"
    ),
)


MODEL_REGISTRY: Dict[str, ModelSpec] = {
    MODNET.name: MODNET,
    U2NET.name: U2NET,
}


def get_model_spec(name: str) -> ModelSpec:
    try:
        return MODEL_REGISTRY[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown model '{name}'. Choices: {list(MODEL_REGISTRY)}"
        ) from None
