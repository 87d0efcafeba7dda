from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import torch

__all__ = ["Tensor"]


@dataclass(frozen=True)
class Tensor:
    """
    Float32 buffer with shape metadata passed between pipeline stages.

    The wrapped ``torch.Tensor`` always lives on the CPU, is contiguous and
    has dtype float32. Stages never mutate a Tensor they receive; each one
    produces a new Tensor for the next stage.
    """

    data: torch.Tensor

    def __post_init__(self) -> None:
        data = self.data
        if not isinstance(data, torch.Tensor):
            raise TypeError(f"Tensor expects a torch.Tensor, got {type(data).__name__}.")
        if data.ndim == 0:
            raise ValueError("Tensor must have at least one dimension.")
        data = data.detach().to("cpu", dtype=torch.float32).contiguous()
        object.__setattr__(self, "data", data)

    @classmethod
    def from_numpy(cls, array: np.ndarray) -> "Tensor":
        array = np.ascontiguousarray(array, dtype=np.float32)
        return cls(torch.from_numpy(array))

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(self.data.shape)

    @property
    def ndim(self) -> int:
        return self.data.ndim

    def numel(self) -> int:
        return self.data.numel()

    def numpy(self) -> np.ndarray:
        """Return a float32 ndarray copy suitable for feeding to ONNX Runtime."""
        return self.data.numpy().astype(np.float32, copy=True)
