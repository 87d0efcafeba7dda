from pathlib import Path
from typing import Callable, Optional, Sequence, Union

import numpy as np
import pytest
import torch

from segment_foreground.backend import InferenceSession
from segment_foreground.image import Image
from segment_foreground.models import ModelSpec
from segment_foreground.tensor import Tensor

Dim = Union[int, str]


def mean_sigmoid(tensor: Tensor) -> Tensor:
    """Stand-in network: channel mean squashed into [0, 1]."""
    return Tensor(torch.sigmoid(tensor.data.mean(dim=1, keepdim=True)))


class FakeBackend:
    """In-process backend that applies ``fn`` instead of running a graph."""

    def __init__(self, fn: Callable[[Tensor], Tensor] = mean_sigmoid) -> None:
        self.fn = fn
        self.calls = 0

    def open(self, spec: ModelSpec, weights_path) -> InferenceSession:
        return InferenceSession(
            spec=spec,
            handle=object(),
            input_name="input",
            output_name="output",
            weights_path=Path(weights_path),
        )

    def run(self, session: InferenceSession, tensor: Tensor) -> Tensor:
        self.calls += 1
        return self.fn(tensor)


def make_image(width: int, height: int, seed: int = 0, alpha: int = 255) -> Image:
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    pixels[:, :, 3] = alpha
    return Image(width, height, pixels)


def solid_image(width: int, height: int, value: int = 255) -> Image:
    return Image(width, height, np.full((height, width, 4), value, dtype=np.uint8))


def write_onnx_model(
    path: Path,
    input_shape: Sequence[Dim],
    output_shape: Sequence[Dim],
    extra_channel: bool = False,
) -> Path:
    """
    Save a tiny ONNX graph: sigmoid(mean over channels).

    With ``extra_channel`` the raw channel mean is concatenated as a second
    output channel, mimicking multi-channel saliency outputs.
    """
    onnx = pytest.importorskip("onnx")
    from onnx import TensorProto, helper

    matte_name = "matte" if extra_channel else "output"
    nodes = [
        helper.make_node("ReduceMean", ["input"], ["mean"], axes=[1], keepdims=1),
        helper.make_node("Sigmoid", ["mean"], [matte_name]),
    ]
    if extra_channel:
        nodes.append(helper.make_node("Concat", ["matte", "mean"], ["output"], axis=1))

    graph = helper.make_graph(
        nodes,
        "tiny-matte",
        [helper.make_tensor_value_info("input", TensorProto.FLOAT, list(input_shape))],
        [helper.make_tensor_value_info("output", TensorProto.FLOAT, list(output_shape))],
    )
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", 13)])
    model.ir_version = 8
    path.parent.mkdir(parents=True, exist_ok=True)
    onnx.save(model, str(path))
    return path


def write_model_for(spec: ModelSpec, root: Path, name: Optional[str] = None) -> Path:
    size = spec.input_size
    channels = 2 if spec.name == "u2net" else 1
    return write_onnx_model(
        root / (name or spec.weights_filename),
        [1, 3, size, size],
        [1, channels, size, size],
        extra_channel=channels == 2,
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()
