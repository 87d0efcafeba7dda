import numpy as np
import pytest
import torch

from segment_foreground.errors import InvalidImageDimensions, TensorShapeMismatch
from segment_foreground.models import MODNET, U2NET
from segment_foreground.postprocessing import finalize, select_matte_channel, to_byte_range
from segment_foreground.tensor import Tensor


def full_output(spec, value, channels=1):
    size = spec.input_size
    return Tensor(torch.full((1, channels, size, size), float(value)))


def test_finalize_clamps_out_of_range_values():
    size = MODNET.input_size
    data = torch.zeros(1, 1, size, size)
    data[0, 0, :, : size // 2] = 1.4
    data[0, 0, :, size // 2 :] = -0.2

    matte = finalize(Tensor(data), MODNET, size, size)

    assert matte.alpha.dtype == np.uint8
    assert (matte.alpha[:, : size // 2] == 255).all()
    assert (matte.alpha[:, size // 2 :] == 0).all()


def test_to_byte_range_rounds_half_away_from_zero():
    plane = torch.tensor([[0.5, 0.25, 0.0, 1.0]])

    assert to_byte_range(plane).tolist() == [[128.0, 64.0, 0.0, 255.0]]


def test_to_byte_range_replaces_non_finite_values():
    plane = torch.tensor([[float("nan"), float("inf"), float("-inf")]])

    assert to_byte_range(plane).tolist() == [[0.0, 255.0, 0.0]]


@pytest.mark.parametrize("width,height", [(1, 1), (37, 23), (640, 480), (512, 512)])
def test_finalize_restores_original_size(width, height):
    matte = finalize(full_output(MODNET, 0.6), MODNET, width, height)

    assert matte.size == (width, height)
    assert matte.alpha.shape == (height, width)
    assert (matte.alpha == 153).all()


def test_finalize_without_resize_keeps_values():
    size = U2NET.input_size
    values = torch.linspace(0, 1, size * size).view(1, 1, size, size)

    matte = finalize(Tensor(values), U2NET, size, size)

    expected = np.floor(values[0, 0].numpy() * 255 + 0.5).astype(np.uint8)
    assert np.array_equal(matte.alpha, expected)


def test_u2net_uses_first_channel():
    size = U2NET.input_size
    data = torch.zeros(1, 3, size, size)
    data[0, 0] = 1.0

    matte = finalize(Tensor(data), U2NET, 10, 10)

    assert (matte.alpha == 255).all()


def test_three_dimensional_output_is_accepted():
    size = MODNET.input_size
    plane = select_matte_channel(Tensor(torch.ones(1, size, size)), MODNET)

    assert tuple(plane.shape) == (size, size)


@pytest.mark.parametrize("spec", [MODNET, U2NET], ids=lambda s: s.name)
def test_zero_channels_raise_shape_mismatch(spec):
    size = spec.input_size
    empty = Tensor(torch.zeros(1, 0, size, size))

    with pytest.raises(TensorShapeMismatch):
        finalize(empty, spec, 8, 8)


@pytest.mark.parametrize(
    "spec,shape",
    [
        (MODNET, (1, 2, 512, 512)),
        (MODNET, (2, 1, 512, 512)),
        (MODNET, (1, 1, 256, 256)),
        (U2NET, (1, 1, 320, 512)),
        (U2NET, (3, 320, 320)),
        (U2NET, (1, 1, 1, 320, 320)),
        (U2NET, (320,)),
    ],
)
def test_incompatible_shapes_raise(spec, shape):
    with pytest.raises(TensorShapeMismatch):
        finalize(Tensor(torch.zeros(shape)), spec, 4, 4)


def test_finalize_rejects_empty_target():
    with pytest.raises(InvalidImageDimensions):
        finalize(full_output(MODNET, 0.5), MODNET, 0, 4)
