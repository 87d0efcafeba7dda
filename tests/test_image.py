import numpy as np
import pytest
from PIL import Image as PILImage

from segment_foreground.errors import ImageDecodeError, ImageEncodeError, UnsupportedImageFormat
from segment_foreground.image import Image, MatteResult, load_image, save_matte


def test_image_enforces_buffer_length():
    with pytest.raises(ValueError):
        Image(4, 4, np.zeros(4 * 4 * 3, dtype=np.uint8))


def test_image_rejects_non_byte_pixels():
    with pytest.raises(ValueError):
        Image(2, 2, np.zeros((2, 2, 4), dtype=np.float32))


def test_image_from_buffer_is_row_major():
    buffer = bytes(range(2 * 3 * 4))

    image = Image.from_buffer(2, 3, buffer)

    assert image.pixels.shape == (3, 2, 4)
    assert image.pixels[1, 0].tolist() == [8, 9, 10, 11]


def test_load_image_converts_to_rgba(tmp_path):
    path = tmp_path / "photo.jpg"
    PILImage.new("RGB", (7, 5), (10, 20, 30)).save(path)

    image = load_image(path)

    assert image.size == (7, 5)
    assert image.pixels.shape == (5, 7, 4)
    assert (image.pixels[:, :, 3] == 255).all()


def test_load_image_missing_file(tmp_path):
    with pytest.raises(ImageDecodeError):
        load_image(tmp_path / "missing.png")


def test_load_image_unknown_format(tmp_path):
    path = tmp_path / "notes.png"
    path.write_text("this is not an image")

    with pytest.raises(UnsupportedImageFormat):
        load_image(path)


def test_load_image_truncated_file(tmp_path):
    path = tmp_path / "cut.png"
    PILImage.new("RGB", (64, 64), (200, 10, 10)).save(path)
    path.write_bytes(path.read_bytes()[:60])

    with pytest.raises(ImageDecodeError):
        load_image(path)


def test_save_matte_writes_grayscale(tmp_path):
    alpha = np.arange(12, dtype=np.uint8).reshape(3, 4)
    destination = tmp_path / "out" / "matte.png"

    save_matte(MatteResult(4, 3, alpha), destination)

    with PILImage.open(destination) as saved:
        assert saved.mode == "L"
        assert np.array_equal(np.array(saved), alpha)


def test_save_matte_unknown_extension(tmp_path):
    matte = MatteResult(1, 1, np.zeros((1, 1), dtype=np.uint8))

    with pytest.raises(ImageEncodeError):
        save_matte(matte, tmp_path / "matte.unknownext")


def test_matte_result_checks_shape():
    with pytest.raises(ValueError):
        MatteResult(3, 2, np.zeros((3, 2), dtype=np.uint8))


def test_image_rejects_transposed_pixel_array():
    with pytest.raises(ValueError):
        Image(2, 3, np.zeros((2, 3, 4), dtype=np.uint8))


def test_image_accepts_flat_buffer():
    image = Image(2, 3, np.zeros(2 * 3 * 4, dtype=np.uint8))

    assert image.pixels.shape == (3, 2, 4)


def test_load_image_oversized_file(tmp_path, monkeypatch):
    path = tmp_path / "huge.png"
    PILImage.new("RGB", (200, 200)).save(path)
    monkeypatch.setattr(PILImage, "MAX_IMAGE_PIXELS", 1000)

    with pytest.raises(ImageDecodeError):
        load_image(path)
