import numpy as np
import pytest

from mriviz.nifti import NiftiError, NiftiImage, save_nifti
from mriviz.volume import Volumetrics


def _ramp_volume():
    x, y, z = np.meshgrid(np.arange(4), np.arange(3), np.arange(2), indexing="ij")
    return (x + 10 * y + 100 * z).astype(np.float32)


@pytest.fixture
def loaded(tmp_path):
    image_path = tmp_path / "flair.nii.gz"
    mask_path = tmp_path / "seg.nii.gz"
    save_nifti(NiftiImage(_ramp_volume()), image_path)
    mask = np.zeros((4, 3, 2), dtype=np.float32)
    mask[1, 2, :] = 4.0
    save_nifti(NiftiImage(mask), mask_path)
    vol = Volumetrics()
    vol.load(image_path, "flair")
    vol.load(mask_path, "mask")
    return vol


def test_depth_zero_before_loading():
    assert Volumetrics().depth == 0


def test_depth_after_loading(loaded):
    assert loaded.depth == 2


def test_slice_shape_is_height_by_width(loaded):
    result = loaded.extract_slice()
    assert result.shape == (3, 4)
    assert result.dtype == np.uint8


def test_slice_spans_full_range(loaded):
    loaded.slice_index = 1
    result = loaded.extract_slice()
    assert result.min() == 0
    assert result.max() == 255
    assert np.unravel_index(np.argmax(result), result.shape) == (2, 3)


def test_slice_stored_on_object(loaded):
    result = loaded.extract_slice()
    assert np.array_equal(loaded.slice, result)


def test_mask_slice_constant_zero_elsewhere(loaded):
    mask = loaded.extract_mask_slice()
    assert mask[2, 1] == 255
    assert int(mask.sum()) == 255


def test_out_of_range_clears_slice(loaded):
    loaded.extract_slice()
    loaded.slice_index = loaded.depth
    with pytest.raises(IndexError):
        loaded.extract_slice()
    assert loaded.slice is None


def test_negative_index_rejected(loaded):
    loaded.slice_index = -1
    with pytest.raises(IndexError):
        loaded.extract_mask_slice()
    assert loaded.mask_slice is None


def test_extract_without_volume_raises():
    with pytest.raises(RuntimeError):
        Volumetrics().extract_slice()


def test_extract_mask_without_volume_raises():
    with pytest.raises(RuntimeError):
        Volumetrics().extract_mask_slice()


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(NiftiError):
        Volumetrics().load(tmp_path / "missing.nii.gz", "flair")


def test_loading_mask_keeps_depth_zero(tmp_path):
    path = tmp_path / "seg.nii"
    save_nifti(NiftiImage(np.zeros((2, 2, 5), dtype=np.float32)), path)
    vol = Volumetrics()
    vol.load(path, "mask")
    assert vol.depth == 0
    assert vol.mask_volume.depth == 5


def test_process_slice_tints_masked_pixels(loaded):
    gray = loaded.extract_slice()
    loaded.extract_mask_slice()
    colour = loaded.process_slice()
    assert colour.shape == (3, 4, 3)
    assert colour[2, 1, 2] == 255
    assert colour[2, 1, 0] == gray[2, 1]
    assert np.array_equal(colour[0, :, 2], gray[0, :])


def test_process_slice_uses_given_image(loaded):
    loaded.extract_slice()
    loaded.extract_mask_slice()
    other = np.full((3, 4), 7, dtype=np.uint8)
    colour = loaded.process_slice(other)
    assert colour[0, 0, 1] == 7
    assert colour[2, 1, 2] == 255


def test_process_slice_needs_mask(loaded):
    loaded.extract_slice()
    with pytest.raises(ValueError):
        loaded.process_slice()


def test_effect_name_defaults_empty():
    vol = Volumetrics()
    vol.effect_name = "Canny"
    assert vol.effect_name == "Canny"
    assert Volumetrics().effect_name == ""