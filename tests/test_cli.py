import numpy as np
import pytest
from PIL import Image

from mriviz import imageops
from mriviz.cli import Viewer, ViewerError, main
from mriviz.datasets import brats_paths, default_catalog
from mriviz.nifti import NiftiImage, save_nifti
from mriviz.statistics import masked_values

SHAPE = (8, 6, 5)


@pytest.fixture
def dataset(tmp_path):
    root = tmp_path / "data"
    rng = np.random.default_rng(7)
    for number in (0, 2, 3):
        paths = brats_paths(root, number)
        paths.flair.parent.mkdir(parents=True, exist_ok=True)
        flair = rng.uniform(0, 1000, SHAPE).astype(np.float32)
        mask = np.zeros(SHAPE, dtype=np.float32)
        mask[2:6, 1:4, :] = 4.0
        mask[0, 0, :] = 1.0
        save_nifti(NiftiImage(flair), paths.flair)
        save_nifti(NiftiImage(mask), paths.mask)
    return root


@pytest.fixture
def viewer(dataset, tmp_path):
    v = Viewer(default_catalog(dataset), tmp_path / "out")
    v.load_case("brats0")
    return v


def test_unknown_case_raises(dataset, tmp_path):
    v = Viewer(default_catalog(dataset), tmp_path / "out")
    with pytest.raises(ViewerError):
        v.load_case("brats9")


def test_missing_files_raise(tmp_path):
    v = Viewer(default_catalog(tmp_path / "nowhere"), tmp_path / "out")
    with pytest.raises(ViewerError):
        v.load_case("brats2")


def test_load_case_sets_first_slice(dataset, tmp_path):
    v = Viewer(default_catalog(dataset), tmp_path / "out")
    assert v.load_case("brats3") == SHAPE[2]
    assert v.volumetrics.slice_index == 0
    expected = imageops.normalize_to_uint8(v.volumetrics.volume.axial_slice(0))
    assert np.array_equal(v.current_slice, expected)
    assert v.processed is None


def test_select_slice_without_highlight_returns_slice(viewer):
    out = viewer.select_slice(2)
    assert viewer.volumetrics.slice_index == 2
    assert np.array_equal(out, viewer.current_slice)


def test_select_slice_with_highlight(viewer):
    viewer.set_highlight(True)
    out = viewer.select_slice(1)
    assert out.shape == (SHAPE[1], SHAPE[0], 3)
    assert np.array_equal(out, viewer.volumetrics.process_slice())


def test_select_slice_out_of_range(viewer):
    with pytest.raises(ViewerError):
        viewer.select_slice(SHAPE[2])


def test_set_effect_before_load_does_nothing(dataset, tmp_path):
    v = Viewer(default_catalog(dataset), tmp_path / "out")
    assert v.set_effect("Threshold") is None
    assert v.volumetrics.effect_name == ""


def test_set_effect_threshold(viewer):
    out = viewer.set_effect("Threshold")
    assert viewer.volumetrics.effect_name == "Threshold"
    assert np.array_equal(out, imageops.threshold(viewer.current_slice, 55.0))
    assert set(np.unique(out)) <= {0, 255}


def test_set_highlight_rerenders(viewer):
    viewer.select_slice(0)
    on = viewer.set_highlight(True)
    assert on.ndim == 3
    off = viewer.set_highlight(False)
    assert np.array_equal(off, viewer.current_slice)


def test_save_image_requires_slice(dataset, tmp_path):
    v = Viewer(default_catalog(dataset), tmp_path / "out")
    with pytest.raises(ViewerError):
        v.save_image()


def test_save_image_writes_png_and_values(viewer, tmp_path):
    viewer.select_slice(2)
    image_path, csv_path = viewer.save_image()
    assert image_path == tmp_path / "out" / "slice_2_0.png"
    with Image.open(image_path) as saved:
        assert np.array_equal(np.asarray(saved), viewer.current_slice)
    lines = csv_path.read_text().splitlines()
    expected = masked_values(viewer.current_slice, viewer.current_mask)
    assert [int(line) for line in lines] == expected


def test_save_image_without_output_folder(dataset):
    v = Viewer(default_catalog(dataset), None)
    v.load_case("brats0")
    with pytest.raises(ViewerError):
        v.save_image()


def test_generate_video_frame_count(viewer):
    viewer.select_slice(2)
    path = viewer.generate_video(4)
    assert path.name == "output_video.gif"
    with Image.open(path) as gif:
        assert gif.n_frames == 5


def test_generate_video_clamps_at_end(viewer):
    viewer.select_slice(4)
    path = viewer.generate_video(4)
    with Image.open(path) as gif:
        assert gif.n_frames == 3
    assert viewer.volumetrics.slice_index == 4


def test_generate_video_requires_volume(dataset, tmp_path):
    v = Viewer(default_catalog(dataset), tmp_path / "out")
    with pytest.raises(ViewerError):
        v.generate_video(4)


def test_main_saves_image(dataset, tmp_path):
    out = tmp_path / "cli_out"
    code = main(
        ["brats2", "--root", str(dataset), "--slice", "1", "--effect", "Emboss",
         "--output", str(out), "--save", "--highlight"]
    )
    assert code == 0
    assert (out / "slice_1_0.png").is_file()


def test_main_bad_case_returns_error(dataset, tmp_path):
    code = main(["nope", "--root", str(dataset), "--output", str(tmp_path / "o")])
    assert code == 1