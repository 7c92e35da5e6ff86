from pathlib import Path

import pytest

from mriviz.datasets import BratsPaths, brats_paths, default_catalog


def test_flair_path_layout(tmp_path):
    paths = brats_paths(tmp_path, 0)
    assert paths.flair == tmp_path / "BraTS2021_00000" / "BraTS2021_00000_flair.nii.gz"


def test_modalities_share_folder(tmp_path):
    paths = brats_paths(tmp_path, 2)
    parents = {p.parent for p in (paths.flair, paths.t1, paths.t1c, paths.t2, paths.mask)}
    assert parents == {tmp_path / "BraTS2021_00002"}


def test_suffixes(tmp_path):
    paths = brats_paths(tmp_path, 3)
    assert paths.t1.name.endswith("_t1.nii.gz")
    assert paths.t1c.name.endswith("_t1ce.nii.gz")
    assert paths.t2.name.endswith("_t2.nii.gz")
    assert paths.mask.name.endswith("_seg.nii.gz")


def test_string_and_int_ids_agree(tmp_path):
    assert brats_paths(tmp_path, "2") == brats_paths(tmp_path, 2)
    assert brats_paths(tmp_path, "00003") == brats_paths(tmp_path, 3)


def test_accepts_string_root():
    paths = brats_paths("data", 0)
    assert paths.mask == Path("data") / "BraTS2021_00000" / "BraTS2021_00000_seg.nii.gz"


@pytest.mark.parametrize("bad", [-1, "abc", "", "-2"])
def test_invalid_case_ids(tmp_path, bad):
    with pytest.raises(ValueError):
        brats_paths(tmp_path, bad)


def test_default_catalog_keys(tmp_path):
    catalog = default_catalog(tmp_path)
    assert list(catalog) == ["brats0", "brats2", "brats3"]


def test_default_catalog_entries(tmp_path):
    catalog = default_catalog(tmp_path)
    assert catalog["brats2"] == brats_paths(tmp_path, 2)
    assert all(isinstance(v, BratsPaths) for v in catalog.values())
    assert catalog["brats3"].flair.parent.name == "BraTS2021_00003"


def test_paths_are_frozen(tmp_path):
    paths = brats_paths(tmp_path, 0)
    with pytest.raises(AttributeError):
        paths.flair = tmp_path
    assert paths.flair == tmp_path / "BraTS2021_00000" / "BraTS2021_00000_flair.nii.gz"