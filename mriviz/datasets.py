"""Locations of the BraTS 2021 cases on disk."""

from __future__ import annotations

from dataclasses import dataclass
from os import PathLike
from pathlib import Path

_PREFIX = "BraTS2021_"
_DEFAULT_CASES = {"brats0": 0, "brats2": 2, "brats3": 3}


@dataclass(frozen=True)
class BratsPaths:
    """Paths to the modalities and segmentation of one BraTS case."""

    flair: Path
    t1: Path
    t1c: Path
    t2: Path
    mask: Path


def _case_number(case_id: int | str) -> int:
    if isinstance(case_id, str):
        if not case_id.isdigit():
            raise ValueError(f"invalid case id {case_id!r}")
        return int(case_id)
    number = int(case_id)
    if number < 0:
        raise ValueError(f"invalid case id {case_id!r}")
    return number


def brats_paths(root: str | PathLike, case_id: int | str) -> BratsPaths:
    """Build the file paths of case ``case_id`` under the dataset ``root``."""
    name = f"{_PREFIX}{_case_number(case_id):05d}"
    folder = Path(root) / name

    def volume(suffix: str) -> Path:
        return folder / f"{name}_{suffix}.nii.gz"

    return BratsPaths(
        flair=volume("flair"),
        t1=volume("t1"),
        t1c=volume("t1ce"),
        t2=volume("t2"),
        mask=volume("seg"),
    )


def default_catalog(root: str | PathLike) -> dict[str, BratsPaths]:
    """The cases offered for viewing, keyed by their display name."""
    return {key: brats_paths(root, number) for key, number in _DEFAULT_CASES.items()}