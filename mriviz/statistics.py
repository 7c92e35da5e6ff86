"""Collecting the intensities inside the segmentation mask."""

from __future__ import annotations

from os import PathLike
from pathlib import Path
from typing import Iterable

import numpy as np

from mriviz.imageops import bgr_to_gray


class StatisticsError(Exception):
    """Raised when statistics cannot be gathered or stored."""


def masked_values(image, mask) -> list[int]:
    """Grey values of ``image`` where ``mask`` is non-zero, in row-major order."""
    mask_arr = np.asarray(mask)
    if mask_arr.size == 0:
        raise StatisticsError("no mask available")
    img = np.asarray(image)
    gray = bgr_to_gray(img) if img.ndim == 3 else img
    if gray.shape != mask_arr.shape:
        raise StatisticsError("image and mask differ in size")
    values = gray[mask_arr > 0]
    if values.size == 0:
        raise StatisticsError("mask covers no pixels")
    return [int(v) for v in values]


def write_values_csv(values: Iterable[int], path: str | PathLike) -> Path:
    """Write one value per line to ``path``, creating parent directories."""
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8", newline="\n") as handle:
            for value in values:
                handle.write(f"{int(value)}\n")
    except OSError as exc:
        raise StatisticsError(f"cannot write {target}: {exc}") from exc
    return target