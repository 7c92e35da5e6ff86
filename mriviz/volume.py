"""A loaded brain volume with its segmentation mask and the current slice."""

from __future__ import annotations

from dataclasses import dataclass, field
from os import PathLike

import numpy as np

from mriviz.imageops import highlight_mask, normalize_to_uint8
from mriviz.nifti import NiftiImage, load_nifti


@dataclass
class Volumetrics:
    """Holds an intensity volume, a mask volume and the slice being viewed.

    ``slice`` and ``mask_slice`` are 8-bit grey images extracted at
    ``slice_index``; they are ``None`` until extracted.
    """

    volume: NiftiImage | None = None
    mask_volume: NiftiImage | None = None
    slice: np.ndarray | None = field(default=None, repr=False)
    mask_slice: np.ndarray | None = field(default=None, repr=False)
    effect_name: str = ""
    slice_index: int = 0

    def load(self, path: str | PathLike, kind: str = "flair") -> NiftiImage:
        """Load a NIfTI volume; ``kind == "mask"`` stores it as the mask.

        Raises :class:`mriviz.nifti.NiftiError` if the file cannot be read.
        """
        image = load_nifti(path)
        if kind == "mask":
            self.mask_volume = image
        else:
            self.volume = image
        return image

    @property
    def depth(self) -> int:
        """Number of slices of the intensity volume, 0 when none is loaded."""
        return 0 if self.volume is None else self.volume.depth

    def _extract(self, volume: NiftiImage | None, what: str) -> np.ndarray:
        if volume is None:
            raise RuntimeError(f"{what} volume is not loaded")
        return normalize_to_uint8(volume.axial_slice(int(self.slice_index)))

    def extract_slice(self) -> np.ndarray:
        """Extract the intensity slice at ``slice_index`` scaled to 0..255.

        On failure ``slice`` is cleared and the error is raised.
        """
        self.slice = None
        self.slice = self._extract(self.volume, "image")
        return self.slice

    def extract_mask_slice(self) -> np.ndarray:
        """Extract the mask slice at ``slice_index`` scaled to 0..255.

        On failure ``mask_slice`` is cleared and the error is raised.
        """
        self.mask_slice = None
        self.mask_slice = self._extract(self.mask_volume, "mask")
        return self.mask_slice

    def process_slice(self, image: np.ndarray | None = None) -> np.ndarray:
        """Return a BGR image with the masked region tinted red.

        ``image`` defaults to the current slice.
        """
        if self.slice is None or self.mask_slice is None:
            raise ValueError("slice or mask slice has not been extracted")
        source = self.slice if image is None else np.asarray(image)
        return highlight_mask(source.copy(), self.mask_slice)