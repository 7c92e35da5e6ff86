"""Reading and writing single-file NIfTI-1 volumes (optionally gzipped)."""

from __future__ import annotations

import gzip
import math
import struct
import zlib
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

import numpy as np

_HEADER_SIZE = 348
_DATA_OFFSET = 352
_MAGIC_SINGLE = b"n+1\x00"
_MAGIC_PAIR = b"ni1\x00"
_NIFTI2_HEADER_SIZE = 540
_FLOAT32 = 16

_DTYPES = {
    2: "u1",
    4: "i2",
    8: "i4",
    16: "f4",
    64: "f8",
    256: "i1",
    512: "u2",
    768: "u4",
    1024: "i8",
    1280: "u8",
}


class NiftiError(Exception):
    """Raised when a file is not a readable NIfTI-1 volume."""


@dataclass(eq=False)
class NiftiImage:
    """A 3-D volume indexed as ``data[x, y, z]`` with voxel spacing."""

    data: np.ndarray
    spacing: tuple[float, float, float] = (1.0, 1.0, 1.0)

    def __post_init__(self) -> None:
        data = np.asarray(self.data, dtype=np.float32)
        while data.ndim < 3:
            data = data[..., None]
        if data.ndim != 3:
            raise ValueError(f"expected a 3-D volume, got shape {data.shape}")
        self.data = data
        self.spacing = tuple(float(s) for s in self.spacing)

    @property
    def depth(self) -> int:
        """Number of slices along z."""
        return self.data.shape[2]

    def axial_slice(self, index: int) -> np.ndarray:
        """Return slice ``index`` as a ``(height, width)`` float array."""
        if not 0 <= index < self.depth:
            raise IndexError(f"slice index {index} out of range (depth = {self.depth})")
        return np.ascontiguousarray(self.data[:, :, index].T)


def _endianness(raw: bytes) -> str:
    for order in ("<", ">"):
        size = struct.unpack_from(order + "i", raw, 0)[0]
        if size == _HEADER_SIZE:
            return order
        if size == _NIFTI2_HEADER_SIZE:
            raise NiftiError("NIfTI-2 files are not supported")
    raise NiftiError("not a NIfTI-1 header")


def load_nifti(path: str | PathLike) -> NiftiImage:
    """Load a single-file NIfTI-1 volume as float32, applying intensity scaling."""
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise NiftiError(f"cannot read {path}: {exc}") from exc
    if raw[:2] == b"\x1f\x8b":
        try:
            raw = gzip.decompress(raw)
        except (OSError, EOFError, zlib.error) as exc:
            raise NiftiError(f"corrupt gzip stream in {path}") from exc
    if len(raw) < _HEADER_SIZE:
        raise NiftiError("file too short for a NIfTI header")

    order = _endianness(raw)
    magic = raw[344:348]
    if magic == _MAGIC_PAIR:
        raise NiftiError("header/image file pairs are not supported")
    if magic != _MAGIC_SINGLE:
        raise NiftiError("bad NIfTI magic")

    dims = struct.unpack_from(order + "8h", raw, 40)
    ndim = dims[0]
    if not 1 <= ndim <= 7:
        raise NiftiError(f"invalid dimension count {ndim}")
    shape = tuple(dims[1: ndim + 1])
    if any(d <= 0 for d in shape):
        raise NiftiError(f"invalid dimensions {shape}")

    datatype = struct.unpack_from(order + "h", raw, 70)[0]
    pixdim = struct.unpack_from(order + "8f", raw, 76)
    vox_offset, slope, inter = struct.unpack_from(order + "3f", raw, 108)
    code = _DTYPES.get(datatype)
    if code is None:
        raise NiftiError(f"unsupported datatype {datatype}")
    dtype = np.dtype(code).newbyteorder(order)

    offset = int(vox_offset)
    count = math.prod(shape)
    if offset < _HEADER_SIZE or len(raw) < offset + count * dtype.itemsize:
        raise NiftiError("voxel data truncated")
    data = np.frombuffer(raw, dtype=dtype, count=count, offset=offset)
    data = data.reshape(shape, order="F").astype(np.float32)
    if slope != 0.0 and math.isfinite(slope) and not (slope == 1.0 and inter == 0.0):
        data = (data * np.float32(slope) + np.float32(inter)).astype(np.float32)

    while data.ndim > 3 and data.shape[-1] == 1:
        data = data[..., 0]
    if data.ndim > 3:
        raise NiftiError(f"volume has more than three dimensions: {data.shape}")

    spacing = tuple(
        float(pixdim[i]) if i <= ndim and pixdim[i] > 0 else 1.0 for i in (1, 2, 3)
    )
    return NiftiImage(data, spacing)


def save_nifti(image: NiftiImage, path: str | PathLike) -> None:
    """Write ``image`` as a little-endian float32 NIfTI-1 file; gzip if ``.gz``."""
    data = np.asarray(image.data, dtype="<f4")
    header = bytearray(_HEADER_SIZE)
    struct.pack_into("<i", header, 0, _HEADER_SIZE)
    struct.pack_into("<8h", header, 40, 3, *data.shape, 1, 1, 1, 1)
    struct.pack_into("<hh", header, 70, _FLOAT32, 32)
    struct.pack_into("<8f", header, 76, 1.0, *image.spacing, 1.0, 1.0, 1.0, 1.0)
    struct.pack_into("<3f", header, 108, float(_DATA_OFFSET), 1.0, 0.0)
    struct.pack_into("<B", header, 123, 2)
    header[344:348] = _MAGIC_SINGLE
    payload = bytes(header) + b"\x00" * (_DATA_OFFSET - _HEADER_SIZE) + data.tobytes(order="F")
    target = Path(path)
    if target.name.endswith(".gz"):
        payload = gzip.compress(payload)
    target.write_bytes(payload)