"""Image operations on 8-bit slices stored as numpy arrays.

Grey images are 2-D ``uint8`` arrays; colour images are ``(h, w, 3)`` arrays
in blue, green, red channel order.
"""

from __future__ import annotations

import math
from typing import Callable

import numpy as np
from scipy import ndimage

_EMBOSS_KERNEL = np.array(
    [[-2.0, -1.0, 0.0], [-1.0, 1.0, 1.0], [0.0, 1.0, 2.0]], dtype=np.float64
)

# Fixed-point tangent constants used by the edge detector's non-maximum step.
_TG22 = 13573
_CANNY_SHIFT = 15


def _check(image) -> np.ndarray:
    arr = np.asarray(image)
    if arr.size == 0:
        raise ValueError("empty image")
    if arr.ndim == 2 or (arr.ndim == 3 and arr.shape[2] == 3):
        return arr
    raise ValueError(f"unsupported image shape {arr.shape}")


def _to_uint8(values) -> np.ndarray:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def _per_channel(image: np.ndarray, func: Callable[[np.ndarray], np.ndarray]) -> np.ndarray:
    if image.ndim == 2:
        return func(image)
    return np.stack([func(image[..., c]) for c in range(image.shape[2])], axis=-1)


def _odd(size: int, minimum: int = 1) -> int:
    size = max(int(size), minimum)
    return size + 1 if size % 2 == 0 else size


def gray_to_bgr(image) -> np.ndarray:
    """Replicate a grey image into three identical channels."""
    arr = _check(image)
    if arr.ndim != 2:
        raise ValueError("expected a single-channel image")
    return np.repeat(arr[:, :, None], 3, axis=2)


def bgr_to_gray(image) -> np.ndarray:
    """Convert a BGR image to grey using the standard luma weights."""
    arr = _check(image)
    if arr.ndim == 2:
        return arr.copy()
    data = arr.astype(np.float64)
    luma = 0.114 * data[..., 0] + 0.587 * data[..., 1] + 0.299 * data[..., 2]
    return _to_uint8(luma)


def normalize_to_uint8(data) -> np.ndarray:
    """Linearly map the value range of ``data`` onto 0..255.

    A constant input maps to all zeros.
    """
    arr = np.asarray(data, dtype=np.float64)
    if arr.size == 0:
        raise ValueError("empty image")
    low, high = float(arr.min()), float(arr.max())
    if high - low <= 0.0:
        return np.zeros(arr.shape, dtype=np.uint8)
    scale = 255.0 / (high - low)
    return _to_uint8(arr * scale - low * scale)


def highlight_mask(image, mask) -> np.ndarray:
    """Blend the red channel towards full intensity where the mask is set."""
    arr = _check(image)
    mask_arr = _check(mask)
    if arr.ndim != 2 or mask_arr.ndim != 2:
        raise ValueError("image and mask must be single-channel")
    if arr.shape != mask_arr.shape:
        raise ValueError("image and mask differ in size")
    color = gray_to_bgr(arr).astype(np.uint8)
    alpha = mask_arr.astype(np.float32) * np.float32(1.0 / 255.0)
    red = color[..., 2].astype(np.float32)
    blended = (np.float32(1.0) - alpha) * red + alpha * np.float32(255.0)
    color[..., 2] = np.where(alpha > 0.0, _to_uint8(blended), color[..., 2])
    return color


def threshold(image, level: float = 55.0) -> np.ndarray:
    """Binary threshold: 255 where the grey value exceeds ``level``, else 0."""
    gray = bgr_to_gray(_check(image))
    if gray.dtype == np.uint8:
        level = math.floor(level)
    return np.where(gray > level, 255, 0).astype(np.uint8)


def contrast_stretch(image) -> np.ndarray:
    """Stretch each channel independently to the full 0..255 range."""
    arr = _check(image)

    def stretch(channel: np.ndarray) -> np.ndarray:
        low, high = float(channel.min()), float(channel.max())
        if low == high:
            return channel.copy()
        scale = 255.0 / (high - low)
        return _to_uint8(channel.astype(np.float64) * scale - low * scale)

    return _per_channel(arr, stretch)


def umbral_binary(mask) -> np.ndarray:
    """Select pixels whose HSV value lies in the dark-grey band of the mask."""
    arr = _check(mask)
    bgr = gray_to_bgr(arr) if arr.ndim == 2 else arr
    data = bgr.astype(np.float64)
    value = data.max(axis=2)
    spread = value - data.min(axis=2)
    with np.errstate(divide="ignore", invalid="ignore"):
        saturation = np.where(value > 0, np.rint(255.0 * spread / value), 0.0)
    # Hue of an 8-bit image always lies in 0..180, so only S and V decide.
    selected = (saturation <= 30) & (value >= 60) & (value <= 70)
    return np.where(selected, 255, 0).astype(np.uint8)


def bitwise(image, mask, operation: str = "AND") -> np.ndarray:
    """Combine an image with a mask bitwise; unknown operations mean XOR."""
    arr = _check(image)
    mask_arr = _check(mask)
    img = gray_to_bgr(arr) if arr.ndim == 2 else arr.copy()
    if operation == "NOT":
        return np.bitwise_not(img)
    other = gray_to_bgr(mask_arr) if mask_arr.ndim == 2 else mask_arr
    if img.shape != other.shape:
        raise ValueError("image and mask differ in size")
    if operation == "AND":
        return np.bitwise_and(img, other)
    if operation == "OR":
        return np.bitwise_or(img, other)
    return np.bitwise_xor(img, other)


def _gaussian_kernel(size: int, sigma: float) -> np.ndarray:
    if sigma <= 0:
        sigma = 0.3 * ((size - 1) * 0.5 - 1) + 0.8
    offsets = np.arange(size, dtype=np.float64) - (size - 1) / 2.0
    kernel = np.exp(-(offsets**2) / (2.0 * sigma * sigma))
    return kernel / kernel.sum()


def _gaussian_blur(channel: np.ndarray, size: int, sigma: float) -> np.ndarray:
    kernel = _gaussian_kernel(size, sigma)
    data = ndimage.convolve1d(channel.astype(np.float64), kernel, axis=0, mode="mirror")
    return ndimage.convolve1d(data, kernel, axis=1, mode="mirror")


def _edges(image: np.ndarray, low: float, high: float) -> np.ndarray:
    data = image.astype(np.int32)
    if data.ndim == 2:
        data = data[:, :, None]
    dx = ndimage.correlate1d(
        ndimage.correlate1d(data, [1, 2, 1], axis=0, mode="nearest"),
        [-1, 0, 1], axis=1, mode="nearest",
    )
    dy = ndimage.correlate1d(
        ndimage.correlate1d(data, [1, 2, 1], axis=1, mode="nearest"),
        [-1, 0, 1], axis=0, mode="nearest",
    )
    magnitude = np.abs(dx) + np.abs(dy)
    best = np.argmax(magnitude, axis=2)[..., None]
    dx = np.take_along_axis(dx, best, axis=2)[..., 0].astype(np.int64)
    dy = np.take_along_axis(dy, best, axis=2)[..., 0].astype(np.int64)
    mag = np.take_along_axis(magnitude, best, axis=2)[..., 0].astype(np.int64)

    padded = np.pad(mag, 1)
    left, right = padded[1:-1, :-2], padded[1:-1, 2:]
    up, down = padded[:-2, 1:-1], padded[2:, 1:-1]
    up_left, up_right = padded[:-2, :-2], padded[:-2, 2:]
    down_left, down_right = padded[2:, :-2], padded[2:, 2:]

    ax = np.abs(dx)
    ay = np.abs(dy) << _CANNY_SHIFT
    tg22 = ax * _TG22
    tg67 = tg22 + (ax << (_CANNY_SHIFT + 1))

    horizontal = ay < tg22
    vertical = ay > tg67
    diagonal = ~horizontal & ~vertical
    same_sign = (dx ^ dy) >= 0

    keep_h = horizontal & (mag > left) & (mag >= right)
    keep_v = vertical & (mag > up) & (mag >= down)
    keep_d = diagonal & np.where(
        same_sign,
        (mag > up_left) & (mag > down_right),
        (mag > up_right) & (mag > down_left),
    )
    candidate = (mag > math.floor(low)) & (keep_h | keep_v | keep_d)
    strong = candidate & (mag > math.floor(high))

    labels, _ = ndimage.label(candidate, structure=np.ones((3, 3), dtype=int))
    seeds = np.unique(labels[strong])
    seeds = seeds[seeds > 0]
    return np.where(np.isin(labels, seeds), 255, 0).astype(np.uint8)


def canny(image) -> np.ndarray:
    """Detect edges after a 5x5 Gaussian blur (sigma 1.5), thresholds 50/150."""
    arr = _check(image)
    bgr = gray_to_bgr(arr) if arr.ndim == 2 else arr
    blurred = _per_channel(bgr, lambda ch: _to_uint8(_gaussian_blur(ch, 5, 1.5)))
    return _edges(blurred, 50.0, 150.0)


def adjust_brightness(image, amount: float = 50) -> np.ndarray:
    """Add a constant to every pixel, saturating at 0 and 255."""
    arr = _check(image)
    return _to_uint8(arr.astype(np.float64) + amount)


def mean_filter(image, kernel_size: int = 5) -> np.ndarray:
    """Box blur; even kernel sizes are rounded up to the next odd size."""
    arr = _check(image)
    size = _odd(kernel_size)
    return _per_channel(
        arr,
        lambda ch: _to_uint8(ndimage.uniform_filter(ch.astype(np.float64), size=size, mode="mirror")),
    )


def gaussian_filter(image, kernel_size: int = 5, sigma: float = 1.0) -> np.ndarray:
    """Gaussian blur; even kernel sizes are rounded up to the next odd size."""
    arr = _check(image)
    size = _odd(kernel_size)
    return _per_channel(arr, lambda ch: _to_uint8(_gaussian_blur(ch, size, sigma)))


def median_filter(image, kernel_size: int = 5) -> np.ndarray:
    """Median blur with an odd aperture of at least 3."""
    arr = _check(image)
    size = _odd(kernel_size, minimum=3)
    return _per_channel(arr, lambda ch: ndimage.median_filter(ch, size=size, mode="nearest"))


def bilateral_filter(
    image, diameter: int = 9, sigma_color: float = 75.0, sigma_space: float = 75.0
) -> np.ndarray:
    """Edge-preserving bilateral smoothing over a circular neighbourhood."""
    arr = _check(image)
    diameter = max(int(diameter), 1)
    radius = max(diameter // 2, 1)
    if sigma_color <= 0:
        sigma_color = 1.0
    if sigma_space <= 0:
        sigma_space = 1.0
    color_coeff = -0.5 / (sigma_color * sigma_color)
    space_coeff = -0.5 / (sigma_space * sigma_space)

    src = arr.astype(np.float64)
    if src.ndim == 2:
        src = src[:, :, None]
    height, width = src.shape[:2]
    padded = np.pad(src, ((radius, radius), (radius, radius), (0, 0)), mode="reflect")
    numerator = np.zeros_like(src)
    denominator = np.zeros((height, width))
    for oy in range(-radius, radius + 1):
        for ox in range(-radius, radius + 1):
            distance = math.hypot(oy, ox)
            if distance > radius:
                continue
            neighbour = padded[radius + oy: radius + oy + height, radius + ox: radius + ox + width]
            diff = np.abs(neighbour - src).sum(axis=2)
            weight = math.exp(distance * distance * space_coeff) * np.exp(diff * diff * color_coeff)
            numerator += neighbour * weight[..., None]
            denominator += weight
    result = _to_uint8(numerator / denominator[..., None])
    return result[..., 0] if arr.ndim == 2 else result


def erode(image, kernel_size: int = 5) -> np.ndarray:
    """Erosion with a square structuring element."""
    arr = _check(image)
    size = _odd(kernel_size)
    return _per_channel(arr, lambda ch: ndimage.grey_erosion(ch, size=(size, size), mode="nearest"))


def dilate(image, kernel_size: int = 5) -> np.ndarray:
    """Dilation with a square structuring element."""
    arr = _check(image)
    size = _odd(kernel_size)
    return _per_channel(arr, lambda ch: ndimage.grey_dilation(ch, size=(size, size), mode="nearest"))


def opening(image, kernel_size: int = 5) -> np.ndarray:
    """Erosion followed by dilation."""
    return dilate(erode(image, kernel_size), kernel_size)


def closing(image, kernel_size: int = 5) -> np.ndarray:
    """Dilation followed by erosion."""
    return erode(dilate(image, kernel_size), kernel_size)


def _equalize_channel(channel: np.ndarray) -> np.ndarray:
    if channel.dtype != np.uint8:
        raise ValueError("histogram equalization needs an 8-bit image")
    hist = np.bincount(channel.ravel(), minlength=256)
    total = channel.size
    first = int(np.flatnonzero(hist)[0])
    if hist[first] == total:
        return np.full(channel.shape, first, dtype=np.uint8)
    scale = 255.0 / (total - hist[first])
    cumulative = np.cumsum(hist)
    lut = _to_uint8((cumulative - cumulative[first]) * scale)
    lut[: first + 1] = 0
    return lut[channel]


def equalize_histogram(image) -> np.ndarray:
    """Equalize grey images directly, colour images on their luma channel."""
    arr = _check(image)
    if arr.ndim == 2:
        return _equalize_channel(arr)
    data = arr.astype(np.float64)
    b, g, r = data[..., 0], data[..., 1], data[..., 2]
    y = _to_uint8(0.299 * r + 0.587 * g + 0.114 * b)
    yf = y.astype(np.float64)
    cr = _to_uint8((r - yf) * 0.713 + 128.0).astype(np.float64) - 128.0
    cb = _to_uint8((b - yf) * 0.564 + 128.0).astype(np.float64) - 128.0
    ye = _equalize_channel(y).astype(np.float64)
    return np.stack(
        [
            _to_uint8(ye + 1.773 * cb),
            _to_uint8(ye - 0.714 * cr - 0.344 * cb),
            _to_uint8(ye + 1.403 * cr),
        ],
        axis=-1,
    )


def emboss(image) -> np.ndarray:
    """Relief filter, shifted by 128 so flat regions come out mid-grey."""
    arr = _check(image)

    def relief(channel: np.ndarray) -> np.ndarray:
        filtered = ndimage.correlate(channel.astype(np.float64), _EMBOSS_KERNEL, mode="mirror")
        shifted = _to_uint8(filtered).astype(np.int16) + 128
        return np.clip(shifted, 0, 255).astype(np.uint8)

    return _per_channel(arr, relief)