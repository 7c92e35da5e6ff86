"""Named vision effects applied to the slice being viewed."""

from __future__ import annotations

from enum import Enum
from typing import Callable

import numpy as np

from mriviz import imageops
from mriviz.volume import Volumetrics


class Effect(str, Enum):
    """The effects offered in the viewer, in menu order."""

    NONE = "Ninguno"
    THRESHOLD = "Threshold"
    CONTRAST_STRETCH = "ContrastStretch"
    UMBRAL_BINARY = "UmbralBinary"
    BITWISE_AND = "BitwiseAND"
    BITWISE_OR = "BitwiseOR"
    BITWISE_XOR = "BitwiseXOR"
    CANNY = "Canny"
    BRIGHTNESS = "Brightness"
    MEAN_FILTER = "MeanFilter"
    GAUSSIAN_FILTER = "GaussianFilter"
    MEDIAN_FILTER = "MedianFilter"
    BILATERAL_FILTER = "BilateralFilter"
    EROSION = "Erosion"
    DILATION = "Dilation"
    OPENING = "Opening"
    CLOSING = "Closing"
    HISTOGRAM_EQUALIZATION = "HistogramEqualization"
    EMBOSS = "Emboss"


def _source(volumetrics: Volumetrics, image: np.ndarray | None) -> np.ndarray:
    if image is not None:
        return np.asarray(image)
    if volumetrics.slice is None:
        raise ValueError("no image to process")
    return volumetrics.slice


def _mask(volumetrics: Volumetrics) -> np.ndarray:
    if volumetrics.mask_slice is None:
        raise ValueError("mask slice has not been extracted")
    return volumetrics.mask_slice


def _simple(func: Callable[..., np.ndarray], *args) -> Callable:
    return lambda vol, img: func(_source(vol, img), *args)


def _bitwise(operation: str) -> Callable:
    return lambda vol, img: imageops.bitwise(_source(vol, img), _mask(vol), operation)


_HANDLERS: dict[Effect, Callable[[Volumetrics, np.ndarray | None], np.ndarray]] = {
    Effect.THRESHOLD: _simple(imageops.threshold, 55.0),
    Effect.CONTRAST_STRETCH: _simple(imageops.contrast_stretch),
    Effect.UMBRAL_BINARY: lambda vol, img: imageops.umbral_binary(_mask(vol)),
    Effect.BITWISE_AND: _bitwise("AND"),
    Effect.BITWISE_OR: _bitwise("OR"),
    Effect.BITWISE_XOR: _bitwise("XOR"),
    Effect.CANNY: _simple(imageops.canny),
    Effect.BRIGHTNESS: _simple(imageops.adjust_brightness, 50),
    Effect.MEAN_FILTER: _simple(imageops.mean_filter, 5),
    Effect.GAUSSIAN_FILTER: _simple(imageops.gaussian_filter, 5, 1.0),
    Effect.MEDIAN_FILTER: _simple(imageops.median_filter, 5),
    Effect.BILATERAL_FILTER: _simple(imageops.bilateral_filter, 9, 75.0, 75.0),
    Effect.EROSION: _simple(imageops.erode, 3),
    Effect.DILATION: _simple(imageops.dilate, 3),
    Effect.OPENING: _simple(imageops.opening, 3),
    Effect.CLOSING: _simple(imageops.closing, 3),
    Effect.HISTOGRAM_EQUALIZATION: _simple(imageops.equalize_histogram),
    Effect.EMBOSS: _simple(imageops.emboss),
}


def apply_effect(
    volumetrics: Volumetrics, image: np.ndarray | None, effect_name: str | Effect
) -> np.ndarray | None:
    """Apply the effect named ``effect_name`` to ``image``.

    ``image`` defaults to the current slice of ``volumetrics``. Unknown names
    and :attr:`Effect.NONE` return ``image`` unchanged.
    """
    try:
        effect = Effect(effect_name)
    except ValueError:
        return image
    handler = _HANDLERS.get(effect)
    if handler is None:
        return image
    return handler(volumetrics, image)