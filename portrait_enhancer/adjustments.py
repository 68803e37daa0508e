"""Pixel math for the enhancement pipeline.

All functions operate on 8-bit gamma-encoded RGB values held in ``float64``
arrays in the ``[0, 255]`` range. Channels are only quantised by
:func:`clamp_to_uint8` when a stage writes a pixel buffer.
"""
from __future__ import annotations

import logging

import numpy as np

from .parameters import ParameterSet

LOGGER = logging.getLogger("portrait_enhancer")

LUMA_WEIGHTS = (0.2126, 0.7152, 0.0722)


def clamp_to_uint8(arr: np.ndarray) -> np.ndarray:
    """Clamp to ``[0, 255]`` and round half to even into ``uint8``."""
    return np.rint(np.clip(arr, 0.0, 255.0)).astype(np.uint8)


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Rec. 709 weighted luminance of the trailing RGB axis."""
    return rgb[..., 0] * LUMA_WEIGHTS[0] + rgb[..., 1] * LUMA_WEIGHTS[1] + rgb[..., 2] * LUMA_WEIGHTS[2]


def apply_brightness(arr: np.ndarray, amount: float) -> np.ndarray:
    """Multiply every channel by *amount* (CSS ``brightness()``)."""
    if amount == 1:
        return arr
    LOGGER.debug("Brightness factor=%s", amount)
    return np.clip(arr * amount, 0.0, 255.0)


def apply_contrast(arr: np.ndarray, amount: float) -> np.ndarray:
    """Scale channel distance from mid-gray by *amount* (CSS ``contrast()``)."""
    if amount == 1:
        return arr
    LOGGER.debug("Contrast factor=%s", amount)
    return np.clip((arr - 127.5) * amount + 127.5, 0.0, 255.0)


def saturation_matrix(amount: float) -> np.ndarray:
    """Return the 3x3 CSS ``saturate()`` colour matrix for *amount*."""
    s = float(amount)
    return np.array(
        [
            [0.213 + 0.787 * s, 0.715 - 0.715 * s, 0.072 - 0.072 * s],
            [0.213 - 0.213 * s, 0.715 + 0.285 * s, 0.072 - 0.072 * s],
            [0.213 - 0.213 * s, 0.715 - 0.715 * s, 0.072 + 0.928 * s],
        ],
        dtype=np.float64,
    )


def apply_saturation(arr: np.ndarray, amount: float) -> np.ndarray:
    """Scale chroma around the luma axis (CSS ``saturate()``)."""
    if amount == 1:
        return arr
    LOGGER.debug("Saturation factor=%s", amount)
    return np.clip(arr @ saturation_matrix(amount).T, 0.0, 255.0)


def apply_prefilters(arr: np.ndarray, params: ParameterSet) -> np.ndarray:
    """Apply the exposure, contrast and saturation draw filters in that order."""
    arr = apply_brightness(arr, params.exposure)
    arr = apply_contrast(arr, params.contrast)
    return apply_saturation(arr, params.saturation)


def box_blur(buffer: np.ndarray) -> np.ndarray:
    """Average every pixel with its in-bounds 3x3 neighbourhood.

    Edge pixels average only the neighbours that exist, so corners use four
    samples and borders six. The returned ``uint8`` RGBA buffer has the same
    size as *buffer* with alpha forced to 255.
    """
    height, width = buffer.shape[:2]
    rgb = buffer[..., :3].astype(np.float64)
    padded = np.pad(rgb, ((1, 1), (1, 1), (0, 0)), mode="constant")
    present = np.pad(np.ones((height, width), dtype=np.float64), 1, mode="constant")

    sums = np.zeros_like(rgb)
    counts = np.zeros((height, width), dtype=np.float64)
    for dy in range(3):
        for dx in range(3):
            sums += padded[dy:dy + height, dx:dx + width]
            counts += present[dy:dy + height, dx:dx + width]

    blurred = np.empty((height, width, 4), dtype=np.uint8)
    blurred[..., :3] = clamp_to_uint8(sums / counts[..., None])
    blurred[..., 3] = 255
    return blurred


def box_blur_rows(buffer: np.ndarray, start: int, stop: int) -> np.ndarray:
    """Blur rows ``[start, stop)`` of *buffer* using a one-row halo."""
    height = buffer.shape[0]
    slab_start = max(0, start - 1)
    slab = buffer[slab_start:min(height, stop + 1)]
    offset = start - slab_start
    return box_blur(slab)[offset:offset + (stop - start)]


def apply_tone(rgb: np.ndarray, params: ParameterSet) -> np.ndarray:
    """Shadow lift, highlight recovery and temperature shift, in that order.

    Luminance is measured once on the incoming values and drives both the lift
    and the recovery ramps.
    """
    out = np.array(rgb, dtype=np.float64, copy=True)
    normalised = luminance(out) / 255.0

    if params.shadow_lift != 0:
        lift = 1.0 + params.shadow_lift * np.maximum(0.0, (0.5 - normalised) * 2.0)
        out *= lift[..., None]

    if params.highlight_recover != 0:
        recover = 1.0 - params.highlight_recover * np.maximum(0.0, (normalised - 0.5) * 2.0)
        out *= recover[..., None]

    if params.temperature != 0:
        shift = params.temperature / 100.0
        red, green, blue = out[..., 0], out[..., 1], out[..., 2]
        if shift > 0:
            red += shift * (255.0 - red) * 0.22
            green += shift * (255.0 - green) * 0.08
            blue *= 1.0 - shift * 0.15
        else:
            cool = -shift
            blue += cool * (255.0 - blue) * 0.25
            green += cool * (255.0 - green) * 0.04
            red *= 1.0 - cool * 0.18
    return out


def apply_detail(
    rgb: np.ndarray, blurred: np.ndarray, clarity: float, smoothness: float
) -> np.ndarray:
    """Blend sharp values against their blurred reference.

    Clarity amplifies the deviation from the local mean, then smoothness pulls
    the result back toward it.
    """
    out = np.asarray(rgb, dtype=np.float64)
    reference = np.asarray(blurred, dtype=np.float64)
    if clarity != 0:
        boost = 1.0 + clarity * 1.6
        out = reference + (out - reference) * boost
    if smoothness != 0:
        factor = smoothness * 0.85
        out = out * (1.0 - factor) + reference * factor
    return out


__all__ = [
    "LUMA_WEIGHTS",
    "apply_brightness",
    "apply_contrast",
    "apply_detail",
    "apply_prefilters",
    "apply_saturation",
    "apply_tone",
    "box_blur",
    "box_blur_rows",
    "clamp_to_uint8",
    "luminance",
    "saturation_matrix",
]
