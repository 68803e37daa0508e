"""Resampling draw step with the exposure/contrast/saturation pre-pass."""
from __future__ import annotations

import logging
import math
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from .adjustments import apply_prefilters, clamp_to_uint8
from .errors import NoSourceImage, RenderTargetError
from .io_utils import SourceBitmap
from .parameters import ParameterSet
from .profiles import ProcessingProfile

LOGGER = logging.getLogger("portrait_enhancer")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def target_size(width: int, height: int, boost: float) -> Tuple[int, int]:
    """Scaled output dimensions, each floored at one pixel."""
    return (
        max(1, _round_half_up(width * boost)),
        max(1, _round_half_up(height * boost)),
    )


def resample(
    bitmap: Optional[SourceBitmap],
    params: ParameterSet,
    *,
    profile: ProcessingProfile | None = None,
) -> np.ndarray:
    """Draw *bitmap* at ``resolution_boost`` scale into a fresh RGBA buffer.

    The bitmap is converted to RGB and each band is resized with Lanczos
    interpolation in 32-bit float mode. The multiplicative brightness, contrast
    and saturation filters run on those unrounded samples, so the buffer is
    quantised once at the end. Alpha is always 255.

    Raises:
        NoSourceImage: If no bitmap is loaded.
        RenderTargetError: If the working buffer cannot be produced.
    """
    image = bitmap.image if bitmap is not None else None
    if image is None:
        raise NoSourceImage()

    width, height = target_size(image.width, image.height, params.resolution_boost)
    if profile is not None:
        profile.check_pixel_budget(width, height)

    try:
        rgb = image if image.mode == "RGB" else image.convert("RGB")
        if rgb.size != (width, height):
            LOGGER.debug("Resampling %sx%s to %sx%s", rgb.width, rgb.height, width, height)
            bands = [
                band.convert("F").resize((width, height), Image.Resampling.LANCZOS)
                for band in rgb.split()
            ]
            pixels = np.dstack([np.asarray(band, dtype=np.float64) for band in bands])
        else:
            pixels = np.asarray(rgb, dtype=np.float64)
        drawn = apply_prefilters(pixels, params)
        buffer = np.empty((height, width, 4), dtype=np.uint8)
        buffer[..., :3] = clamp_to_uint8(drawn)
        buffer[..., 3] = 255
    except (OSError, ValueError, MemoryError) as exc:
        raise RenderTargetError(f"Could not prepare the enhancement canvas: {exc}") from exc
    return buffer


__all__ = ["resample", "target_size"]
