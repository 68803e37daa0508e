"""Enhancement orchestration shared between the CLI and the scheduler."""
from __future__ import annotations

import dataclasses
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image

from .adjustments import apply_detail, apply_tone, box_blur_rows, clamp_to_uint8
from .errors import ResourceUnavailable
from .io_utils import ProcessingContext, SourceBitmap, encode_jpeg
from .parameters import ParameterSet
from .profiles import DEFAULT_PROFILE_NAME, PROCESSING_PROFILES, ProcessingProfile
from .resample import resample

LOGGER = logging.getLogger("portrait_enhancer")


def _ensure_profile(profile: ProcessingProfile | None) -> ProcessingProfile:
    if profile is None:
        return PROCESSING_PROFILES[DEFAULT_PROFILE_NAME]
    return profile


@dataclasses.dataclass(frozen=True)
class EnhancementRun:
    """One pipeline invocation for a fixed bitmap and parameter snapshot."""

    source: Optional[SourceBitmap]
    params: ParameterSet
    generation: int = 0


def row_ranges(height: int, shards: int) -> List[Tuple[int, int]]:
    """Split ``[0, height)`` into at most *shards* contiguous row ranges."""
    shards = max(1, min(shards, height))
    step = int(math.ceil(height / float(shards)))
    return [(start, min(start + step, height)) for start in range(0, height, step)]


def _enhance_rows(
    reference: np.ndarray,
    working: np.ndarray,
    start: int,
    stop: int,
    params: ParameterSet,
) -> None:
    """Tone-map and detail-mix rows ``[start, stop)`` into *working*.

    *reference* holds the resampled pixels before any per-pixel mutation; both
    the tone input and the blur are read from it.
    """
    toned = apply_tone(reference[start:stop, :, :3], params)
    if params.requires_blur:
        blurred = box_blur_rows(reference, start, stop)[..., :3]
        toned = apply_detail(toned, blurred, params.clarity, params.smoothness)
    working[start:stop, :, :3] = clamp_to_uint8(toned)


class EnhancementPipeline:
    """Resample, tone-map and detail-mix a bitmap into a finished buffer.

    Runs are independent: each one allocates its own working buffer and hands
    it to the caller on success. Row shards share no mutable state, so
    ``profile.workers > 1`` yields identical output to a single worker.
    """

    def __init__(self, profile: ProcessingProfile | None = None) -> None:
        self.profile = _ensure_profile(profile)

    def run(
        self, source: Optional[SourceBitmap], params: ParameterSet, *, generation: int = 0
    ) -> np.ndarray:
        """Enhance *source* with *params* and return an RGBA ``uint8`` buffer.

        Raises:
            NoSourceImage: If *source* is missing or released.
            ResourceUnavailable: If a working buffer cannot be prepared.
        """
        return self.execute(EnhancementRun(source=source, params=params, generation=generation))

    def execute(self, run: EnhancementRun) -> np.ndarray:
        working = resample(run.source, run.params, profile=self.profile)
        height, width = working.shape[:2]
        LOGGER.info(
            "Enhancement run %s: %sx%s using '%s' profile", run.generation, width, height, self.profile.name
        )
        try:
            reference = working.copy() if run.params.requires_blur else working
            self._process(reference, working, run.params)
        except MemoryError as exc:
            raise ResourceUnavailable(f"Not enough memory to enhance a {width}x{height} photo.") from exc
        LOGGER.debug("Enhancement run %s finished", run.generation)
        return working

    def _process(self, reference: np.ndarray, working: np.ndarray, params: ParameterSet) -> None:
        ranges = row_ranges(working.shape[0], self.profile.workers)
        if len(ranges) == 1:
            _enhance_rows(reference, working, 0, working.shape[0], params)
            return
        with ThreadPoolExecutor(
            max_workers=len(ranges), thread_name_prefix="portrait-enhancer-rows"
        ) as executor:
            futures = [
                executor.submit(_enhance_rows, reference, working, start, stop, params)
                for start, stop in ranges
            ]
            for future in futures:
                future.result()

    def preview(self, buffer: np.ndarray) -> np.ndarray:
        """Return a display-sized copy of *buffer* within the profile's long edge."""
        height, width = buffer.shape[:2]
        size = preview_size(width, height, self.profile.preview_long_edge)
        if size == (width, height):
            return buffer
        LOGGER.debug("Resizing preview from %sx%s to %sx%s", width, height, *size)
        rgb = Image.fromarray(np.ascontiguousarray(buffer[..., :3], dtype=np.uint8))
        resized = rgb.resize(size, Image.Resampling.BILINEAR)
        preview = np.empty((size[1], size[0], 4), dtype=np.uint8)
        preview[..., :3] = np.asarray(resized)
        preview[..., 3] = 255
        return preview

    def encode(self, buffer: np.ndarray, quality: float | None = None) -> bytes:
        """Serialise *buffer* to JPEG at *quality* or the profile default."""
        return encode_jpeg(buffer, self.profile.resolve_quality(quality))


def preview_size(width: int, height: int, long_edge: int) -> Tuple[int, int]:
    """Fit ``(width, height)`` within *long_edge*, keeping the aspect ratio."""
    longest = max(width, height)
    if longest <= long_edge:
        return width, height
    scale = long_edge / float(longest)
    return max(1, int(round(width * scale))), max(1, int(round(height * scale)))


def enhance_file(
    source: Path,
    destination: Path,
    params: ParameterSet,
    *,
    profile: ProcessingProfile | None = None,
    quality: float | None = None,
    dry_run: bool = False,
) -> bool:
    """Enhance one photo on disk and write the JPEG export atomically.

    Returns ``True`` when an output file was written.
    """
    if destination.exists() and not destination.is_file():
        raise ValueError(f"Destination path exists but is not a file: {destination}")

    pipeline = EnhancementPipeline(profile)
    LOGGER.info("Enhancing %s -> %s", source, destination)
    with SourceBitmap.open(source) as bitmap:
        enhanced = pipeline.run(bitmap, params)
    payload = pipeline.encode(enhanced, quality)
    if dry_run:
        LOGGER.info("Dry run enabled, skipping save for %s", destination)
        return False
    with ProcessingContext(destination) as staged_path:
        staged_path.write_bytes(payload)
    return True


__all__ = [
    "EnhancementPipeline",
    "EnhancementRun",
    "enhance_file",
    "preview_size",
    "row_ranges",
]
