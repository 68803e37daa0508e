"""Processing profiles balancing latency, memory and output size.

Profiles only change how a run executes and how its result is delivered. The
pixel math is identical under every profile.

- **quality**: single worker, large preview, 0.94 JPEG export
- **balanced**: row-sharded across four workers, same output settings
- **performance**: four workers, smaller preview, lighter JPEG

Example Usage
-------------

    from portrait_enhancer import PROCESSING_PROFILES

    profile = PROCESSING_PROFILES["balanced"]
    profile.check_pixel_budget(4000, 3000)  # raises ResourceUnavailable if too big
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .errors import ResourceUnavailable

DEFAULT_MAX_PIXELS = 80_000_000


@dataclass(frozen=True)
class ProcessingProfile:
    """Execution settings for an enhancement run.

    Attributes:
        name: Profile identifier.
        workers: Number of row shards processed concurrently (1 runs inline).
        max_pixels: Largest working buffer a run may allocate.
        preview_long_edge: Long edge of the display preview in pixels.
        jpeg_quality: Export quality on a 0-1 scale.
    """

    name: str
    workers: int
    max_pixels: int
    preview_long_edge: int
    jpeg_quality: float

    def check_pixel_budget(self, width: int, height: int) -> None:
        """Reject working buffers larger than ``max_pixels``.

        Raises:
            ResourceUnavailable: If ``width * height`` exceeds the budget.
        """
        if width * height > self.max_pixels:
            raise ResourceUnavailable(
                f"Enhanced size {width}x{height} exceeds the {self.max_pixels} pixel limit "
                f"of the '{self.name}' profile."
            )

    def resolve_quality(self, requested: float | None) -> float:
        """Return *requested* when given, else the profile's export quality."""
        return self.jpeg_quality if requested is None else requested


DEFAULT_PROFILE_NAME = "quality"

PROCESSING_PROFILES: Dict[str, ProcessingProfile] = {
    "quality": ProcessingProfile(
        name="quality",
        workers=1,
        max_pixels=DEFAULT_MAX_PIXELS,
        preview_long_edge=2048,
        jpeg_quality=0.94,
    ),
    "balanced": ProcessingProfile(
        name="balanced",
        workers=4,
        max_pixels=DEFAULT_MAX_PIXELS,
        preview_long_edge=2048,
        jpeg_quality=0.94,
    ),
    "performance": ProcessingProfile(
        name="performance",
        workers=4,
        max_pixels=DEFAULT_MAX_PIXELS,
        preview_long_edge=1280,
        jpeg_quality=0.85,
    ),
}


__all__ = [
    "DEFAULT_MAX_PIXELS",
    "DEFAULT_PROFILE_NAME",
    "PROCESSING_PROFILES",
    "ProcessingProfile",
]
