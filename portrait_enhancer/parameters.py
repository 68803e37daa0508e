"""Enhancement parameters and their documented domains."""
from __future__ import annotations

import dataclasses
import math
from typing import Any, Mapping


@dataclasses.dataclass(frozen=True)
class ParameterSet:
    """Immutable snapshot of the nine enhancement knobs for one pipeline run.

    ``exposure``, ``contrast`` and ``saturation`` are multiplicative pre-filters
    applied while resampling. ``temperature`` is a signed warm/cool shift in
    ``[-100, 100]``. The remaining strengths are non-negative fractions and
    ``resolution_boost`` scales the output relative to the source.
    """

    exposure: float = 1.0
    contrast: float = 1.0
    saturation: float = 1.0
    temperature: float = 0.0
    shadow_lift: float = 0.0
    highlight_recover: float = 0.0
    clarity: float = 0.0
    smoothness: float = 0.0
    resolution_boost: float = 1.0

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        def ensure_positive(name: str, value: float) -> None:
            if not (value > 0 and math.isfinite(value)):
                raise ValueError(f"{name} must be a finite value greater than 0, got {value}")

        def ensure_range(name: str, value: float, minimum: float, maximum: float) -> None:
            if not (minimum <= value <= maximum):
                raise ValueError(f"{name} must be between {minimum} and {maximum}, got {value}")

        ensure_positive("exposure", self.exposure)
        ensure_positive("contrast", self.contrast)
        ensure_positive("saturation", self.saturation)
        ensure_range("temperature", self.temperature, -100.0, 100.0)
        ensure_range("shadow_lift", self.shadow_lift, 0.0, 1.0)
        ensure_range("highlight_recover", self.highlight_recover, 0.0, 1.0)
        ensure_range("clarity", self.clarity, 0.0, 1.0)
        ensure_range("smoothness", self.smoothness, 0.0, 1.0)
        ensure_positive("resolution_boost", self.resolution_boost)

    @property
    def requires_blur(self) -> bool:
        """Whether clarity or smoothness need the blurred reference buffer."""
        return self.clarity != 0 or self.smoothness != 0

    def replace(self, **changes: float) -> "ParameterSet":
        """Return a validated copy with *changes* applied."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_mapping(
        cls, values: Mapping[str, Any], *, base: "ParameterSet | None" = None
    ) -> "ParameterSet":
        """Build a parameter set from a mapping, starting from *base*.

        Keys may use hyphens or underscores. Unknown keys raise ``ValueError``.
        """
        known = {field.name for field in dataclasses.fields(cls)}
        changes: dict[str, float] = {}
        for key, value in values.items():
            name = str(key).replace("-", "_")
            if name not in known:
                raise ValueError(f"Unknown enhancement parameter '{key}'")
            changes[name] = float(value)
        start = base if base is not None else DEFAULT_PARAMETERS
        return dataclasses.replace(start, **changes)


DEFAULT_PARAMETERS = ParameterSet(
    exposure=1.08,
    contrast=1.12,
    saturation=1.18,
    temperature=10.0,
    shadow_lift=0.2,
    highlight_recover=0.16,
    clarity=0.22,
    smoothness=0.08,
    resolution_boost=1.3,
)

IDENTITY_PARAMETERS = ParameterSet()


__all__ = [
    "DEFAULT_PARAMETERS",
    "IDENTITY_PARAMETERS",
    "ParameterSet",
]
