"""Failure taxonomy for enhancement runs.

Every failure is scoped to a single run. Callers surface ``reason`` and keep
the previous successful result on screen.
"""
from __future__ import annotations


class EnhancementError(RuntimeError):
    """Raised when an enhancement run cannot produce a complete buffer."""

    default_reason = "Unexpected error while enhancing this photo."

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class ResourceUnavailable(EnhancementError):
    """A drawing surface or working buffer could not be acquired."""

    default_reason = "Could not prepare the enhancement canvas."


class NoSourceImage(EnhancementError):
    """A run was attempted before any bitmap was loaded."""

    default_reason = "Load a photo before enhancing."


class EncodingFailure(EnhancementError):
    """The finished buffer could not be serialised to an image file."""

    default_reason = "Could not encode the enhanced photo."


# Resampler-facing name for the drawing failure.
RenderTargetError = ResourceUnavailable


__all__ = [
    "EncodingFailure",
    "EnhancementError",
    "NoSourceImage",
    "RenderTargetError",
    "ResourceUnavailable",
]
