"""Bitmap ownership, JPEG encoding and atomic file output.

Key Components
--------------

SourceBitmap
    Exclusive owner of a decoded Pillow image. ``close`` releases the pixels
    and is safe to call more than once.

ProcessingContext
    Context manager for atomic file writes with staged temporary files.

encode_jpeg
    Serialise a finished RGBA buffer to JPEG bytes.
"""
from __future__ import annotations

import contextlib
import dataclasses
import io
import logging
import os
import uuid
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import EncodingFailure, EnhancementError

LOGGER = logging.getLogger("portrait_enhancer")

DEFAULT_EXPORT_QUALITY = 0.94


@dataclasses.dataclass
class SourceBitmap:
    """Decoded source photo owned by exactly one holder at a time.

    Attributes:
        image: Decoded Pillow image, ``None`` once released.
        name: Display name used to derive the export file name.
    """

    image: Optional[Image.Image]
    name: str = "portrait"

    @classmethod
    def open(cls, path: Path) -> "SourceBitmap":
        """Decode *path* fully into memory.

        Raises:
            EnhancementError: If the file cannot be read as an image.
        """
        try:
            with Image.open(path) as handle:
                handle.load()
                image = handle.copy()
        except (OSError, UnidentifiedImageError) as exc:
            raise EnhancementError(f"Could not load the selected image: {exc}") from exc
        LOGGER.debug("Loaded %s (%sx%s, %s)", path, image.width, image.height, image.mode)
        return cls(image=image, name=Path(path).stem)

    @classmethod
    def from_array(cls, arr: np.ndarray, name: str = "portrait") -> "SourceBitmap":
        """Wrap a ``uint8`` RGB or RGBA array as a bitmap."""
        return cls(image=Image.fromarray(np.ascontiguousarray(arr, dtype=np.uint8)), name=name)

    @property
    def closed(self) -> bool:
        return self.image is None

    @property
    def width(self) -> int:
        return self._require().width

    @property
    def height(self) -> int:
        return self._require().height

    def _require(self) -> Image.Image:
        if self.image is None:
            raise ValueError("Bitmap has been released")
        return self.image

    def close(self) -> None:
        """Release the decoded pixels."""
        image = self.image
        self.image = None
        if image is not None:
            image.close()

    def __enter__(self) -> "SourceBitmap":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False


@dataclasses.dataclass
class ProcessingContext:
    """Context manager for atomic file writes using staged temporary files.

    Writes to a temporary file in the same directory as the destination, then
    atomically moves it to the final location on success. Cleans up temporary
    files on failure.
    """

    destination: Path
    suffix: str = ".tmp"

    def __post_init__(self) -> None:
        self._staged_path: Optional[Path] = None

    def _temp_path(self) -> Path:
        unique = uuid.uuid4().hex
        name = f".{self.destination.name}{self.suffix}-{unique}"
        return self.destination.parent / name

    def __enter__(self) -> Path:
        self.destination.parent.mkdir(parents=True, exist_ok=True)
        self._staged_path = self._temp_path()
        return self._staged_path

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._staged_path is None:
            return False

        staged = self._staged_path
        self._staged_path = None

        if exc_type is None:
            try:
                os.replace(staged, self.destination)
            except Exception:
                with contextlib.suppress(Exception):
                    staged.unlink()
                raise
        else:
            with contextlib.suppress(FileNotFoundError):
                staged.unlink()
        return False


def jpeg_quality_level(quality: float) -> int:
    """Map a ``(0, 1]`` quality to Pillow's integer JPEG scale."""
    if not 0 < quality <= 1:
        raise ValueError(f"quality must be in (0, 1], got {quality}")
    return max(1, min(100, int(round(quality * 100))))


def encode_jpeg(buffer: np.ndarray, quality: float = DEFAULT_EXPORT_QUALITY) -> bytes:
    """Encode an RGBA ``uint8`` buffer as JPEG bytes.

    Raises:
        EncodingFailure: If the buffer cannot be serialised.
    """
    try:
        level = jpeg_quality_level(quality)
        rgb = np.ascontiguousarray(buffer[..., :3], dtype=np.uint8)
        stream = io.BytesIO()
        Image.fromarray(rgb).save(stream, format="JPEG", quality=level)
    except (OSError, ValueError, TypeError, IndexError) as exc:
        raise EncodingFailure(f"Could not encode the enhanced photo: {exc}") from exc
    LOGGER.debug("Encoded %sx%s buffer at quality %s", rgb.shape[1], rgb.shape[0], level)
    return stream.getvalue()


def default_output_path(source: Path) -> Path:
    """Return ``<stem>-enhanced.jpg`` next to *source*."""
    stem = Path(source).stem or "portrait"
    return Path(source).with_name(f"{stem}-enhanced.jpg")


__all__ = [
    "DEFAULT_EXPORT_QUALITY",
    "ProcessingContext",
    "SourceBitmap",
    "default_output_path",
    "encode_jpeg",
    "jpeg_quality_level",
]
