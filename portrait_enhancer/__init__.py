"""Single-photo enhancement toolkit with an interactive recompute scheduler.

The package re-renders one photo through a fixed chain of 8-bit RGB
adjustments: a resampling draw with exposure, contrast and saturation
filters, luminance-driven shadow lift and highlight recovery, a warm/cool
temperature shift, and clarity/smoothness blends against a 3x3 box blur.

Module Organization
-------------------

parameters
    The immutable :class:`ParameterSet` and its default and identity values.

adjustments
    Pixel math: pre-filters, box blur, tone mapping and detail mixing.

resample
    The draw step that scales the source and bakes in the pre-filters.

pipeline
    :class:`EnhancementPipeline`, row-sharded execution, preview and export.

scheduler
    :class:`RecomputeScheduler`, the debounced at-most-one-run state machine.

io_utils
    Bitmap ownership, JPEG encoding and atomic file output.

profiles
    Execution profiles (worker count, pixel budget, preview size, quality).

cli
    Command-line interface for enhancing a photo on disk.

Example Usage
-------------

    from portrait_enhancer import DEFAULT_PARAMETERS, EnhancementPipeline, SourceBitmap

    pipeline = EnhancementPipeline()
    with SourceBitmap.open(Path("portrait.jpg")) as bitmap:
        enhanced = pipeline.run(bitmap, DEFAULT_PARAMETERS.replace(clarity=0.3))
    Path("portrait-enhanced.jpg").write_bytes(pipeline.encode(enhanced))
"""
from __future__ import annotations

import logging

from .adjustments import (
    apply_detail,
    apply_prefilters,
    apply_tone,
    box_blur,
    clamp_to_uint8,
    luminance,
)
from .cli import build_parameters, main, parse_args, run_enhancement
from .errors import (
    EncodingFailure,
    EnhancementError,
    NoSourceImage,
    RenderTargetError,
    ResourceUnavailable,
)
from .io_utils import ProcessingContext, SourceBitmap, default_output_path, encode_jpeg
from .parameters import DEFAULT_PARAMETERS, IDENTITY_PARAMETERS, ParameterSet
from .pipeline import EnhancementPipeline, EnhancementRun, enhance_file
from .profiles import DEFAULT_PROFILE_NAME, PROCESSING_PROFILES, ProcessingProfile
from .resample import resample, target_size
from .scheduler import RecomputeScheduler, SchedulerState

LOGGER = logging.getLogger("portrait_enhancer")

__all__ = [
    "DEFAULT_PARAMETERS",
    "DEFAULT_PROFILE_NAME",
    "EncodingFailure",
    "EnhancementError",
    "EnhancementPipeline",
    "EnhancementRun",
    "IDENTITY_PARAMETERS",
    "NoSourceImage",
    "PROCESSING_PROFILES",
    "ParameterSet",
    "ProcessingContext",
    "ProcessingProfile",
    "RecomputeScheduler",
    "RenderTargetError",
    "ResourceUnavailable",
    "SchedulerState",
    "SourceBitmap",
    "apply_detail",
    "apply_prefilters",
    "apply_tone",
    "box_blur",
    "build_parameters",
    "clamp_to_uint8",
    "default_output_path",
    "encode_jpeg",
    "enhance_file",
    "luminance",
    "main",
    "parse_args",
    "resample",
    "run_enhancement",
    "target_size",
]
