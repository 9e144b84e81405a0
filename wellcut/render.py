"""Render pipeline: extract a time range, run the effect chain, encode."""

import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from wellcut.editors import effects
from wellcut.encoder import EncodedClip, encode
from wellcut.errors import InputError, ProcessingError, WellcutError
from wellcut.graph import RenderContext
from wellcut.manifest import ProcessingOptions
from wellcut.models import TimeRange, Waveform

logger = logging.getLogger(__name__)

DEFAULT_QUALITY = 0.8


class RenderStage(enum.Enum):
    REQUESTED = "requested"
    EXTRACTING = "extracting"
    FADING = "fading"
    NOISE_REDUCING = "noise_reducing"
    EQUALIZING = "equalizing"
    NORMALIZING = "normalizing"
    ENCODING = "encoding"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RenderedClip:
    time_range: TimeRange
    waveform: Waveform
    encoded: EncodedClip
    stages: list[RenderStage] = field(default_factory=list)


def extract_range(
    source: Waveform, time_range: TimeRange, context: RenderContext | None = None
) -> Waveform:
    """Copy only the requested frames: ceil((end - start) * sample_rate) of them.

    Frames past the end of the source are left as silence.
    """
    context = context or RenderContext.for_waveform(source)
    frames = context.frames_for(time_range.duration)
    first = int(round(time_range.start * source.sample_rate))
    out = context.create_buffer(frames)
    available = max(0, min(frames, source.length - first))
    out.samples[:, :available] = source.samples[:, first:first + available]
    return out


def _check_output(waveform: Waveform, stage: RenderStage, time_range: TimeRange) -> None:
    if not np.all(np.isfinite(waveform.samples)):
        raise ProcessingError(
            "Stage produced non-finite samples", stage=stage.value, time_range=time_range
        )


async def render_clip(
    source: Waveform,
    time_range: TimeRange,
    options: ProcessingOptions,
    fmt: str = "wav",
    context: RenderContext | None = None,
    on_stage: Callable[[RenderStage], None] | None = None,
) -> RenderedClip:
    """Render one range of ``source`` through the effect chain and encode it.

    Stages run in a fixed order: fade in, fade out, noise reduction,
    equalization, normalization. Disabled stages are skipped.

    Args:
        source: Decoded source audio; it is only read.
        time_range: Range to render, within [0, source.duration].
        options: Effect settings; None fields skip their stage.
        fmt: Requested output format. Non-WAV formats fall back to WAV.
        context: Offline render context; one is created when omitted.
        on_stage: Optional callback(stage) invoked on every transition.
    """
    stages: list[RenderStage] = []

    def _enter(stage: RenderStage) -> RenderStage:
        stages.append(stage)
        logger.debug("Render %.3f-%.3fs: %s", time_range.start, time_range.end, stage.value)
        if on_stage:
            on_stage(stage)
        return stage

    stage = _enter(RenderStage.REQUESTED)
    try:
        time_range.validate(source.duration)
        options.validate()
        if source.length == 0:
            raise InputError("Source buffer is empty")
        context = context or RenderContext.for_waveform(source)

        stage = _enter(RenderStage.EXTRACTING)
        buf = extract_range(source, time_range, context)
        effects.check_buffer(buf, stage.value)

        if options.fade_in or options.fade_out:
            stage = _enter(RenderStage.FADING)
            if options.fade_in:
                buf = effects.fade_in(buf, options.fade_in)
            if options.fade_out:
                buf = effects.fade_out(buf, options.fade_out)
            _check_output(buf, stage, time_range)

        if options.noise_reduction is not None:
            stage = _enter(RenderStage.NOISE_REDUCING)
            buf = effects.reduce_noise(buf, options.noise_reduction)
            _check_output(buf, stage, time_range)

        if options.equalizer_bands:
            stage = _enter(RenderStage.EQUALIZING)
            buf = await effects.equalize(buf, options.equalizer_bands, context)
            _check_output(buf, stage, time_range)

        if options.normalize:
            stage = _enter(RenderStage.NORMALIZING)
            target = options.normalize_target if options.normalize_target is not None else -3.0
            buf = effects.normalize(buf, target)
            _check_output(buf, stage, time_range)

        stage = _enter(RenderStage.ENCODING)
        quality = options.quality if options.quality is not None else DEFAULT_QUALITY
        encoded = encode(buf, fmt, quality)
    except WellcutError as err:
        _enter(RenderStage.FAILED)
        if err.stage is None:
            err.stage = stage.value
        if err.time_range is None:
            err.time_range = time_range
        raise
    except Exception as err:
        _enter(RenderStage.FAILED)
        raise ProcessingError(
            f"Audio processing failed: {err}", stage=stage.value, time_range=time_range
        ) from err

    _enter(RenderStage.DONE)
    return RenderedClip(time_range=time_range, waveform=buf, encoded=encoded, stages=stages)
