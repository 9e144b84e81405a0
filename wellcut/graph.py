"""Offline rendering context for filter graphs.

A RenderContext is created per render call (or passed in by the caller) and
owns nothing global. Rendering a filter graph is the only suspending step of
the pipeline: the cascade runs in a worker thread and callers await the
finished buffer.
"""

import asyncio
import logging
import math

import numpy as np
from scipy import signal

from wellcut.errors import ProcessingError
from wellcut.models import Waveform

logger = logging.getLogger(__name__)


class RenderContext:
    """Per-call offline audio context: buffer factory plus filter-graph renderer."""

    def __init__(self, channels: int, sample_rate: int):
        self.channels = channels
        self.sample_rate = sample_rate
        self.renders = 0

    @classmethod
    def for_waveform(cls, waveform: Waveform) -> "RenderContext":
        return cls(waveform.channels, waveform.sample_rate)

    def create_buffer(self, frames: int) -> Waveform:
        return Waveform.silent(self.channels, frames, self.sample_rate)

    def frames_for(self, seconds: float) -> int:
        return int(math.ceil(seconds * self.sample_rate))

    async def render_filters(self, waveform: Waveform, sos: np.ndarray) -> Waveform:
        """Run ``waveform`` through a cascade of second-order sections.

        Each channel is filtered independently from a zero initial state, so
        the result is deterministic for the same input.
        """
        if waveform.sample_rate != self.sample_rate:
            raise ProcessingError(
                f"Context runs at {self.sample_rate} Hz but buffer is {waveform.sample_rate} Hz",
                stage="equalizing",
            )
        if len(sos) == 0:
            return waveform.copy()

        self.renders += 1
        logger.debug("Rendering %d filter sections over %r", len(sos), waveform)
        try:
            rendered = await asyncio.to_thread(
                signal.sosfilt, sos, waveform.samples.astype(np.float64), axis=-1
            )
        except ValueError as err:
            raise ProcessingError(f"Filter graph render failed: {err}", stage="equalizing") from err
        return waveform.with_samples(rendered.astype(np.float32))
