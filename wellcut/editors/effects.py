"""Effect chain: fades, noise suppression, equalization and normalization.

Every stage takes a Waveform and returns a new one; the input is never
modified.
"""

import logging
import math

import numpy as np

from wellcut.analyzers.stats import db_to_amplitude
from wellcut.errors import InputError
from wellcut.graph import RenderContext
from wellcut.manifest import default_equalizer_bands
from wellcut.models import EqualizerBand, Waveform

logger = logging.getLogger(__name__)

NOISE_PROFILE_SECONDS = 0.5

__all__ = [
    "check_buffer",
    "default_equalizer_bands",
    "equalize",
    "fade_in",
    "fade_out",
    "normalize",
    "peaking_sos",
    "reduce_noise",
]


def check_buffer(waveform: Waveform, stage: str) -> None:
    """Raise InputError for a zero-length or non-finite buffer."""
    if waveform.length == 0:
        raise InputError("Buffer is empty", stage=stage)
    if not np.all(np.isfinite(waveform.samples)):
        raise InputError("Buffer contains non-finite samples", stage=stage)


def _fade_frames(waveform: Waveform, seconds: float) -> int:
    # Fade windows never extend past the midpoint.
    return int(round(min(seconds, waveform.duration / 2) * waveform.sample_rate))


def fade_in(waveform: Waveform, seconds: float) -> Waveform:
    """Linear 0 -> 1 ramp over the first ``seconds`` of every channel."""
    check_buffer(waveform, "fade_in")
    out = waveform.samples.copy()
    n = _fade_frames(waveform, seconds)
    if n > 0:
        out[:, :n] *= np.arange(n, dtype=np.float32) / n
    return waveform.with_samples(out)


def fade_out(waveform: Waveform, seconds: float) -> Waveform:
    """Linear 1 -> 0 ramp over the last ``seconds`` of every channel."""
    check_buffer(waveform, "fade_out")
    out = waveform.samples.copy()
    n = _fade_frames(waveform, seconds)
    if n > 0:
        out[:, -n:] *= np.arange(n - 1, -1, -1, dtype=np.float32) / n
    return waveform.with_samples(out)


def reduce_noise(waveform: Waveform, amount: float) -> Waveform:
    """Soft noise suppression against a floor estimated from the first 0.5 s.

    Samples under ``floor * (1 + 5 * amount)`` are scaled by ``1 - amount``,
    everything else by ``1 - amount / 2``. Nothing is hard-gated.
    """
    check_buffer(waveform, "noise_reduction")
    if not 0.0 <= amount <= 1.0:
        raise InputError(f"Noise reduction amount must be in [0, 1], got {amount}",
                         stage="noise_reduction")

    profile_frames = min(waveform.length, int(NOISE_PROFILE_SECONDS * waveform.sample_rate))
    profile_frames = max(profile_frames, 1)
    noise_floor = float(np.mean(np.abs(waveform.samples[:, :profile_frames])))
    threshold = noise_floor * (1 + amount * 5)
    logger.debug("Noise floor %.6f, threshold %.6f (amount %.2f)", noise_floor, threshold, amount)

    quiet = np.abs(waveform.samples) < threshold
    gain = np.where(quiet, 1.0 - amount, 1.0 - amount * 0.5).astype(np.float32)
    return waveform.with_samples(waveform.samples * gain)


def peaking_sos(band: EqualizerBand, sample_rate: int) -> np.ndarray:
    """RBJ cookbook peaking biquad for one band, as a single SOS row."""
    f0 = float(max(10.0, min(0.49 * sample_rate, band.frequency)))
    q = float(max(0.1, band.q))
    a_gain = 10.0 ** (band.gain / 40.0)
    w0 = 2.0 * math.pi * f0 / sample_rate
    alpha = math.sin(w0) / (2.0 * q)
    cos_w0 = math.cos(w0)

    b0 = 1.0 + alpha * a_gain
    b1 = -2.0 * cos_w0
    b2 = 1.0 - alpha * a_gain
    a0 = 1.0 + alpha / a_gain
    a1 = -2.0 * cos_w0
    a2 = 1.0 - alpha / a_gain

    return np.array([b0 / a0, b1 / a0, b2 / a0, 1.0, a1 / a0, a2 / a0])


async def equalize(
    waveform: Waveform,
    bands: list[EqualizerBand],
    context: RenderContext | None = None,
) -> Waveform:
    """Render the band cascade, in list order, through an offline context."""
    check_buffer(waveform, "equalizer")
    context = context or RenderContext.for_waveform(waveform)
    if not bands:
        return waveform.copy()
    sos = np.vstack([peaking_sos(b, waveform.sample_rate) for b in bands])
    return await context.render_filters(waveform, sos)


def normalize(waveform: Waveform, target_db: float = -3.0) -> Waveform:
    """Scale so the global peak sits at ``target_db``, then clip to [-1, 1]."""
    check_buffer(waveform, "normalize")
    peak = float(np.max(np.abs(waveform.samples)))
    if peak == 0.0:
        logger.warning("Buffer is silent; skipping normalization")
        return waveform.copy()

    gain_db = target_db - 20.0 * math.log10(peak)
    gain = db_to_amplitude(gain_db)
    logger.debug("Normalizing peak %.4f to %.1f dB (gain %.2f dB)", peak, target_db, gain_db)
    out = np.clip(waveform.samples.astype(np.float64) * gain, -1.0, 1.0)
    return waveform.with_samples(out.astype(np.float32))
