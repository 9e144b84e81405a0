"""Loudness statistics and peak detection."""

import math

import numpy as np
from scipy import signal

from wellcut.errors import InputError
from wellcut.models import BufferStats, ClipStat, TimeRange, Waveform

# Amplitude floor applied before every log10 so silence never yields -inf/NaN.
DB_FLOOR = 1e-5


def amplitude_to_db(value: float) -> float:
    """Convert a linear amplitude to dBFS, flooring at DB_FLOOR."""
    return 20.0 * math.log10(max(float(value), DB_FLOOR))


def db_to_amplitude(db: float) -> float:
    return 10.0 ** (db / 20.0)


def compute_stats(samples: np.ndarray, start: int = 0, end: int | None = None) -> BufferStats:
    """Return max/min/mean/rms/dBFS/crest for one channel or a sub-range of it.

    Crest is the absolute peak over RMS, ``max(|max|, |min|) / rms``, so a
    buffer whose loudest excursion is negative still reports its true crest.
    It is 0.0 for an all-zero range.
    """
    data = np.asarray(samples, dtype=np.float64)[start:end]
    if data.size == 0:
        raise InputError(f"Cannot compute statistics of an empty range [{start}:{end}]")

    smax = float(data.max())
    smin = float(data.min())
    rms = float(np.sqrt(np.mean(data * data)))
    peak = max(abs(smax), abs(smin))

    return BufferStats(
        max=smax,
        min=smin,
        mean=float(data.mean()),
        rms=rms,
        db_fs=amplitude_to_db(rms),
        crest=peak / rms if rms > 0 else 0.0,
    )


def find_peaks(
    samples: np.ndarray,
    sample_rate: int,
    threshold: float = 0.3,
    min_distance: float = 0.1,
) -> np.ndarray:
    """Return sample indices of local maxima of |x| above ``threshold``.

    ``min_distance`` is in seconds (0.1 s is 4410 samples at 44.1 kHz). Pass
    ``4410 / sample_rate`` to reproduce a fixed sample-count spacing.
    """
    distance = max(1, int(round(min_distance * sample_rate)))
    magnitude = np.abs(np.asarray(samples, dtype=np.float64))
    peaks, _ = signal.find_peaks(magnitude, height=threshold, distance=distance)
    return peaks


def clip_stat(waveform: Waveform, time_range: TimeRange) -> ClipStat:
    """Peak and average level of the raw source range, across all channels."""
    sr = waveform.sample_rate
    first = int(round(time_range.start * sr))
    last = min(waveform.length, int(math.ceil(time_range.end * sr)))
    region = np.abs(waveform.samples[:, first:last].astype(np.float64))

    peak = float(region.max()) if region.size else 0.0
    avg = float(region.mean()) if region.size else 0.0

    return ClipStat(
        start_time=time_range.start,
        end_time=time_range.end,
        duration=time_range.duration,
        peak_db=amplitude_to_db(peak),
        avg_db=amplitude_to_db(avg),
    )
