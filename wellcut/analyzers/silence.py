"""Silence detection analyzer."""

import logging

import numpy as np

from wellcut.analyzers.stats import db_to_amplitude
from wellcut.models import Segment, TimeRange

logger = logging.getLogger(__name__)

# Consecutive confirming windows required before a state change.
HYSTERESIS_WINDOWS = 2


def _window_rms(samples: np.ndarray, window_size: int) -> np.ndarray:
    """RMS of each consecutive window; the last window may be short."""
    data = np.asarray(samples, dtype=np.float64)
    n_full = len(data) // window_size
    rms = np.sqrt(np.mean(data[: n_full * window_size].reshape(n_full, window_size) ** 2, axis=1))
    tail = data[n_full * window_size:]
    if tail.size:
        rms = np.append(rms, np.sqrt(np.mean(tail * tail)))
    return rms


def _scan(
    samples: np.ndarray,
    sample_rate: int,
    threshold_db: float,
    min_duration: float,
    window: float,
    want_silence: bool,
) -> list[TimeRange]:
    """Hysteresis state machine shared by silence and speech detection.

    A span opens after HYSTERESIS_WINDOWS consecutive matching windows and is
    backdated to the start of the first of them. It closes after the same
    number of non-matching windows, at the start of the confirming window.
    """
    length = len(samples)
    if length == 0:
        return []

    threshold = db_to_amplitude(threshold_db)
    window_size = max(1, int(round(sample_rate * window)))
    rms = _window_rms(samples, window_size)

    spans: list[TimeRange] = []
    active = False
    span_start = 0.0
    matching = 0
    other = 0

    for w, level in enumerate(rms):
        i = w * window_size
        is_match = (level < threshold) == want_silence
        if is_match:
            matching += 1
            other = 0
            if not active and matching >= HYSTERESIS_WINDOWS:
                span_start = max(0.0, (i - window_size) / sample_rate)
                active = True
        else:
            other += 1
            matching = 0
            if active and other >= HYSTERESIS_WINDOWS:
                span_end = i / sample_rate
                if span_end - span_start >= min_duration:
                    spans.append(TimeRange(start=span_start, end=span_end))
                active = False

    if active:
        span_end = length / sample_rate
        if span_end - span_start >= min_duration:
            spans.append(TimeRange(start=span_start, end=span_end))

    return spans


def detect_silence(
    samples: np.ndarray,
    sample_rate: int,
    threshold_db: float = -50.0,
    min_duration: float = 0.5,
    window: float = 0.05,
) -> list[TimeRange]:
    """Return silent intervals of a single-channel buffer, in ascending order.

    ``window`` is the analysis window in seconds; 0.05 for boundary detection,
    0.1 gives a coarser overview.
    """
    silences = _scan(samples, sample_rate, threshold_db, min_duration, window, want_silence=True)
    logger.debug(
        "Detected %d silent intervals (threshold %.1f dB, min %.2fs)",
        len(silences), threshold_db, min_duration,
    )
    return silences


def detect_speech(
    samples: np.ndarray,
    sample_rate: int,
    threshold_db: float = -50.0,
    min_duration: float = 0.5,
    window: float = 0.05,
) -> list[TimeRange]:
    """Return non-silent intervals directly, using the inverted state machine."""
    return _scan(samples, sample_rate, threshold_db, min_duration, window, want_silence=False)


def complement_intervals(intervals: list[TimeRange], duration: float) -> list[TimeRange]:
    """Return the gaps between sorted intervals within [0, duration)."""
    gaps: list[TimeRange] = []
    cursor = 0.0
    for iv in intervals:
        if iv.start > cursor:
            gaps.append(TimeRange(start=cursor, end=min(iv.start, duration)))
        cursor = max(cursor, iv.end)
    if cursor < duration:
        gaps.append(TimeRange(start=cursor, end=duration))
    return gaps


def content_intervals(
    silences: list[TimeRange], duration: float, min_duration: float = 1.0, padding: float = 0.0
) -> list[TimeRange]:
    """Return the keep spans around ``silences``, dropping any shorter than ``min_duration``.

    ``padding`` widens each keep span into the neighbouring silence.
    """
    return [
        TimeRange(start=s.start, end=s.end)
        for s in label_segments(silences, duration, padding)
        if s.label == "keep" and s.end > s.start and s.end - s.start >= min_duration
    ]


def label_segments(
    silences: list[TimeRange], duration: float, padding: float = 0.0
) -> list[Segment]:
    """Return segments covering the full duration, each labeled "keep" or "silence".

    Padding is subtracted from silence boundaries (added to keep regions).
    """
    # No silence detected; the entire buffer is one keep segment
    if not silences:
        return [Segment(start=0.0, end=duration, label="keep")]

    segments: list[Segment] = []
    cursor = 0.0

    for sr in silences:
        silence_start = max(sr.start + padding, 0.0)
        silence_end = min(sr.end - padding, duration)

        if silence_start < cursor:
            silence_start = cursor
        if silence_end <= silence_start:
            continue

        if silence_start > cursor:
            segments.append(Segment(start=cursor, end=silence_start, label="keep"))

        segments.append(Segment(start=silence_start, end=silence_end, label="silence"))
        cursor = silence_end

    if cursor < duration:
        segments.append(Segment(start=cursor, end=duration, label="keep"))

    if not segments:
        return [Segment(start=0.0, end=duration, label="keep")]

    return segments
