"""Shared data types used across WellCut."""

import math
from dataclasses import asdict, dataclass, field
from typing import Sequence

import numpy as np

from wellcut.errors import InputError


@dataclass(frozen=True)
class TimeRange:
    """A start/end time pair in seconds."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    def validate(self, duration: float | None = None) -> "TimeRange":
        """Raise InputError unless end > start and the range lies in [0, duration]."""
        if not (math.isfinite(self.start) and math.isfinite(self.end)):
            raise InputError(f"Range bounds must be finite, got {self}", time_range=self)
        if self.end <= self.start:
            raise InputError(
                f"Range end ({self.end:.3f}s) must be after start ({self.start:.3f}s)",
                time_range=self,
            )
        if self.start < 0:
            raise InputError(f"Range start {self.start:.3f}s is negative", time_range=self)
        if duration is not None and self.end > duration + 1e-9:
            raise InputError(
                f"Range {self.start:.3f}-{self.end:.3f}s exceeds source duration {duration:.3f}s",
                time_range=self,
            )
        return self


@dataclass
class Segment:
    """A labeled time segment ("keep" or "silence")."""

    start: float
    end: float
    label: str


@dataclass(frozen=True)
class EqualizerBand:
    """One peaking filter in the equalizer cascade."""

    frequency: float
    gain: float = 0.0
    q: float = 1.4


@dataclass(frozen=True)
class BufferStats:
    max: float
    min: float
    mean: float
    rms: float
    db_fs: float
    crest: float


@dataclass(frozen=True)
class ClipStat:
    """Loudness summary for one processed range, measured on the source."""

    start_time: float
    end_time: float
    duration: float
    peak_db: float
    avg_db: float


@dataclass(frozen=True)
class ProcessingReport:
    """Aggregate result of a batch run."""

    total_clips: int
    total_duration: float
    processed_duration: float
    processing_time_ms: float
    clips: tuple[ClipStat, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["clips"] = [asdict(c) for c in self.clips]
        return data

    def to_rows(self) -> list[dict]:
        """One flat row per clip, numbered from 1, for tabular display."""
        return [{"clip": i, **asdict(c)} for i, c in enumerate(self.clips, 1)]


@dataclass
class ProbeResult:
    """Audio stream metadata extracted via ffprobe."""

    duration: float
    sample_rate: int
    channels: int
    codec: str


class Waveform:
    """A multichannel float32 sample buffer at a fixed sample rate.

    Samples are stored as a ``(channels, frames)`` array, so every channel has
    the same length. Values are nominally in [-1, 1] but are only clamped at
    encode time.
    """

    def __init__(self, samples: np.ndarray, sample_rate: int):
        samples = np.asarray(samples, dtype=np.float32)
        if samples.ndim == 1:
            samples = samples[np.newaxis, :]
        if samples.ndim != 2 or samples.shape[0] == 0:
            raise InputError(
                f"Waveform samples must be shaped (channels, frames), got {samples.shape}"
            )
        if int(sample_rate) <= 0:
            raise InputError(f"Sample rate must be positive, got {sample_rate}")
        self.samples = samples
        self.sample_rate = int(sample_rate)

    @classmethod
    def from_channels(cls, channels: Sequence[Sequence[float]], sample_rate: int) -> "Waveform":
        lengths = {len(ch) for ch in channels}
        if len(lengths) > 1:
            raise InputError(f"All channels must have equal length, got {sorted(lengths)}")
        return cls(np.array([np.asarray(ch, dtype=np.float32) for ch in channels]), sample_rate)

    @classmethod
    def silent(cls, channels: int, frames: int, sample_rate: int) -> "Waveform":
        return cls(np.zeros((channels, frames), dtype=np.float32), sample_rate)

    @property
    def channels(self) -> int:
        return self.samples.shape[0]

    @property
    def length(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        return self.length / self.sample_rate

    def channel(self, index: int) -> np.ndarray:
        return self.samples[index]

    def copy(self) -> "Waveform":
        return Waveform(self.samples.copy(), self.sample_rate)

    def with_samples(self, samples: np.ndarray) -> "Waveform":
        """Return a new Waveform at the same sample rate."""
        return Waveform(samples, self.sample_rate)

    def __repr__(self) -> str:
        return (
            f"Waveform(channels={self.channels}, length={self.length}, "
            f"sample_rate={self.sample_rate})"
        )
