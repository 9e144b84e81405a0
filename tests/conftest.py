"""Shared test fixtures."""

import struct
from pathlib import Path

import numpy as np
import pytest

from wellcut.models import Waveform

FIXTURES_DIR = Path(__file__).parent / "fixtures"

SAMPLE_RATE = 44100


def make_tone_waveform(
    duration: float = 10.0,
    tone_start: float = 4.0,
    tone_end: float = 6.0,
    amplitude: float = 0.5,
    freq: float = 440.0,
    sample_rate: int = SAMPLE_RATE,
    channels: int = 1,
) -> Waveform:
    """Silence everywhere except a sine tone between tone_start and tone_end."""
    n = int(duration * sample_rate)
    t = np.arange(n) / sample_rate
    data = np.zeros(n, dtype=np.float32)
    mask = (t >= tone_start) & (t < tone_end)
    data[mask] = amplitude * np.sin(2 * np.pi * freq * t[mask])
    return Waveform(np.tile(data, (channels, 1)), sample_rate)


def with_info_chunk(wav: bytes) -> bytes:
    """Insert a LIST/INFO chunk between ``fmt `` and ``data``, as ffmpeg writes by default."""
    text = b"Lavf60.16.100\x00"
    info = b"INFO" + b"ISFT" + struct.pack("<I", len(text)) + text
    chunk = b"LIST" + struct.pack("<I", len(info)) + info
    riff_size = struct.unpack("<I", wav[4:8])[0] + len(chunk)
    return wav[:4] + struct.pack("<I", riff_size) + wav[8:36] + chunk + wav[36:]


@pytest.fixture
def sample_manifest_path() -> Path:
    return FIXTURES_DIR / "sample_manifest.json"


@pytest.fixture
def tone_waveform() -> Waveform:
    return make_tone_waveform()


@pytest.fixture
def stereo_noise() -> Waveform:
    rng = np.random.default_rng(1234)
    return Waveform(rng.uniform(-0.5, 0.5, size=(2, SAMPLE_RATE * 2)), SAMPLE_RATE)
