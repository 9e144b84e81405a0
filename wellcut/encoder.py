"""PCM16 WAV serialization and output-format negotiation.

Only WAV is actually encoded. Requests for lossy or other container formats
are answered with WAV bytes plus a FormatFallback describing the gap, so
callers can tell what they really received.
"""

import io
import logging
import struct
import wave
from dataclasses import dataclass

import numpy as np

from wellcut.errors import CapabilityGap, InputError
from wellcut.models import Waveform

logger = logging.getLogger(__name__)

HEADER_SIZE = 44

MIME_TYPES = {
    "wav": "audio/wav",
    "mp3": "audio/mpeg",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    "m4a": "audio/mp4",
}

# kbps, lowest to highest quality
BITRATE_TABLES = {
    "mp3": (64, 96, 128, 160, 192, 224, 256, 320),
    "ogg": (64, 80, 96, 112, 128, 160, 192, 256, 320),
    "m4a": (64, 96, 128, 160, 192, 256),
}

LOSSLESS_FORMATS = ("wav", "flac")


@dataclass(frozen=True)
class WavHeader:
    sample_rate: int
    channels: int
    bits_per_sample: int
    data_length: int


@dataclass(frozen=True)
class FormatFallback:
    """Signals that the requested format was not produced."""

    requested_format: str
    actual_format: str
    reason: str


@dataclass(frozen=True)
class EncodedClip:
    """Encoded bytes plus the labels describing them."""

    data: bytes
    mime_type: str
    extension: str
    requested_format: str
    bitrate_kbps: int | None = None
    fallback: FormatFallback | None = None


def encode_wav(waveform: Waveform) -> bytes:
    """Serialize to a 44-byte canonical header followed by interleaved PCM16."""
    channels = waveform.channels
    data_length = waveform.length * channels * 2

    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        HEADER_SIZE - 8 + data_length,
        b"WAVE",
        b"fmt ",
        16,                                   # fmt chunk size
        1,                                    # PCM
        channels,
        waveform.sample_rate,
        waveform.sample_rate * channels * 2,  # byte rate
        channels * 2,                         # block align
        16,                                   # bits per sample
        b"data",
        data_length,
    )

    clamped = np.clip(waveform.samples.astype(np.float64), -1.0, 1.0)
    scaled = np.where(clamped < 0, clamped * 0x8000, clamped * 0x7FFF)
    pcm = np.trunc(scaled).astype("<i2")
    # (channels, frames) -> frame-major interleave
    return header + pcm.T.tobytes()


def read_wav_header(data: bytes) -> WavHeader:
    """Parse the canonical 44-byte header written by encode_wav."""
    if len(data) < HEADER_SIZE:
        raise InputError(f"WAV data too short for a header ({len(data)} bytes)")
    (riff, _, wave, fmt, _, audio_format, channels, sample_rate, _, _, bits,
     data_id, data_length) = struct.unpack("<4sI4s4sIHHIIHH4sI", data[:HEADER_SIZE])
    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_id != b"data":
        raise InputError("Not a canonical RIFF/WAVE file")
    if audio_format != 1:
        raise InputError(f"Unsupported WAV encoding (format tag {audio_format}); expected PCM")
    return WavHeader(
        sample_rate=sample_rate,
        channels=channels,
        bits_per_sample=bits,
        data_length=data_length,
    )


def decode_wav(data: bytes) -> Waveform:
    """Decode PCM16 WAV bytes to a float Waveform.

    Unlike read_wav_header this accepts any chunk layout; chunks other than
    ``fmt `` and ``data`` (LIST/INFO and the like) are skipped.
    """
    if len(data) < 12 or data[:4] != b"RIFF" or data[8:12] != b"WAVE":
        raise InputError("Not a RIFF/WAVE file")
    try:
        with wave.open(io.BytesIO(data), "rb") as wav_handle:
            channels = wav_handle.getnchannels()
            sample_rate = wav_handle.getframerate()
            sample_width = wav_handle.getsampwidth()
            raw = wav_handle.readframes(wav_handle.getnframes())
    except (wave.Error, EOFError) as e:
        raise InputError(f"Unreadable WAV data: {e}") from e
    if sample_width != 2:
        raise InputError(f"Only 16-bit PCM is supported, got {sample_width * 8}-bit")
    if channels <= 0:
        raise InputError("WAV header declares zero channels")

    frames = len(raw) // (2 * channels)
    pcm = np.frombuffer(raw[: frames * 2 * channels], dtype="<i2")
    pcm = pcm.reshape(frames, channels).T.astype(np.float32)
    samples = np.where(pcm < 0, pcm / 0x8000, pcm / 0x7FFF)
    return Waveform(samples, sample_rate)


def bitrate_for(fmt: str, quality: float) -> int | None:
    """Map quality in [0.1, 1.0] onto the format's bitrate table (None if lossless)."""
    if not 0.1 <= quality <= 1.0:
        raise InputError(f"Quality must be in [0.1, 1.0], got {quality}", stage="encoding")
    table = BITRATE_TABLES.get(fmt)
    if table is None:
        return None
    index = round((quality - 0.1) / 0.9 * (len(table) - 1))
    return table[index]


def encode(
    waveform: Waveform, fmt: str = "wav", quality: float = 0.8, strict: bool = False
) -> EncodedClip:
    """Encode ``waveform`` for the requested format.

    Anything other than WAV falls back to WAV bytes with ``fallback`` set. With
    ``strict=True`` the gap is raised as CapabilityGap instead.
    """
    fmt = fmt.lower().lstrip(".")
    if fmt not in MIME_TYPES:
        raise InputError(f"Unknown output format '{fmt}'", stage="encoding")

    bitrate = bitrate_for(fmt, quality)
    fallback = None
    if fmt != "wav":
        if strict:
            raise CapabilityGap(fmt)
        kind = "lossless" if fmt in LOSSLESS_FORMATS else "lossy"
        fallback = FormatFallback(
            requested_format=fmt,
            actual_format="wav",
            reason=f"{fmt} ({kind}) encoding is not implemented; falling back to WAV",
        )
        logger.warning(fallback.reason)

    return EncodedClip(
        data=encode_wav(waveform),
        mime_type=MIME_TYPES["wav"],
        extension="wav",
        requested_format=fmt,
        bitrate_kbps=bitrate,
        fallback=fallback,
    )
