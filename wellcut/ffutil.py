"""FFmpeg/ffprobe subprocess helpers for decoding input media."""

import json
import shutil
import subprocess
from pathlib import Path

import numpy as np

from wellcut.models import ProbeResult, Waveform


class FFmpegNotFoundError(RuntimeError):
    pass


class NoAudioStreamError(ValueError):
    """Raised when the input file has no audio stream."""
    pass


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not on PATH."""
    for cmd in ("ffmpeg", "ffprobe"):
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def probe(input_path: Path) -> ProbeResult:
    """Extract audio stream metadata via ffprobe."""
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    data = json.loads(result.stdout)

    audio_stream = next(
        (s for s in data["streams"] if s["codec_type"] == "audio"), None
    )
    if audio_stream is None:
        raise NoAudioStreamError(f"No audio stream found in {input_path}")

    return ProbeResult(
        duration=float(data["format"]["duration"]),
        sample_rate=int(audio_stream["sample_rate"]),
        channels=int(audio_stream["channels"]),
        codec=audio_stream["codec_name"],
    )


def decode_audio(
    input_path: Path, sample_rate: int | None = None, channels: int | None = None
) -> Waveform:
    """Decode the first audio stream to a float32 Waveform.

    The stream is kept at its native rate and channel count unless
    ``sample_rate`` / ``channels`` are given.
    """
    info = probe(input_path)
    sample_rate = sample_rate or info.sample_rate
    channels = channels or info.channels

    cmd = [
        "ffmpeg",
        "-v", "error",
        "-i", str(input_path),
        "-vn",
        "-f", "f32le",
        "-acodec", "pcm_f32le",
        "-ar", str(sample_rate),
        "-ac", str(channels),
        "-",
    ]
    result = subprocess.run(cmd, capture_output=True, check=True)

    pcm = np.frombuffer(result.stdout, dtype="<f4")
    frames = len(pcm) // channels
    samples = pcm[: frames * channels].reshape(frames, channels).T
    return Waveform(samples.copy(), sample_rate)
