"""Unit tests for ffutil — ffprobe parsing and decoding via mocked subprocess."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from wellcut.ffutil import (
    FFmpegNotFoundError,
    NoAudioStreamError,
    check_ffmpeg,
    decode_audio,
    probe,
)

PROBE_JSON = {
    "format": {"duration": "12.5"},
    "streams": [
        {
            "codec_type": "video",
            "codec_name": "h264",
        },
        {
            "codec_type": "audio",
            "codec_name": "aac",
            "sample_rate": "48000",
            "channels": 2,
        },
    ],
}


# ---------------------------------------------------------------------------
# check_ffmpeg
# ---------------------------------------------------------------------------

class TestCheckFfmpeg:
    @patch("wellcut.ffutil.shutil.which", return_value=None)
    def test_missing(self, mock_which):
        with pytest.raises(FFmpegNotFoundError, match="ffmpeg not found"):
            check_ffmpeg()

    @patch("wellcut.ffutil.shutil.which", return_value="/usr/bin/ffmpeg")
    def test_present(self, mock_which):
        check_ffmpeg()


# ---------------------------------------------------------------------------
# probe (mocked subprocess)
# ---------------------------------------------------------------------------

class TestProbe:
    @patch("wellcut.ffutil.subprocess.run")
    def test_basic(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout=json.dumps(PROBE_JSON))
        result = probe(Path("talk.mp4"))
        assert result.duration == 12.5
        assert result.sample_rate == 48000
        assert result.channels == 2
        assert result.codec == "aac"

    @patch("wellcut.ffutil.subprocess.run")
    def test_no_audio_stream(self, mock_run):
        data = {
            "format": {"duration": "60.0"},
            "streams": [{"codec_type": "video", "codec_name": "h264"}],
        }
        mock_run.return_value = MagicMock(returncode=0, stdout=json.dumps(data))
        with pytest.raises(NoAudioStreamError, match="No audio stream"):
            probe(Path("video.mp4"))


# ---------------------------------------------------------------------------
# decode_audio (mocked subprocess: verify command shape and reshaping)
# ---------------------------------------------------------------------------

class TestDecodeAudio:
    @patch("wellcut.ffutil.subprocess.run")
    def test_deinterleaves_channels(self, mock_run):
        interleaved = np.array([0.1, -0.1, 0.2, -0.2, 0.3, -0.3], dtype="<f4")
        mock_run.side_effect = [
            MagicMock(returncode=0, stdout=json.dumps(PROBE_JSON)),
            MagicMock(returncode=0, stdout=interleaved.tobytes()),
        ]

        wf = decode_audio(Path("talk.mp4"))

        assert wf.sample_rate == 48000
        assert wf.channels == 2
        assert wf.length == 3
        assert np.allclose(wf.channel(0), [0.1, 0.2, 0.3])
        assert np.allclose(wf.channel(1), [-0.1, -0.2, -0.3])

        cmd = mock_run.call_args_list[1][0][0]
        assert cmd[0] == "ffmpeg"
        assert cmd[cmd.index("-f") + 1] == "f32le"
        assert cmd[cmd.index("-ar") + 1] == "48000"
        assert cmd[cmd.index("-ac") + 1] == "2"

    @patch("wellcut.ffutil.subprocess.run")
    def test_overrides_rate_and_channels(self, mock_run):
        mock_run.side_effect = [
            MagicMock(returncode=0, stdout=json.dumps(PROBE_JSON)),
            MagicMock(returncode=0, stdout=np.zeros(16000, dtype="<f4").tobytes()),
        ]

        wf = decode_audio(Path("talk.mp4"), sample_rate=16000, channels=1)

        assert wf.sample_rate == 16000
        assert wf.channels == 1
        assert wf.duration == pytest.approx(1.0)
        cmd = mock_run.call_args_list[1][0][0]
        assert cmd[cmd.index("-ac") + 1] == "1"
