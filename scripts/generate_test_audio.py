#!/usr/bin/env python3
"""Generate a synthetic test recording for WellCut pipeline testing.

Produces a ~22-second mono WAV with alternating tone and silence segments:
  0-3s   440 Hz tone
  3-6s   silence
  6-10s  880 Hz tone
  10-12s silence
  12-16s 440 Hz tone
  16-18s silence
  18-22s 660 Hz tone
"""

import subprocess
import sys
from pathlib import Path


def generate_test_audio(output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)

    audio_filter = (
        "sine=f=440:d=3[a0];"
        "anullsrc=r=44100:cl=mono:d=3[s0];"
        "sine=f=880:d=4[a1];"
        "anullsrc=r=44100:cl=mono:d=2[s1];"
        "sine=f=440:d=4[a2];"
        "anullsrc=r=44100:cl=mono:d=2[s2];"
        "sine=f=660:d=4[a3];"
        "[a0][s0][a1][s1][a2][s2][a3]concat=n=7:v=0:a=1[aout]"
    )

    cmd = [
        "ffmpeg", "-y",
        "-filter_complex", audio_filter,
        "-map", "[aout]",
        "-ar", "44100",
        "-ac", "1",
        "-c:a", "pcm_s16le",
        str(output),
    ]
    subprocess.run(cmd, check=True)
    print(f"Generated: {output}")


if __name__ == "__main__":
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("tests/fixtures/synthetic.wav")
    generate_test_audio(out)
