"""Tests for the effect chain."""

import asyncio

import numpy as np
import pytest

from wellcut.editors.effects import (
    default_equalizer_bands,
    equalize,
    fade_in,
    fade_out,
    normalize,
    peaking_sos,
    reduce_noise,
)
from wellcut.errors import InputError
from wellcut.graph import RenderContext
from wellcut.models import EqualizerBand, Waveform

from conftest import SAMPLE_RATE


def _constant(value: float = 0.5, seconds: float = 2.0, channels: int = 2) -> Waveform:
    return Waveform(np.full((channels, int(seconds * SAMPLE_RATE)), value, dtype=np.float32), SAMPLE_RATE)


class TestFades:
    def test_fade_in_ramp(self):
        wf = _constant()
        out = fade_in(wf, 0.5)
        n = int(0.5 * SAMPLE_RATE)
        assert out.samples[0, 0] == 0.0
        assert out.samples[1, n // 2] == pytest.approx(0.25, abs=1e-4)
        assert out.samples[0, n] == pytest.approx(0.5)

    def test_fade_out_ramp(self):
        wf = _constant()
        out = fade_out(wf, 0.5)
        assert out.samples[0, -1] == 0.0
        assert out.samples[0, -int(0.5 * SAMPLE_RATE) - 1] == pytest.approx(0.5)

    def test_input_not_mutated(self):
        wf = _constant()
        fade_in(wf, 0.5)
        fade_out(wf, 0.5)
        assert np.all(wf.samples == 0.5)

    def test_middle_untouched(self):
        wf = _constant()
        out = fade_out(fade_in(wf, 0.5), 0.7)
        head, tail = round(0.5 * SAMPLE_RATE), round(0.7 * SAMPLE_RATE)
        middle = out.samples[:, head:-tail]
        assert middle.shape[1] == wf.length - head - tail
        assert np.array_equal(middle, wf.samples[:, : middle.shape[1]])

    def test_fade_capped_at_half_duration(self):
        wf = _constant(seconds=1.0)
        out = fade_in(wf, 5.0)
        half = SAMPLE_RATE // 2
        assert out.samples[0, half - 1] < 0.5
        assert np.all(out.samples[:, half:] == 0.5)

    def test_empty_buffer_rejected(self):
        with pytest.raises(InputError, match="empty"):
            fade_in(Waveform.silent(1, 0, SAMPLE_RATE), 0.1)


class TestReduceNoise:
    def test_scales_quiet_and_loud_differently(self):
        data = np.full((1, SAMPLE_RATE), 0.01, dtype=np.float32)
        data[0, SAMPLE_RATE // 2 + 100] = 0.9
        out = reduce_noise(Waveform(data, SAMPLE_RATE), 0.5)
        assert out.samples[0, 0] == pytest.approx(0.01 * 0.5)
        assert out.samples[0, SAMPLE_RATE // 2 + 100] == pytest.approx(0.9 * 0.75)

    def test_short_buffer_uses_whole_profile(self):
        wf = _constant(0.2, seconds=0.1, channels=1)
        out = reduce_noise(wf, 1.0)
        # threshold = 0.2 * 6, every sample is "quiet"
        assert np.all(out.samples == 0.0)

    def test_zero_amount_is_identity(self, stereo_noise):
        out = reduce_noise(stereo_noise, 0.0)
        assert np.allclose(out.samples, stereo_noise.samples)

    def test_amount_out_of_range(self, stereo_noise):
        with pytest.raises(InputError, match=r"\[0, 1\]"):
            reduce_noise(stereo_noise, 1.5)

    def test_non_finite_rejected(self):
        data = np.zeros((1, 100), dtype=np.float32)
        data[0, 3] = np.nan
        with pytest.raises(InputError, match="non-finite"):
            reduce_noise(Waveform(data, SAMPLE_RATE), 0.3)


class TestNormalize:
    def test_peak_reaches_target(self, stereo_noise):
        out = normalize(stereo_noise, -3.0)
        assert 20 * np.log10(np.max(np.abs(out.samples))) == pytest.approx(-3.0, abs=1e-3)

    def test_idempotent(self, stereo_noise):
        once = normalize(stereo_noise, -6.0)
        twice = normalize(once, -6.0)
        assert np.max(np.abs(twice.samples)) == pytest.approx(np.max(np.abs(once.samples)), abs=1e-6)

    def test_clips_overshoot(self, stereo_noise):
        out = normalize(stereo_noise, 6.0)
        assert np.max(np.abs(out.samples)) <= 1.0

    def test_silent_buffer_unchanged(self):
        wf = Waveform.silent(2, 100, SAMPLE_RATE)
        out = normalize(wf, -3.0)
        assert np.all(out.samples == 0.0)
        assert out is not wf


class TestEqualizer:
    def test_default_preset_is_flat(self):
        bands = default_equalizer_bands()
        assert len(bands) == 10
        assert bands[0].frequency == 60
        assert bands[-1].frequency == 16000
        assert all(b.gain == 0 for b in bands)

    def test_zero_gain_section_is_identity(self):
        sos = peaking_sos(EqualizerBand(1000, 0.0, 1.4), SAMPLE_RATE)
        assert np.allclose(sos[:3], sos[3:])

    def test_flat_cascade_preserves_signal(self, stereo_noise):
        out = asyncio.run(equalize(stereo_noise, default_equalizer_bands()))
        assert np.allclose(out.samples, stereo_noise.samples, atol=1e-5)

    def test_boost_raises_band_energy(self):
        t = np.arange(SAMPLE_RATE) / SAMPLE_RATE
        wf = Waveform(0.1 * np.sin(2 * np.pi * 1000 * t), SAMPLE_RATE)
        out = asyncio.run(equalize(wf, [EqualizerBand(1000, 12.0, 1.0)]))
        # steady state, past the filter transient
        gain = np.max(np.abs(out.samples[0, SAMPLE_RATE // 2:])) / 0.1
        assert gain == pytest.approx(10 ** (12 / 20), rel=0.05)

    def test_uses_supplied_context(self, stereo_noise):
        ctx = RenderContext.for_waveform(stereo_noise)
        asyncio.run(equalize(stereo_noise, [EqualizerBand(500, 3.0)], ctx))
        assert ctx.renders == 1

    def test_band_above_nyquist_is_clamped(self):
        wf = Waveform(np.random.default_rng(0).uniform(-0.1, 0.1, 8000), 8000)
        out = asyncio.run(equalize(wf, [EqualizerBand(16000, 6.0)]))
        assert np.all(np.isfinite(out.samples))
