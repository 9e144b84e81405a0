"""Tests for manifest loading and validation."""

import json
from pathlib import Path

import pytest

from wellcut.errors import InputError
from wellcut.manifest import (
    DetectionConfig,
    ExportConfig,
    Manifest,
    ProcessingOptions,
    default_equalizer_bands,
    load_manifest,
    parse_options,
)
from wellcut.models import EqualizerBand, TimeRange


class TestDetectionConfig:
    def test_defaults(self):
        cfg = DetectionConfig()
        assert cfg.threshold_db == -50.0
        assert cfg.min_duration == 0.5
        assert cfg.window == 0.05
        assert cfg.min_content == 1.0


class TestProcessingOptions:
    def test_empty_skips_everything(self):
        opts = ProcessingOptions()
        assert opts.fade_in is None
        assert opts.noise_reduction is None
        assert opts.normalize is False
        assert opts.equalizer_bands is None

    def test_defaults(self):
        opts = ProcessingOptions.defaults()
        assert opts.fade_in == 0.2
        assert opts.fade_out == 0.2
        assert opts.noise_reduction == 0.3
        assert opts.normalize is True
        assert opts.normalize_target == -3.0
        assert opts.quality == 0.8
        assert opts.equalizer_bands == default_equalizer_bands()

    @pytest.mark.parametrize("kwargs,match", [
        ({"noise_reduction": -0.1}, "noise_reduction"),
        ({"quality": 0.05}, "quality"),
        ({"quality": 1.5}, "quality"),
        ({"fade_in": -1.0}, "fade_in"),
        ({"fade_in": float("nan")}, "fade_in must be a finite number"),
        ({"fade_out": float("inf")}, "fade_out must be a finite number"),
        ({"normalize_target": float("nan")}, "normalize_target"),
        ({"equalizer_bands": [EqualizerBand(frequency=1000.0, gain=float("nan"))]}, "equalizer band"),
    ])
    def test_validate_rejects(self, kwargs, match):
        with pytest.raises(InputError, match=match):
            ProcessingOptions(**kwargs).validate()

    def test_parse_options_builds_bands(self):
        opts = parse_options({"normalize": True, "equalizer_bands": [{"frequency": 250, "gain": 2.0}]})
        assert opts.equalizer_bands == [EqualizerBand(frequency=250, gain=2.0, q=1.4)]

    def test_parse_options_unknown_key(self):
        with pytest.raises(TypeError):
            parse_options({"reverb": 0.5})


class TestManifest:
    def test_minimal(self):
        m = Manifest(input=Path("in.wav"), output=Path("out"))
        assert m.version == "1"
        assert m.export.format == "wav"
        assert m.processing.normalize is True
        assert m.ranges is None


class TestLoadManifest:
    def test_load_sample(self, sample_manifest_path: Path):
        m = load_manifest(sample_manifest_path)
        assert m.version == "1"
        assert m.input == Path("talk.wav")
        assert m.output == Path("clips")
        assert m.detection.threshold_db == -45.0
        assert m.detection.window == 0.05
        assert m.processing.fade_out == 0.3
        assert m.processing.normalize_target == -1.0
        assert m.processing.equalizer_bands[1] == EqualizerBand(frequency=4000, gain=-2.0)
        assert m.export == ExportConfig(format="mp3")
        assert m.ranges == [TimeRange(0.5, 2.0), TimeRange(3.0, 4.25)]

    def test_processing_defaults_when_absent(self, tmp_path: Path):
        path = tmp_path / "m.json"
        path.write_text(json.dumps({"input": "a.wav", "output": "out"}))
        m = load_manifest(path)
        assert m.processing == ProcessingOptions.defaults()
        assert m.ranges is None

    def test_load_invalid_json(self, tmp_path: Path):
        bad = tmp_path / "bad.json"
        bad.write_text("not json")
        with pytest.raises(json.JSONDecodeError):
            load_manifest(bad)

    def test_load_missing_fields(self, tmp_path: Path):
        incomplete = tmp_path / "incomplete.json"
        incomplete.write_text('{"version": "1"}')
        with pytest.raises(ValueError, match="must contain"):
            load_manifest(incomplete)

    def test_invalid_processing_values(self, tmp_path: Path):
        path = tmp_path / "m.json"
        path.write_text(json.dumps({
            "input": "a.wav", "output": "out", "processing": {"noise_reduction": 3},
        }))
        with pytest.raises(InputError):
            load_manifest(path)
