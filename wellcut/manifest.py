"""JSON manifest schema — the contract between CLI/API and engine."""

import json
import math
from dataclasses import dataclass, field
from pathlib import Path

from wellcut.errors import InputError
from wellcut.models import EqualizerBand, TimeRange

DEFAULT_EQ_FREQUENCIES = (60, 170, 310, 600, 1000, 3000, 6000, 12000, 14000, 16000)


def default_equalizer_bands() -> list[EqualizerBand]:
    """Flat 10-band preset, 60 Hz to 16 kHz."""
    return [EqualizerBand(frequency=float(f), gain=0.0, q=1.4) for f in DEFAULT_EQ_FREQUENCIES]


@dataclass
class DetectionConfig:
    """Configuration for silence detection and content extraction."""

    threshold_db: float = -50.0
    min_duration: float = 0.5
    window: float = 0.05
    padding: float = 0.0
    min_content: float = 1.0


@dataclass
class ProcessingOptions:
    """Effect chain settings. A field left as None (or False) skips its stage."""

    fade_in: float | None = None
    fade_out: float | None = None
    noise_reduction: float | None = None
    normalize: bool = False
    normalize_target: float | None = None
    quality: float | None = None
    equalizer_bands: list[EqualizerBand] | None = None

    @classmethod
    def defaults(cls) -> "ProcessingOptions":
        return cls(
            fade_in=0.2,
            fade_out=0.2,
            noise_reduction=0.3,
            normalize=True,
            normalize_target=-3.0,
            quality=0.8,
            equalizer_bands=default_equalizer_bands(),
        )

    def validate(self) -> "ProcessingOptions":
        for name in ("fade_in", "fade_out", "noise_reduction", "normalize_target", "quality"):
            value = getattr(self, name)
            if value is not None and not math.isfinite(value):
                raise InputError(f"{name} must be a finite number, got {value}")
        for name in ("fade_in", "fade_out"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InputError(f"{name} must be >= 0, got {value}")
        if self.noise_reduction is not None and not 0.0 <= self.noise_reduction <= 1.0:
            raise InputError(f"noise_reduction must be in [0, 1], got {self.noise_reduction}")
        if self.quality is not None and not 0.1 <= self.quality <= 1.0:
            raise InputError(f"quality must be in [0.1, 1.0], got {self.quality}")
        for band in self.equalizer_bands or []:
            if not all(math.isfinite(v) for v in (band.frequency, band.gain, band.q)):
                raise InputError(f"equalizer band values must be finite, got {band}")
        return self


@dataclass
class ExportConfig:
    """Output format selection. Lossy formats fall back to WAV."""

    format: str = "wav"


@dataclass
class Manifest:
    """Top-level processing manifest."""

    input: Path
    output: Path
    version: str = "1"
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    processing: ProcessingOptions = field(default_factory=ProcessingOptions.defaults)
    export: ExportConfig = field(default_factory=ExportConfig)
    ranges: list[TimeRange] | None = None


def parse_options(data: dict) -> ProcessingOptions:
    """Build ProcessingOptions from a plain dict (manifest section or API field)."""
    data = dict(data)
    bands = data.pop("equalizer_bands", None)
    options = ProcessingOptions(**data)
    if bands is not None:
        options.equalizer_bands = [EqualizerBand(**b) for b in bands]
    return options.validate()


def load_manifest(path: str | Path) -> Manifest:
    """Load and validate a manifest from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())

    if "input" not in data or "output" not in data:
        raise ValueError("Manifest must contain 'input' and 'output' fields")

    detection = DetectionConfig(**data["detection"]) if "detection" in data else DetectionConfig()
    processing = (
        parse_options(data["processing"]) if "processing" in data else ProcessingOptions.defaults()
    )
    export = ExportConfig(**data["export"]) if "export" in data else ExportConfig()
    ranges = None
    if "ranges" in data:
        ranges = [TimeRange(start=float(r["start"]), end=float(r["end"])) for r in data["ranges"]]

    return Manifest(
        version=data.get("version", "1"),
        input=Path(data["input"]),
        output=Path(data["output"]),
        detection=detection,
        processing=processing,
        export=export,
        ranges=ranges,
    )
