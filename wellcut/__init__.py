"""WellCut — silence-aware audio clip extraction and processing."""

__version__ = "0.1.0"
