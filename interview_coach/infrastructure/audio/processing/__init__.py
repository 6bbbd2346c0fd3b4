"""Spectrum feature extraction and streaming microphone analysis."""

from .features import (
    SpectrumFeatures, as_spectrum, raw_volume, extract_spectrum_features, bin_to_frequency,
)
from .analyzer import AudioSample, TickAnalysis, NoiseCalibration, AudioStreamAnalyzer

__all__ = [
    "SpectrumFeatures",
    "as_spectrum",
    "raw_volume",
    "extract_spectrum_features",
    "bin_to_frequency",
    "AudioSample",
    "TickAnalysis",
    "NoiseCalibration",
    "AudioStreamAnalyzer",
]
