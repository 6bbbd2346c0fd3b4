"""
Audio analysis for the interview scoring engine.

- processing: spectrum features, noise calibration and the stream analyzer
"""

from .processing import AudioSample, NoiseCalibration, AudioStreamAnalyzer, extract_spectrum_features

__all__ = [
    "AudioSample",
    "NoiseCalibration",
    "AudioStreamAnalyzer",
    "extract_spectrum_features",
]
