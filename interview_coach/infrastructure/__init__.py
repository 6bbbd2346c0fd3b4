"""Infrastructure components for the interview scoring engine.

This module contains the low-level signal processing and I/O pieces the
session logic builds on.
"""

# Vision
from .vision import LandmarkFrame, FaceMeshIndex, GeometryScores, score_frame

# Audio
from .audio import AudioSample, NoiseCalibration, AudioStreamAnalyzer

# Content judge
from .judge import JudgeClient

__all__ = [
    # Vision
    "LandmarkFrame", "FaceMeshIndex", "GeometryScores", "score_frame",

    # Audio
    "AudioSample", "NoiseCalibration", "AudioStreamAnalyzer",

    # Content judge
    "JudgeClient",
]
