"""
Interview Coach Configuration System
====================================

This file contains ALL configuration for the interview scoring engine.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (scoring weights and technical defaults)
"""
import os
from dataclasses import dataclass
from typing import Optional


# =============================================================================
# USER SETTINGS - Edit these to customize the practice session
# =============================================================================

# Content judge endpoint (the remote service that grades the answer text)
JUDGE_API_URL = "https://ai-judge.your-subdomain.workers.dev"  # Change this!
JUDGE_TIMEOUT = 15.0

# Session timing
COUNTDOWN_SECONDS = 5
QUESTION_TIME_LIMIT = 60.0

# Microphone
MIC_SENSITIVITY = 0.35

# Landmark detector confidence used when the detector does not report one
DEFAULT_DETECTION_CONFIDENCE = 0.8

# Logging
LOG_FILE = "./_sessions/interview.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Face score composition
EYE_CONTACT_WEIGHT = 0.4
STABILITY_WEIGHT = 0.3
POSTURE_WEIGHT = 0.3

# Final grade composition
FACE_WEIGHT = 0.1
CONTENT_WEIGHT = 0.9
AUDIO_SCORE_WEIGHT = 0.0  # audio score is computed but not blended
DEFAULT_CONTENT_SCORE = 50.0

# Geometry scoring
EYE_CONFIDENCE_WEIGHT = 0.7
EYE_ALIGNMENT_MAX_BONUS = 30.0
EYE_ALIGNMENT_SCALE = 100.0
STABILITY_MOVEMENT_SCALE = 2000.0
STABILITY_MOVEMENT_WEIGHT = 0.7
STABILITY_CONFIDENCE_WEIGHT = 0.3
POSTURE_ANGLE_SCALE = 2.0
POSTURE_TILT_SCALE = 500.0
POSTURE_VERTICAL_WEIGHT = 0.6
POSTURE_TILT_WEIGHT = 0.4
POSTURE_NEUTRAL_SCORE = 50.0

# Feedback thresholds (on the weighted 0-40 / 0-30 / 0-30 contributions)
EYE_CONTACT_LOW_THRESHOLD = 20.0
EYE_CONTACT_HIGH_THRESHOLD = 30.0
STABILITY_LOW_THRESHOLD = 15.0
POSTURE_LOW_THRESHOLD = 15.0
FACE_SCORE_LOW_THRESHOLD = 50.0
FACE_SCORE_HIGH_THRESHOLD = 80.0
AUDIO_SCORE_LOW_THRESHOLD = 50.0
AUDIO_SCORE_HIGH_THRESHOLD = 80.0

# Result grade boundaries (minimum score for each letter)
GRADE_BOUNDARIES = (
    (90.0, "S"),
    (80.0, "A"),
    (70.0, "B"),
    (60.0, "C"),
)
LOWEST_GRADE = "D"

# Audio analysis
MAX_MAGNITUDE = 255.0
VOLUME_MAX_WEIGHT = 0.7
VOLUME_AVG_WEIGHT = 0.3
VOLUME_GAIN = 3.0
ACTIVE_BIN_BONUS = 0.08
CALIBRATION_FRAMES = 60
SPEAKING_THRESHOLD_CAP = 0.8
CALIBRATED_SENSITIVITY_SCALE = 0.3
UNCALIBRATED_SENSITIVITY_SCALE = 0.5
TRANSIENT_MARGIN = 20.0
VOLUME_EPSILON = 0.01
REPORT_EVERY_N_TICKS = 10
DEFAULT_SAMPLE_RATE = 48000
FFT_SIZE = 2048

# Audio tracking
SPEAKING_TIME_INCREMENT_MS = 100
AUDIO_HISTORY_LENGTH = 100

# Audio score (retained, not blended)
SPEAKING_SCORE_MAX = 40.0
VOLUME_STABILITY_MAX = 30.0
FREQUENCY_STABILITY_MAX = 30.0
STABILITY_MIN_HISTORY = 5
FREQUENCY_MIN_VOICED = 3
STABILITY_DEFAULT_SCORE = 15.0
FREQUENCY_SPARSE_SCORE = 10.0
VOLUME_STABILITY_TOLERANCE = 0.2
FREQUENCY_STABILITY_TOLERANCE = 0.15


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    judge_api_url: str = JUDGE_API_URL
    judge_timeout: float = JUDGE_TIMEOUT
    countdown_seconds: int = COUNTDOWN_SECONDS
    question_time_limit: float = QUESTION_TIME_LIMIT
    mic_sensitivity: float = MIC_SENSITIVITY
    detection_confidence: float = DEFAULT_DETECTION_CONFIDENCE
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def get_config(judge_api_url: Optional[str] = None) -> Config:
    """Load configuration, letting environment variables override the defaults above."""
    url = judge_api_url or os.getenv("INTERVIEW_JUDGE_URL") or JUDGE_API_URL

    sensitivity = _env_float("INTERVIEW_MIC_SENSITIVITY", MIC_SENSITIVITY)
    if not 0.0 <= sensitivity <= 1.0:
        raise ValueError("INTERVIEW_MIC_SENSITIVITY must be between 0.0 and 1.0")

    timeout = _env_float("INTERVIEW_JUDGE_TIMEOUT", JUDGE_TIMEOUT)
    if timeout <= 0:
        raise ValueError("INTERVIEW_JUDGE_TIMEOUT must be positive")

    return Config(
        judge_api_url=url,
        judge_timeout=timeout,
        mic_sensitivity=sensitivity,
        log_file=os.getenv("INTERVIEW_LOG_FILE") or LOG_FILE,
        log_level=(os.getenv("INTERVIEW_LOG_LEVEL") or LOG_LEVEL).upper(),
    )
