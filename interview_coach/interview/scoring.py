"""
Score aggregation: face score, live display score, final grade and feedback.

Everything here is a pure function of its arguments.
"""
import math
from typing import Iterable, List, Optional

import numpy as np

from .models import FaceScoreDetails, AudioScoreDetails
from .prompts import FeedbackMessages
from ..infrastructure.vision import GeometryScores
from ..config import (
    EYE_CONTACT_WEIGHT, STABILITY_WEIGHT, POSTURE_WEIGHT,
    FACE_WEIGHT, CONTENT_WEIGHT, AUDIO_SCORE_WEIGHT, DEFAULT_CONTENT_SCORE,
    EYE_CONTACT_LOW_THRESHOLD, EYE_CONTACT_HIGH_THRESHOLD,
    STABILITY_LOW_THRESHOLD, POSTURE_LOW_THRESHOLD,
    FACE_SCORE_LOW_THRESHOLD, FACE_SCORE_HIGH_THRESHOLD,
    AUDIO_SCORE_LOW_THRESHOLD, AUDIO_SCORE_HIGH_THRESHOLD,
    GRADE_BOUNDARIES, LOWEST_GRADE,
    SPEAKING_SCORE_MAX, VOLUME_STABILITY_MAX, FREQUENCY_STABILITY_MAX,
    STABILITY_MIN_HISTORY, FREQUENCY_MIN_VOICED, STABILITY_DEFAULT_SCORE,
    FREQUENCY_SPARSE_SCORE, VOLUME_STABILITY_TOLERANCE, FREQUENCY_STABILITY_TOLERANCE,
)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive scores (0.5 -> 1, 52.5 -> 53)."""
    return int(math.floor(value + 0.5))


# -- face ----------------------------------------------------------------

def face_score(eye_contact: float, stability: float, posture: float) -> float:
    """Weighted 40/30/30 blend of the raw 0-100 sub-scores, clamped to [0, 100]."""
    total = (eye_contact * EYE_CONTACT_WEIGHT
             + stability * STABILITY_WEIGHT
             + posture * POSTURE_WEIGHT)
    return _clamp(total)


def face_score_details(scores: Optional[GeometryScores]) -> FaceScoreDetails:
    """Per-component weighted contributions. No scores (skipped frame) means all zero."""
    if scores is None:
        return FaceScoreDetails()
    eye = scores.eye_contact * EYE_CONTACT_WEIGHT
    stability = scores.stability * STABILITY_WEIGHT
    posture = scores.posture * POSTURE_WEIGHT
    return FaceScoreDetails(
        eye_contact=eye,
        stability=stability,
        posture=posture,
        total=min(100.0, eye + stability + posture),
    )


def live_display_score(face: float, audio: float = 0.0) -> float:
    """Partial score shown while answering: the face share of the final grade."""
    return face * FACE_WEIGHT + audio * AUDIO_SCORE_WEIGHT


def final_score(content_score: Optional[float], face: float) -> int:
    """
    Compose the final grade from the judge's content score and the face score.

    A missing content score (judge failure) is replaced by the default of 50
    so a result can always be produced.
    """
    content = DEFAULT_CONTENT_SCORE if content_score is None else _clamp(float(content_score))
    return round_half_up(content * CONTENT_WEIGHT + face * FACE_WEIGHT)


def grade(score: float) -> str:
    for minimum, letter in GRADE_BOUNDARIES:
        if score >= minimum:
            return letter
    return LOWEST_GRADE


# -- feedback ------------------------------------------------------------

def generate_feedback(face: float,
                      details: Optional[FaceScoreDetails] = None,
                      audio: float = 0.0) -> str:
    """
    Build one coaching string from the score thresholds.

    Eye contact, stability and posture thresholds apply to the weighted
    contributions in `details` (0-40 / 0-30 / 0-30). Without details the
    overall face score decides between the eye contact messages.
    """
    messages: List[str] = []

    if details is not None:
        if details.eye_contact < EYE_CONTACT_LOW_THRESHOLD:
            messages.append(FeedbackMessages.LOOK_AT_CAMERA)
        elif details.eye_contact > EYE_CONTACT_HIGH_THRESHOLD:
            messages.append(FeedbackMessages.GOOD_EYE_CONTACT)

        if details.stability < STABILITY_LOW_THRESHOLD:
            messages.append(FeedbackMessages.HOLD_HEAD_STEADY)

        if details.posture < POSTURE_LOW_THRESHOLD:
            messages.append(FeedbackMessages.CORRECT_POSTURE)
    else:
        if face < FACE_SCORE_LOW_THRESHOLD:
            messages.append(FeedbackMessages.LOOK_AT_CAMERA)
        elif face > FACE_SCORE_HIGH_THRESHOLD:
            messages.append(FeedbackMessages.GOOD_EYE_CONTACT)

    # Audio is not part of the live score; a zero score stays silent
    if 0 < audio < AUDIO_SCORE_LOW_THRESHOLD:
        messages.append(FeedbackMessages.SPEAK_CLEARLY)
    elif audio > AUDIO_SCORE_HIGH_THRESHOLD:
        messages.append(FeedbackMessages.CLEAR_PRONUNCIATION)

    if not messages:
        return FeedbackMessages.DEFAULT
    return FeedbackMessages.SEPARATOR.join(messages)


# -- audio (computed, weighted out of every blend) -------------------------

def _stability_ratio(values: np.ndarray, tolerance: float) -> Optional[float]:
    mean = float(values.mean())
    if mean <= 0:
        return None
    std = float(values.std())
    return max(0.0, 1.0 - std / (mean * tolerance))


def volume_stability_score(volume_history: Iterable[float]) -> float:
    """0-30: how steadily the volume stays within 20% of its mean."""
    values = np.asarray(list(volume_history), dtype=np.float64)
    if values.size < STABILITY_MIN_HISTORY:
        return STABILITY_DEFAULT_SCORE
    ratio = _stability_ratio(values, VOLUME_STABILITY_TOLERANCE)
    if ratio is None:
        return 0.0
    return min(VOLUME_STABILITY_MAX, ratio * VOLUME_STABILITY_MAX)


def frequency_stability_score(frequency_history: Iterable[float]) -> float:
    """0-30: how steadily the voiced (non-zero) dominant frequency stays within 15% of its mean."""
    values = np.asarray(list(frequency_history), dtype=np.float64)
    if values.size < STABILITY_MIN_HISTORY:
        return STABILITY_DEFAULT_SCORE
    voiced = values[values > 0]
    if voiced.size < FREQUENCY_MIN_VOICED:
        return FREQUENCY_SPARSE_SCORE
    ratio = _stability_ratio(voiced, FREQUENCY_STABILITY_TOLERANCE)
    return min(FREQUENCY_STABILITY_MAX, ratio * FREQUENCY_STABILITY_MAX)


def audio_score_details(speaking_ratio: float,
                        volume_history: Iterable[float],
                        frequency_history: Iterable[float]) -> AudioScoreDetails:
    speaking = min(SPEAKING_SCORE_MAX, max(0.0, speaking_ratio) * SPEAKING_SCORE_MAX)
    volume = volume_stability_score(volume_history)
    frequency = frequency_stability_score(frequency_history)
    return AudioScoreDetails(
        speaking=speaking,
        volume=volume,
        frequency=frequency,
        total=min(100.0, speaking + volume + frequency),
    )


def audio_score(speaking_ratio: float,
                volume_history: Iterable[float],
                frequency_history: Iterable[float]) -> float:
    return _clamp(audio_score_details(speaking_ratio, volume_history, frequency_history).total)
