"""
Landmark geometry scoring: eye contact, head stability and posture.

Every scorer is total. A frame that lacks the points a scorer needs yields
that scorer's fallback value, never an exception. Coordinates are expected
in the detector's normalized [0, 1] space; the scaling constants assume it.
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .landmarks import (
    LandmarkFrame, FaceMeshIndex, LEFT_EYE_CONTOUR, RIGHT_EYE_CONTOUR,
    STABILITY_KEY_POINTS,
)
from ...config import (
    EYE_CONFIDENCE_WEIGHT, EYE_ALIGNMENT_MAX_BONUS, EYE_ALIGNMENT_SCALE,
    STABILITY_MOVEMENT_SCALE, STABILITY_MOVEMENT_WEIGHT, STABILITY_CONFIDENCE_WEIGHT,
    POSTURE_ANGLE_SCALE, POSTURE_TILT_SCALE, POSTURE_VERTICAL_WEIGHT,
    POSTURE_TILT_WEIGHT, POSTURE_NEUTRAL_SCORE,
)

logger = logging.getLogger("geometry")


@dataclass(frozen=True)
class GeometryScores:
    """Raw 0-100 sub-scores for a single frame."""
    eye_contact: float = 0.0
    stability: float = 0.0
    posture: float = 0.0


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _confidence(confidence: float) -> float:
    if confidence is None or not math.isfinite(confidence):
        return 0.0
    return _clamp(float(confidence), 0.0, 1.0)


def eye_contact_score(frame: Optional[LandmarkFrame], confidence: float) -> float:
    """
    Approximate gaze directness from the offset between the eye centroid
    and the face-center landmark.

    Args:
        frame: Landmark frame
        confidence: Detector confidence in [0, 1]

    Returns:
        Score in [0, 100]. An empty frame scores 0; a frame missing the eye
        contours or face center falls back to confidence * 100.
    """
    if frame is None or len(frame) == 0:
        return 0.0

    conf = _confidence(confidence)
    left = frame.centroid(LEFT_EYE_CONTOUR)
    right = frame.centroid(RIGHT_EYE_CONTOUR)
    face_center = frame.point(FaceMeshIndex.FACE_CENTER)
    if left is None or right is None or face_center is None:
        logger.debug("Eye contact points missing (frame has %d points)", len(frame))
        return _clamp(conf * 100.0)

    eye_center = (left + right) / 2.0
    distance = float(np.linalg.norm(eye_center - face_center))

    alignment_bonus = _clamp(EYE_ALIGNMENT_MAX_BONUS - distance * EYE_ALIGNMENT_SCALE,
                             0.0, EYE_ALIGNMENT_MAX_BONUS)
    return _clamp(conf * 100.0 * EYE_CONFIDENCE_WEIGHT + alignment_bonus)


def stability_score(frame: Optional[LandmarkFrame],
                    previous: Optional[LandmarkFrame],
                    confidence: float) -> float:
    """
    Score how still the head is held, from the mean displacement of anchor
    points between this frame and the previous one.

    Without a previous frame (or with no anchor present in both frames)
    the score is confidence * 100.
    """
    conf = _confidence(confidence)
    if frame is None or previous is None or len(previous) == 0:
        return _clamp(conf * 100.0)

    movements = []
    for idx in STABILITY_KEY_POINTS:
        cur = frame.point(idx)
        prev = previous.point(idx)
        if cur is None or prev is None:
            continue
        movements.append(float(np.linalg.norm(cur - prev)))

    if not movements:
        return _clamp(conf * 100.0)

    avg_movement = sum(movements) / len(movements)
    movement_score = _clamp(100.0 - avg_movement * STABILITY_MOVEMENT_SCALE)
    return _clamp(movement_score * STABILITY_MOVEMENT_WEIGHT
                  + conf * 100.0 * STABILITY_CONFIDENCE_WEIGHT)


def posture_score(frame: Optional[LandmarkFrame]) -> float:
    """
    Combine vertical head alignment (nose to chin) with left/right tilt
    (eye level difference). Missing points give the neutral score of 50.
    """
    if frame is None:
        return POSTURE_NEUTRAL_SCORE

    nose = frame.point(FaceMeshIndex.NOSE_TIP)
    chin = frame.point(FaceMeshIndex.CHIN)
    left_eye = frame.point(FaceMeshIndex.LEFT_EYE_OUTER)
    right_eye = frame.point(FaceMeshIndex.RIGHT_EYE_INNER)
    if nose is None or chin is None or left_eye is None or right_eye is None:
        return POSTURE_NEUTRAL_SCORE

    angle = abs(math.degrees(math.atan2(chin[1] - nose[1], chin[0] - nose[0])))
    vertical = max(0.0, 100.0 - abs(angle - 90.0) * POSTURE_ANGLE_SCALE)

    eye_level_diff = abs(float(left_eye[1] - right_eye[1]))
    tilt = max(0.0, 100.0 - eye_level_diff * POSTURE_TILT_SCALE)

    return vertical * POSTURE_VERTICAL_WEIGHT + tilt * POSTURE_TILT_WEIGHT


def score_frame(frame: Optional[LandmarkFrame],
                previous: Optional[LandmarkFrame],
                confidence: float) -> GeometryScores:
    """Score one frame. A skipped (None) frame scores zero across the board."""
    if frame is None:
        return GeometryScores()
    return GeometryScores(
        eye_contact=eye_contact_score(frame, confidence),
        stability=stability_score(frame, previous, confidence),
        posture=posture_score(frame),
    )
