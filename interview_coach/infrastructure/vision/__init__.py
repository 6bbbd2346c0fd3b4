"""Face landmark frames and geometry scoring."""

from .landmarks import (
    LandmarkFrame, FaceMeshIndex, LEFT_EYE_CONTOUR, RIGHT_EYE_CONTOUR,
    STABILITY_KEY_POINTS, FACE_MESH_POINT_COUNT,
)
from .geometry import (
    GeometryScores, eye_contact_score, stability_score, posture_score, score_frame,
)

__all__ = [
    "LandmarkFrame", "FaceMeshIndex", "LEFT_EYE_CONTOUR", "RIGHT_EYE_CONTOUR",
    "STABILITY_KEY_POINTS", "FACE_MESH_POINT_COUNT",
    "GeometryScores", "eye_contact_score", "stability_score", "posture_score", "score_frame",
]
