"""
Data models for the interview scoring engine.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..infrastructure.audio import AudioSample
from ..infrastructure.vision import GeometryScores


@dataclass(frozen=True)
class FaceScoreDetails:
    """Weighted face sub-score contributions (0-40, 0-30, 0-30) and their sum."""
    eye_contact: float = 0.0
    stability: float = 0.0
    posture: float = 0.0
    total: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "eyeContact": self.eye_contact,
            "stability": self.stability,
            "posture": self.posture,
        }


@dataclass(frozen=True)
class AudioScoreDetails:
    """Audio sub-scores: speaking (0-40), volume stability (0-30), frequency stability (0-30)."""
    speaking: float = 0.0
    volume: float = 0.0
    frequency: float = 0.0
    total: float = 0.0


@dataclass(frozen=True)
class FaceEvaluation:
    """Live evaluation of one landmark frame."""
    scores: GeometryScores
    details: FaceScoreDetails
    face_score: float
    live_score: float
    feedback: str


@dataclass(frozen=True)
class JudgeResult:
    """Outcome of asking the content judge, real or synthesized."""
    success: bool
    ai_score: float
    ai_feedback: str
    face_score: float
    final_score: int
    error: Optional[str] = None


@dataclass(frozen=True)
class SessionResult:
    """Final graded outcome of a practice session. Created once, never mutated."""
    total_score: int
    face_score: float
    face_score_details: FaceScoreDetails
    ai_score: Optional[float]
    ai_feedback: Optional[str]
    question: str
    answer: str
    feedback: str = ""
    grade: str = "D"
    used_default_score: bool = False
    submitted_by: str = "user"

    def to_dict(self) -> Dict[str, Any]:
        """Presentation payload."""
        return {
            "totalScore": self.total_score,
            "faceScore": self.face_score,
            "faceScoreDetails": self.face_score_details.to_dict(),
            "aiScore": self.ai_score,
            "aiFeedback": self.ai_feedback,
            "question": self.question,
            "answer": self.answer,
            "feedback": self.feedback,
            "grade": self.grade,
            "usedDefaultScore": self.used_default_score,
        }


__all__ = [
    "AudioSample",
    "FaceScoreDetails",
    "AudioScoreDetails",
    "FaceEvaluation",
    "JudgeResult",
    "SessionResult",
]
