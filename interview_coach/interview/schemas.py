"""
Session state and judge payload schemas.
"""
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, Optional

from .models import AudioSample, FaceScoreDetails, JudgeResult, SessionResult
from ..infrastructure.vision import LandmarkFrame
from ..config import AUDIO_HISTORY_LENGTH, SPEAKING_TIME_INCREMENT_MS


class SessionPhase(str, Enum):
    """Lifecycle phases of one practice session."""
    IDLE = "idle"
    COUNTDOWN = "countdown"
    ACTIVE = "active"
    SUBMITTING = "submitting"
    CONCLUDED = "concluded"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionPhase.CONCLUDED, SessionPhase.CANCELLED)


@dataclass
class AudioTracking:
    """Speaking-time accounting and bounded audio histories for one session."""
    speaking_time_ms: int = 0
    total_time_ms: int = 0
    start_time: Optional[float] = None
    history_length: int = AUDIO_HISTORY_LENGTH
    volume_history: Deque[float] = field(default_factory=deque)
    frequency_history: Deque[float] = field(default_factory=deque)

    def __post_init__(self):
        self.volume_history = deque(self.volume_history, maxlen=self.history_length)
        self.frequency_history = deque(self.frequency_history, maxlen=self.history_length)

    def reset(self, start_time: float) -> None:
        """Clear counters and histories and restart the session clock."""
        self.speaking_time_ms = 0
        self.total_time_ms = 0
        self.start_time = start_time
        self.volume_history = deque(maxlen=self.history_length)
        self.frequency_history = deque(maxlen=self.history_length)

    def record(self, sample: AudioSample, now: float,
               increment_ms: int = SPEAKING_TIME_INCREMENT_MS) -> None:
        """Account for one reported audio sample taken at `now` (seconds)."""
        if self.start_time is None:
            return
        self.total_time_ms = max(self.total_time_ms, int(round((now - self.start_time) * 1000)))
        if sample.is_speaking:
            self.speaking_time_ms += increment_ms
        self.volume_history.append(sample.volume)
        self.frequency_history.append(sample.frequency)

    @property
    def speaking_ratio(self) -> float:
        if self.total_time_ms <= 0:
            return 0.0
        return self.speaking_time_ms / self.total_time_ms


@dataclass
class SessionState:
    """Everything one session instance knows. Owned by the session state machine."""
    phase: SessionPhase = SessionPhase.IDLE
    countdown_remaining: Optional[int] = None
    question: str = ""
    question_index: Optional[int] = None
    question_started_at: Optional[float] = None
    deadline: Optional[float] = None
    transcript: str = ""
    previous_frame: Optional[LandmarkFrame] = None
    face_score: float = 0.0
    face_details: Optional[FaceScoreDetails] = None
    live_score: float = 0.0
    feedback: Optional[str] = None
    audio_tracking: AudioTracking = field(default_factory=AudioTracking)
    submitted_by: Optional[str] = None
    result: Optional[SessionResult] = None

    def time_left(self, now: float) -> Optional[float]:
        """Seconds until the question deadline, or None outside the active phase."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - now)


@dataclass(frozen=True)
class JudgeRequest:
    """Request body sent to the content judge."""
    question: str
    answer: str
    face_score: float

    def to_payload(self) -> Dict[str, Any]:
        return {"question": self.question, "answer": self.answer, "faceScore": self.face_score}


def _number(data: Dict[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Judge response field '{key}' must be a number, got {value!r}")
    return float(value)


def parse_judge_response(data: Dict[str, Any], face_score: float) -> JudgeResult:
    """
    Validate a decoded judge response into a JudgeResult.

    Args:
        data: Decoded JSON body of a successful judge call
        face_score: Face score that was sent with the request

    Returns:
        JudgeResult with success=True

    Raises:
        ValueError: If required fields are missing or malformed
    """
    if not isinstance(data, dict):
        raise ValueError(f"Judge response must be an object, got {type(data).__name__}")
    if data.get("success") is not True:
        raise ValueError("Judge response is not marked successful")

    ai_score = _number(data, "aiScore")
    if not 0.0 <= ai_score <= 100.0:
        raise ValueError(f"Judge aiScore out of range: {ai_score}")

    feedback = data.get("aiFeedback")
    if not isinstance(feedback, str):
        raise ValueError("Judge response field 'aiFeedback' must be text")

    final_score = data.get("finalScore")
    try:
        final = int(round(float(final_score))) if final_score is not None else 0
    except (TypeError, ValueError):
        raise ValueError(f"Judge finalScore is not numeric: {final_score!r}")

    reported_face = data.get("faceScore")
    if isinstance(reported_face, bool) or not isinstance(reported_face, (int, float)):
        reported_face = face_score

    return JudgeResult(
        success=True,
        ai_score=ai_score,
        ai_feedback=feedback,
        face_score=float(reported_face),
        final_score=final,
    )
