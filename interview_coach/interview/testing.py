"""
Testing infrastructure with deterministic doubles for the scoring engine.
"""
import random
from typing import Dict, Any, List, Optional, Sequence, Tuple

import numpy as np

from .models import SessionResult
from .orchestrator import SessionStateMachine
from .prompts import QUESTION_BANK
from ..infrastructure.vision import (
    LandmarkFrame, FaceMeshIndex, LEFT_EYE_CONTOUR, RIGHT_EYE_CONTOUR, FACE_MESH_POINT_COUNT,
)
from ..infrastructure.audio import AudioStreamAnalyzer
from ..utils.timers import ManualScheduler


class MockJudgeClient:
    """Mock judge client returning a fixed successful verdict."""

    def __init__(self, ai_score: float = 80.0, ai_feedback: str = "Clear and well structured answer."):
        self.ai_score = ai_score
        self.ai_feedback = ai_feedback
        self.request_history: List[Dict[str, Any]] = []

    def evaluate(self, question: str, answer: str, face_score: float) -> Dict[str, Any]:
        """Return a mock judge response."""
        self.request_history.append({
            "question": question,
            "answer": answer,
            "faceScore": face_score,
        })
        return {
            "success": True,
            "aiScore": self.ai_score,
            "aiFeedback": self.ai_feedback,
            "faceScore": face_score,
            "finalScore": round(face_score * 0.1 + self.ai_score * 0.9),
        }

    def check_availability(self) -> bool:
        return True


class FailingJudgeClient:
    """Mock judge client whose every call raises."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error or ConnectionError("judge unreachable")
        self.call_count = 0

    def evaluate(self, question: str, answer: str, face_score: float) -> Dict[str, Any]:
        self.call_count += 1
        raise self.error

    def check_availability(self) -> bool:
        return False


class ScriptedJudgeClient:
    """Mock judge client that returns queued raw payloads in order."""

    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.current_response_idx = 0

    def evaluate(self, question: str, answer: str, face_score: float) -> Any:
        if self.current_response_idx < len(self.responses):
            response = self.responses[self.current_response_idx]
            self.current_response_idx += 1
            if isinstance(response, Exception):
                raise response
            return response
        raise RuntimeError("No more scripted judge responses")


# -- landmark frames ---------------------------------------------------------

EYE_Y = 0.40
LEFT_EYE_X = 0.45
RIGHT_EYE_X = 0.55
NOSE = (0.50, 0.50)
CHIN = (0.50, 0.70)


def make_face_points(offset: Tuple[float, float] = (0.0, 0.0),
                     gaze_offset: float = 0.0,
                     tilt: float = 0.0,
                     count: int = FACE_MESH_POINT_COUNT) -> np.ndarray:
    """
    Build a synthetic face mesh.

    With no arguments the face looks straight at the camera with a level,
    upright head: eye contact alignment is perfect and posture scores 100.

    Args:
        offset: (dx, dy) translation applied to every point
        gaze_offset: horizontal shift of the face center relative to the eyes
        tilt: vertical shift of the right eye relative to the left
        count: number of points (fewer than 468 drops the high indices)
    """
    points = np.full((FACE_MESH_POINT_COUNT, 3), 0.5, dtype=np.float64)
    points[:, 2] = 0.0
    points[list(LEFT_EYE_CONTOUR), 0] = LEFT_EYE_X
    points[list(LEFT_EYE_CONTOUR), 1] = EYE_Y
    points[list(RIGHT_EYE_CONTOUR), 0] = RIGHT_EYE_X
    points[list(RIGHT_EYE_CONTOUR), 1] = EYE_Y + tilt
    points[FaceMeshIndex.FACE_CENTER] = ((LEFT_EYE_X + RIGHT_EYE_X) / 2 + gaze_offset, EYE_Y + tilt / 2, 0.0)
    points[FaceMeshIndex.NOSE_TIP] = (NOSE[0], NOSE[1], 0.0)
    points[FaceMeshIndex.CHIN] = (CHIN[0], CHIN[1], 0.0)
    points[:, 0] += offset[0]
    points[:, 1] += offset[1]
    return points[:count]


def make_face_frame(**kwargs) -> LandmarkFrame:
    return LandmarkFrame(make_face_points(**kwargs))


# -- audio spectra -------------------------------------------------------------

def make_spectrum(level: float = 0.0,
                  length: int = 1024,
                  peak_bin: Optional[int] = None,
                  peak_value: Optional[float] = None) -> np.ndarray:
    """Flat magnitude buffer at `level`, optionally with one louder bin."""
    spectrum = np.full(length, float(level), dtype=np.float64)
    if peak_bin is not None:
        spectrum[peak_bin] = float(level if peak_value is None else peak_value)
    return spectrum


def silence(length: int = 1024) -> np.ndarray:
    return make_spectrum(0.0, length)


# -- sessions ------------------------------------------------------------------

def create_mock_session(judge_client: Any = None,
                        questions: Sequence[str] = QUESTION_BANK,
                        countdown_seconds: int = 5,
                        time_limit: float = 60.0,
                        seed: int = 0,
                        with_analyzer: bool = False) -> SessionStateMachine:
    """Create a session on a manual clock with a mock judge."""
    analyzer = AudioStreamAnalyzer(calibration_frames=5, report_every=2) if with_analyzer else None
    return SessionStateMachine(
        judge_client=judge_client or MockJudgeClient(),
        questions=questions,
        countdown_seconds=countdown_seconds,
        time_limit=time_limit,
        scheduler=ManualScheduler(),
        rng=random.Random(seed),
        audio_analyzer=analyzer,
        session_id="test-session",
    )


def run_to_active(machine: SessionStateMachine) -> SessionStateMachine:
    """Start a manual-clock session and advance through the countdown."""
    machine.start()
    machine.scheduler.advance(machine.countdown_seconds)
    return machine


class TestSessionResult:
    """Helper for validating session results."""
    __test__ = False

    @staticmethod
    def validate_result(result: SessionResult) -> List[str]:
        """
        Validate a session result and return the issues found.

        Returns:
            List of validation error messages (empty if valid)
        """
        issues = []

        if not 0 <= result.total_score <= 100:
            issues.append(f"Total score out of range: {result.total_score}")

        if not 0.0 <= result.face_score <= 100.0:
            issues.append(f"Face score out of range: {result.face_score}")

        if result.used_default_score and result.ai_score is not None:
            issues.append("Default score used but an AI score is present")

        if not result.used_default_score and result.ai_score is None:
            issues.append("Missing AI score")

        if not result.question:
            issues.append("Missing question")

        if result.grade not in ("S", "A", "B", "C", "D"):
            issues.append(f"Unknown grade: {result.grade}")

        return issues

    @staticmethod
    def assert_valid_result(result: SessionResult) -> None:
        """Assert that a session result is valid, raising AssertionError if not."""
        issues = TestSessionResult.validate_result(result)
        if issues:
            raise AssertionError(f"Invalid session result: {'; '.join(issues)}")
