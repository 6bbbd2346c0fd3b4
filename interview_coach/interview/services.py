"""
Service classes for the interview scoring engine.
"""
import logging
from typing import Optional

from .models import AudioSample, FaceEvaluation, JudgeResult
from .schemas import SessionState, JudgeRequest, parse_judge_response
from .prompts import JUDGE_FALLBACK_FEEDBACK
from . import scoring
from ..infrastructure.vision import LandmarkFrame, score_frame
from ..infrastructure.judge import JudgeClient
from ..config import DEFAULT_CONTENT_SCORE, DEFAULT_DETECTION_CONFIDENCE

logger = logging.getLogger("services")


class FaceScoringService:
    """Turns landmark frames into live face evaluations for one session state."""

    def __init__(self, default_confidence: float = DEFAULT_DETECTION_CONFIDENCE):
        self.default_confidence = default_confidence

    def evaluate(self, state: SessionState, frame: Optional[LandmarkFrame],
                 confidence: Optional[float] = None) -> Optional[FaceEvaluation]:
        """
        Score one frame against the previous frame held in the session state,
        then keep it as the new previous frame.

        Args:
            state: Session state owning the previous-frame slot
            frame: Landmark frame, or None when no face was detected
            confidence: Detector confidence; the configured default when None

        Returns:
            FaceEvaluation, or None for a skipped frame
        """
        if frame is None or len(frame) == 0:
            return None

        conf = self.default_confidence if confidence is None else confidence
        scores = score_frame(frame, state.previous_frame, conf)
        state.previous_frame = frame

        details = scoring.face_score_details(scores)
        face = scoring.face_score(scores.eye_contact, scores.stability, scores.posture)
        live = scoring.live_display_score(face)
        feedback = scoring.generate_feedback(face, details)

        state.face_score = face
        state.face_details = details
        state.live_score = live
        state.feedback = feedback

        logger.debug("Face scores: eye=%.1f stability=%.1f posture=%.1f -> %.1f",
                     scores.eye_contact, scores.stability, scores.posture, face)

        return FaceEvaluation(
            scores=scores,
            details=details,
            face_score=face,
            live_score=live,
            feedback=feedback,
        )


class AudioTrackingService:
    """Speaking-time accounting from the analyzer's rate-limited samples."""

    def record(self, state: SessionState, sample: AudioSample, now: float) -> None:
        state.audio_tracking.record(sample, now)

    def audio_score(self, state: SessionState) -> float:
        """Audio score for the session so far. Reported only; never blended."""
        tracking = state.audio_tracking
        return scoring.audio_score(
            tracking.speaking_ratio, tracking.volume_history, tracking.frequency_history
        )


class JudgeService:
    """Asks the content judge for a score and substitutes the default on any failure."""

    def __init__(self, client: JudgeClient):
        self.client = client

    @staticmethod
    def fallback_result(face_score: float, error: str) -> JudgeResult:
        return JudgeResult(
            success=False,
            ai_score=DEFAULT_CONTENT_SCORE,
            ai_feedback=JUDGE_FALLBACK_FEEDBACK,
            face_score=face_score,
            final_score=scoring.final_score(None, face_score),
            error=error,
        )

    def evaluate(self, request: JudgeRequest) -> JudgeResult:
        """
        Grade one answer.

        Returns:
            The judge's result, or the deterministic fallback result if the
            call or its payload failed in any way
        """
        try:
            data = self.client.evaluate(request.question, request.answer, request.face_score)
            result = parse_judge_response(data, request.face_score)
            logger.info("Judge scored answer: %.0f", result.ai_score)
            return result
        except Exception as e:
            logger.error("Judge evaluation failed, using default score: %s", e)
            return self.fallback_result(request.face_score, str(e) or type(e).__name__)
