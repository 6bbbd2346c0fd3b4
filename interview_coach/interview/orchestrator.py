"""
Session state machine for one timed practice question.

IDLE -> COUNTDOWN -> ACTIVE -> SUBMITTING -> CONCLUDED, with CANCELLED
reachable from any phase before submission. A machine instance runs exactly
one session; start a new instance for the next one.
"""
import logging
import random
import threading
import uuid
from typing import Any, Dict, Optional, Sequence

from .models import AudioSample, FaceEvaluation, FaceScoreDetails, SessionResult
from .schemas import SessionPhase, SessionState, JudgeRequest
from .services import FaceScoringService, AudioTrackingService, JudgeService
from .prompts import QUESTION_BANK
from .events import (
    SessionEventBus, EventLogger, SessionMetrics, SessionEvent,
    SessionStartedEvent, CountdownTickEvent, QuestionStartedEvent,
    SubmissionStartedEvent, JudgeFallbackUsedEvent, SessionConcludedEvent,
    SessionCancelledEvent, ErrorOccurredEvent,
)
from . import scoring
from ..infrastructure.vision import LandmarkFrame
from ..infrastructure.audio import AudioStreamAnalyzer
from ..infrastructure.judge import JudgeClient
from ..utils.timers import ThreadingScheduler, TimerHandle
from ..config import (
    COUNTDOWN_SECONDS, QUESTION_TIME_LIMIT, DEFAULT_DETECTION_CONFIDENCE,
    JUDGE_API_URL, JUDGE_TIMEOUT,
)

logger = logging.getLogger("orchestrator")


class SessionStateMachine:
    """
    Drives one practice session and owns its SessionState.

    Landmark frames and audio samples are accepted while the question is
    active. Explicit submission and the question deadline share a single
    guarded submission routine, so exactly one result is ever produced.
    """

    def __init__(self,
                 judge_client: Optional[JudgeClient] = None,
                 questions: Sequence[str] = QUESTION_BANK,
                 countdown_seconds: int = COUNTDOWN_SECONDS,
                 time_limit: float = QUESTION_TIME_LIMIT,
                 scheduler=None,
                 rng: Optional[random.Random] = None,
                 audio_analyzer: Optional[AudioStreamAnalyzer] = None,
                 event_bus: Optional[SessionEventBus] = None,
                 detection_confidence: float = DEFAULT_DETECTION_CONFIDENCE,
                 session_id: Optional[str] = None):
        if not questions:
            raise ValueError("At least one question is required")
        if countdown_seconds < 0:
            raise ValueError("countdown_seconds cannot be negative")
        if time_limit <= 0:
            raise ValueError("time_limit must be positive")

        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.questions = tuple(questions)
        self.countdown_seconds = int(countdown_seconds)
        self.time_limit = float(time_limit)
        self.scheduler = scheduler or ThreadingScheduler()
        self._rng = rng or random.Random()

        # Initialize event system
        self.event_bus = event_bus or SessionEventBus()
        self.event_logger = EventLogger()
        self.metrics = SessionMetrics()
        self.event_bus.subscribe_all(self.event_logger.handle_event)
        self.event_bus.subscribe_all(self.metrics.handle_event)

        # Services
        if judge_client is None:
            judge_client = JudgeClient(JUDGE_API_URL, timeout=JUDGE_TIMEOUT)
        self.judge_service = JudgeService(judge_client)
        self.face_service = FaceScoringService(detection_confidence)
        self.audio_service = AudioTrackingService()

        self.audio_analyzer = audio_analyzer
        if audio_analyzer is not None:
            audio_analyzer.on_sample = self.on_audio_sample

        self.state = SessionState()
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._countdown_timer: Optional[TimerHandle] = None
        self._deadline_timer: Optional[TimerHandle] = None

    # -- inspection ------------------------------------------------------

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    @property
    def result(self) -> Optional[SessionResult]:
        return self.state.result

    def time_left(self) -> Optional[float]:
        return self.state.time_left(self.scheduler.now())

    def audio_score(self) -> float:
        return self.audio_service.audio_score(self.state)

    def wait_for_result(self, timeout: Optional[float] = None) -> Optional[SessionResult]:
        """Block until the session concludes (or the timeout passes)."""
        self._done.wait(timeout)
        return self.state.result

    def get_metrics(self) -> Dict[str, int]:
        return self.metrics.get_metrics()

    # -- lifecycle -------------------------------------------------------

    def start(self) -> None:
        """
        Begin the countdown.

        Raises:
            RuntimeError: If this instance has already been started
        """
        with self._lock:
            if self.state.phase != SessionPhase.IDLE:
                raise RuntimeError(
                    f"Session {self.session_id} already started (phase={self.state.phase.value}); "
                    "create a new SessionStateMachine for another session"
                )
            now = self.scheduler.now()
            self.state.audio_tracking.reset(now)
            self.state.previous_frame = None
            self.state.phase = SessionPhase.COUNTDOWN
            self.state.countdown_remaining = self.countdown_seconds

        if self.audio_analyzer is not None:
            self.audio_analyzer.start()

        logger.info("Session %s started, countdown %ds", self.session_id, self.countdown_seconds)
        self._emit(SessionStartedEvent(self.session_id, now, self.countdown_seconds))

        if self.countdown_seconds == 0:
            self._begin_question()
        else:
            with self._lock:
                if self.state.phase == SessionPhase.COUNTDOWN:
                    self._countdown_timer = self.scheduler.call_later(1.0, self._on_countdown_tick)

    def _on_countdown_tick(self) -> None:
        with self._lock:
            if self.state.phase != SessionPhase.COUNTDOWN:
                return
            self.state.countdown_remaining -= 1
            remaining = self.state.countdown_remaining
            if remaining > 0:
                self._countdown_timer = self.scheduler.call_later(1.0, self._on_countdown_tick)
            else:
                self._countdown_timer = None

        self._emit(CountdownTickEvent(self.session_id, self.scheduler.now(), remaining))
        if remaining <= 0:
            self._begin_question()

    def _begin_question(self) -> None:
        with self._lock:
            if self.state.phase != SessionPhase.COUNTDOWN:
                return
            now = self.scheduler.now()
            index = self._rng.randrange(len(self.questions))
            self.state.question_index = index
            self.state.question = self.questions[index]
            self.state.countdown_remaining = None
            self.state.question_started_at = now
            self.state.deadline = now + self.time_limit
            self.state.phase = SessionPhase.ACTIVE
            self._deadline_timer = self.scheduler.call_later(self.time_limit, self._on_deadline)
            question = self.state.question

        logger.info("Question %d: %s", index, question)
        self._emit(QuestionStartedEvent(self.session_id, now, question, index, self.time_limit))

    def _on_deadline(self) -> None:
        logger.info("Time limit reached for session %s", self.session_id)
        self.submit(reason="timeout")

    def cancel(self) -> bool:
        """
        Stop the session before submission. Pending countdown and deadline
        callbacks will not run.

        Returns:
            True if the session was cancelled, False if it had already
            reached submission or a terminal phase
        """
        with self._lock:
            phase = self.state.phase
            if phase in (SessionPhase.SUBMITTING, SessionPhase.CONCLUDED, SessionPhase.CANCELLED):
                return False
            self._cancel_timers()
            self.state.phase = SessionPhase.CANCELLED
            self.state.deadline = None

        if self.audio_analyzer is not None:
            self.audio_analyzer.stop()
        self._done.set()
        logger.info("Session %s cancelled during %s", self.session_id, phase.value)
        self._emit(SessionCancelledEvent(self.session_id, self.scheduler.now(), phase.value))
        return True

    def _cancel_timers(self) -> None:
        for timer in (self._countdown_timer, self._deadline_timer):
            if timer is not None:
                timer.cancel()
        self._countdown_timer = None
        self._deadline_timer = None

    # -- inputs ----------------------------------------------------------

    def on_landmarks(self, frame, confidence: Optional[float] = None) -> Optional[FaceEvaluation]:
        """
        Score one detector frame while the question is active.

        Args:
            frame: LandmarkFrame, raw detector points, or None when no face was found
            confidence: Detector confidence in [0, 1]

        Returns:
            Live evaluation, or None when the frame is skipped or the
            session is not accepting input
        """
        if frame is not None and not isinstance(frame, LandmarkFrame):
            try:
                frame = LandmarkFrame.from_points(frame)
            except (ValueError, KeyError, TypeError) as e:
                logger.warning("Skipping malformed landmark frame: %s", e)
                self._emit(ErrorOccurredEvent(
                    self.session_id, self.scheduler.now(), type(e).__name__, str(e), "landmarks"
                ))
                return None
        with self._lock:
            if self.state.phase != SessionPhase.ACTIVE:
                return None
            return self.face_service.evaluate(self.state, frame, confidence)

    def on_audio_sample(self, sample: AudioSample) -> None:
        """Account for one rate-limited analyzer sample while the question is active."""
        with self._lock:
            if self.state.phase != SessionPhase.ACTIVE:
                return
            self.audio_service.record(self.state, sample, self.scheduler.now())

    def on_audio_buffer(self, buffer) -> Optional[AudioSample]:
        """Feed one raw spectrum buffer through the attached analyzer."""
        if self.audio_analyzer is None:
            raise RuntimeError("No audio analyzer attached to this session")
        return self.audio_analyzer.process(buffer)

    def update_transcript(self, text: str) -> None:
        with self._lock:
            if self.state.phase in (SessionPhase.COUNTDOWN, SessionPhase.ACTIVE):
                self.state.transcript = text or ""

    # -- submission ------------------------------------------------------

    def submit(self, reason: str = "user") -> Optional[SessionResult]:
        """
        Submit the answer for grading.

        Only the first trigger (explicit submission or deadline expiry) wins;
        every later or concurrent call returns None.

        Returns:
            The SessionResult for the winning call, None otherwise
        """
        with self._lock:
            if self.state.phase != SessionPhase.ACTIVE:
                logger.info("Ignoring %s submission in phase %s", reason, self.state.phase.value)
                return None
            self.state.phase = SessionPhase.SUBMITTING
            self.state.submitted_by = reason
            self._cancel_timers()
            request = JudgeRequest(
                question=self.state.question,
                answer=self.state.transcript.strip(),
                face_score=self.state.face_score,
            )
            details = self.state.face_details or FaceScoreDetails()
            feedback = self.state.feedback or scoring.generate_feedback(request.face_score, details)

        if self.audio_analyzer is not None:
            self.audio_analyzer.stop()

        now = self.scheduler.now()
        self._emit(SubmissionStartedEvent(
            self.session_id, now, reason, request.face_score, len(request.answer)
        ))

        judge_result = self.judge_service.evaluate(request)

        if judge_result.success:
            total = scoring.final_score(judge_result.ai_score, request.face_score)
            if total != judge_result.final_score:
                logger.debug("Judge final score %d differs from local composition %d",
                             judge_result.final_score, total)
            ai_score = judge_result.ai_score
        else:
            total = judge_result.final_score
            ai_score = None
            self._emit(JudgeFallbackUsedEvent(self.session_id, now, judge_result.error or "unknown"))

        result = SessionResult(
            total_score=total,
            face_score=request.face_score,
            face_score_details=details,
            ai_score=ai_score,
            ai_feedback=judge_result.ai_feedback,
            question=request.question,
            answer=request.answer,
            feedback=feedback,
            grade=scoring.grade(total),
            used_default_score=not judge_result.success,
            submitted_by=reason,
        )

        with self._lock:
            self.state.result = result
            self.state.deadline = None
            self.state.phase = SessionPhase.CONCLUDED
        self._done.set()

        logger.info("Session %s concluded - Final result: %s", self.session_id, result)
        self._emit(SessionConcludedEvent(
            self.session_id, self.scheduler.now(), result.total_score,
            result.face_score, result.ai_score, result.grade
        ))
        return result

    # -- helpers ---------------------------------------------------------

    def _emit(self, event: SessionEvent) -> None:
        self.event_bus.emit(event)

    def snapshot(self) -> Dict[str, Any]:
        """Plain view of the live session for a presentation layer."""
        with self._lock:
            details = self.state.face_details
            return {
                "phase": self.state.phase.value,
                "countdown": self.state.countdown_remaining,
                "question": self.state.question,
                "faceScore": self.state.face_score,
                "liveScore": self.state.live_score,
                "faceScoreDetails": details.to_dict() if details else None,
                "feedback": self.state.feedback,
                "speakingTimeMs": self.state.audio_tracking.speaking_time_ms,
                "totalTimeMs": self.state.audio_tracking.total_time_ms,
            }
