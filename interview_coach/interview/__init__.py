"""Interview practice session components.

This module contains the business logic for one timed practice question:
score aggregation, the session state machine, and session services.
"""

# Core state machine
from .orchestrator import SessionStateMachine

# Data models
from .models import (
    AudioSample, FaceScoreDetails, AudioScoreDetails, FaceEvaluation,
    JudgeResult, SessionResult,
)

# Structured schemas and state management
from .schemas import (
    SessionPhase, SessionState, AudioTracking, JudgeRequest, parse_judge_response
)

# Service classes
from .services import FaceScoringService, AudioTrackingService, JudgeService

# Question bank and text
from .prompts import QUESTION_BANK, FeedbackMessages, JUDGE_FALLBACK_FEEDBACK

# Event system
from .events import (
    SessionEventBus, EventLogger, SessionMetrics,
    EventType, SessionEvent, SessionStartedEvent, CountdownTickEvent,
    QuestionStartedEvent, SubmissionStartedEvent, JudgeFallbackUsedEvent,
    SessionConcludedEvent, SessionCancelledEvent, ErrorOccurredEvent
)

# Testing infrastructure
from .testing import (
    MockJudgeClient, FailingJudgeClient, ScriptedJudgeClient,
    make_face_frame, make_face_points, make_spectrum,
    create_mock_session, run_to_active, TestSessionResult
)

__all__ = [
    # State machine
    "SessionStateMachine",

    # Data models
    "AudioSample", "FaceScoreDetails", "AudioScoreDetails", "FaceEvaluation",
    "JudgeResult", "SessionResult",

    # Schemas and state
    "SessionPhase", "SessionState", "AudioTracking", "JudgeRequest", "parse_judge_response",

    # Services
    "FaceScoringService", "AudioTrackingService", "JudgeService",

    # Text
    "QUESTION_BANK", "FeedbackMessages", "JUDGE_FALLBACK_FEEDBACK",

    # Events
    "SessionEventBus", "EventLogger", "SessionMetrics",
    "EventType", "SessionEvent", "SessionStartedEvent", "CountdownTickEvent",
    "QuestionStartedEvent", "SubmissionStartedEvent", "JudgeFallbackUsedEvent",
    "SessionConcludedEvent", "SessionCancelledEvent", "ErrorOccurredEvent",

    # Testing
    "MockJudgeClient", "FailingJudgeClient", "ScriptedJudgeClient",
    "make_face_frame", "make_face_points", "make_spectrum",
    "create_mock_session", "run_to_active", "TestSessionResult",
]
