"""
interview_coach: scoring engine for timed interview practice.

Turns face landmarks and microphone spectra into live coaching scores,
runs the countdown/question/submission session, and blends the face score
with a remote content judge's grade.
"""

__version__ = "1.0.0"

# Main entry points
from .interview.orchestrator import SessionStateMachine
from .interview.models import SessionResult
from .interview.schemas import SessionPhase

__all__ = ["SessionStateMachine", "SessionResult", "SessionPhase"]
