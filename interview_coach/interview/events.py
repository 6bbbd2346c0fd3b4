"""
Event-driven notifications for practice sessions.
"""
import logging
import threading
from abc import ABC
from typing import Dict, Any, List, Callable, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of session events."""
    SESSION_STARTED = "session_started"
    COUNTDOWN_TICK = "countdown_tick"
    QUESTION_STARTED = "question_started"
    SUBMISSION_STARTED = "submission_started"
    JUDGE_FALLBACK_USED = "judge_fallback_used"
    SESSION_CONCLUDED = "session_concluded"
    SESSION_CANCELLED = "session_cancelled"
    ERROR_OCCURRED = "error_occurred"


@dataclass
class SessionEvent(ABC):
    """Base class for all session events."""
    event_type: EventType
    session_id: str
    timestamp: float
    data: Dict[str, Any]


@dataclass
class SessionStartedEvent(SessionEvent):
    """Event fired when the countdown begins."""
    def __init__(self, session_id: str, timestamp: float, countdown_seconds: int):
        super().__init__(
            event_type=EventType.SESSION_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={"countdown_seconds": countdown_seconds}
        )


@dataclass
class CountdownTickEvent(SessionEvent):
    """Event fired once per countdown second."""
    def __init__(self, session_id: str, timestamp: float, remaining: int):
        super().__init__(
            event_type=EventType.COUNTDOWN_TICK,
            session_id=session_id,
            timestamp=timestamp,
            data={"remaining": remaining}
        )


@dataclass
class QuestionStartedEvent(SessionEvent):
    """Event fired when the question is shown and the answer clock starts."""
    def __init__(self, session_id: str, timestamp: float, question: str,
                 question_index: int, time_limit: float):
        super().__init__(
            event_type=EventType.QUESTION_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "question": question,
                "question_index": question_index,
                "time_limit": time_limit
            }
        )


@dataclass
class SubmissionStartedEvent(SessionEvent):
    """Event fired when the answer is submitted for judging."""
    def __init__(self, session_id: str, timestamp: float, reason: str,
                 face_score: float, answer_length: int):
        super().__init__(
            event_type=EventType.SUBMISSION_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "reason": reason,
                "face_score": face_score,
                "answer_length": answer_length
            }
        )


@dataclass
class JudgeFallbackUsedEvent(SessionEvent):
    """Event fired when the content judge failed and the default score was used."""
    def __init__(self, session_id: str, timestamp: float, error: str):
        super().__init__(
            event_type=EventType.JUDGE_FALLBACK_USED,
            session_id=session_id,
            timestamp=timestamp,
            data={"error": error}
        )


@dataclass
class SessionConcludedEvent(SessionEvent):
    """Event fired when the session result is ready."""
    def __init__(self, session_id: str, timestamp: float, total_score: int,
                 face_score: float, ai_score: Optional[float], grade: str):
        super().__init__(
            event_type=EventType.SESSION_CONCLUDED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "total_score": total_score,
                "face_score": face_score,
                "ai_score": ai_score,
                "grade": grade
            }
        )


@dataclass
class SessionCancelledEvent(SessionEvent):
    """Event fired when a session is stopped before producing a result."""
    def __init__(self, session_id: str, timestamp: float, phase: str):
        super().__init__(
            event_type=EventType.SESSION_CANCELLED,
            session_id=session_id,
            timestamp=timestamp,
            data={"phase": phase}
        )


@dataclass
class ErrorOccurredEvent(SessionEvent):
    """Event fired when an error occurs."""
    def __init__(self, session_id: str, timestamp: float, error_type: str,
                 error_message: str, component: str):
        super().__init__(
            event_type=EventType.ERROR_OCCURRED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "error_type": error_type,
                "error_message": error_message,
                "component": component
            }
        )


EventHandler = Callable[[SessionEvent], None]


class SessionEventBus:
    """Event bus for session notifications."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events."""
        with self._lock:
            self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Unsubscribe from specific event type.

        Args:
            event_type: Type of event to stop listening for
            handler: Handler function to remove
        """
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: SessionEvent) -> None:
        """
        Emit an event to all subscribers. Handler errors are logged, not raised.

        Args:
            event: Event to emit
        """
        logger.debug(f"Emitting event: {event.event_type} for session {event.session_id}")

        with self._lock:
            handlers = list(self._handlers.get(event.event_type, []))
            global_handlers = list(self._global_handlers)

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

        for handler in global_handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

    def clear_handlers(self) -> None:
        """Clear all event handlers."""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Logs all events for debugging and analysis."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.logger.setLevel(log_level)

    def handle_event(self, event: SessionEvent) -> None:
        """Log event details."""
        self.logger.info(f"Event: {event.event_type} | Session: {event.session_id} | Data: {event.data}")


class SessionMetrics:
    """Collects counters from session events."""

    _COUNTERS = {
        EventType.SESSION_STARTED: "sessions_started",
        EventType.QUESTION_STARTED: "questions_asked",
        EventType.SESSION_CONCLUDED: "sessions_concluded",
        EventType.SESSION_CANCELLED: "sessions_cancelled",
        EventType.JUDGE_FALLBACK_USED: "judge_fallbacks",
        EventType.ERROR_OCCURRED: "errors_occurred",
    }

    def __init__(self):
        self.reset()

    def handle_event(self, event: SessionEvent) -> None:
        """Update metrics based on event."""
        name = self._COUNTERS.get(event.event_type)
        if name:
            self._counts[name] += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        return dict(self._counts)

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self._counts = {name: 0 for name in self._COUNTERS.values()}
