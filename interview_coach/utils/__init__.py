"""Utility modules for logging and timer scheduling."""

from .logging import setup_logging
from .timers import TimerHandle, ThreadingScheduler, ManualScheduler

__all__ = ["setup_logging", "TimerHandle", "ThreadingScheduler", "ManualScheduler"]
