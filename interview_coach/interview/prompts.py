"""
Question bank and user-facing text for practice sessions.
"""
from typing import Tuple


QUESTION_BANK: Tuple[str, ...] = (
    "Please introduce yourself.",
    "Tell me about your most memorable experience.",
    "Describe your greatest strengths.",
    "Picture yourself five years from now.",
    "Talk about a hobby you enjoy.",
    "What is the most important value in your life?",
    "Tell me about a time you overcame a difficulty.",
    "What is your dream?",
    "Who are you most grateful to, and why?",
    "Picture yourself ten years from now.",
)


class FeedbackMessages:
    """Live coaching fragments, joined with ', ' when several apply."""
    LOOK_AT_CAMERA = "Look straight at the camera"
    GOOD_EYE_CONTACT = "Great eye contact!"
    HOLD_HEAD_STEADY = "Hold your head steady"
    CORRECT_POSTURE = "Sit up straight and correct your posture"
    SPEAK_CLEARLY = "Speak more clearly"
    CLEAR_PRONUNCIATION = "Clear pronunciation!"
    DEFAULT = "You're doing great, keep going!"

    SEPARATOR = ", "


JUDGE_FALLBACK_FEEDBACK = "AI evaluation is unavailable. A default score was used."
