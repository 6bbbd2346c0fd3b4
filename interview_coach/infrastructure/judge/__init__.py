"""Remote content judge client."""

from .client import JudgeClient

__all__ = ["JudgeClient"]
