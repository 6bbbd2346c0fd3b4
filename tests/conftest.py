"""Shared fixtures for the interview_coach test suite."""
import logging

import pytest

from interview_coach.interview.testing import (
    MockJudgeClient, FailingJudgeClient, create_mock_session, make_face_frame,
)


@pytest.fixture
def neutral_frame():
    return make_face_frame()


@pytest.fixture
def judge():
    return MockJudgeClient(ai_score=80.0)


@pytest.fixture
def failing_judge():
    return FailingJudgeClient()


@pytest.fixture
def session(judge):
    return create_mock_session(judge_client=judge)


@pytest.fixture
def restore_root_logging():
    """setup_logging() replaces the root handlers; close the ones it added."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            handler.close()
            root.removeHandler(handler)
    root.setLevel(level)
