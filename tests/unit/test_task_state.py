import pytest

from utils.llm_client import TaskEvaluation
from utils.task_evaluation import (
    ChatMessage,
    TaskState,
    TaskSubmissionResult,
    derive_task_state,
    get_status_message,
)


@pytest.mark.parametrize(
    "attempts_used,max_attempts,completed,expected",
    [
        (0, 3, False, TaskState.NOT_STARTED),
        (1, 3, False, TaskState.RETRY_AVAILABLE),
        (3, 3, False, TaskState.ATTEMPTS_EXHAUSTED),
        (3, 3, True, TaskState.COMPLETED),
        (1, 3, True, TaskState.COMPLETED),
    ],
)
def test_derive_task_state(attempts_used, max_attempts, completed, expected):
    assert derive_task_state(attempts_used, max_attempts, completed) == expected


def test_status_messages():
    assert get_status_message(TaskState.COMPLETED, 0) == "Task completed successfully!"
    assert "continue" in get_status_message(TaskState.ATTEMPTS_EXHAUSTED, 0)
    assert get_status_message(TaskState.RETRY_AVAILABLE, 1) == "Last attempt remaining. Make it count!"
    assert get_status_message(TaskState.NOT_STARTED, 3) == "3 attempts remaining"


def test_submission_result_to_dict():
    result = TaskSubmissionResult(
        state=TaskState.RETRY_AVAILABLE,
        attempts_used=1,
        max_attempts=3,
        content="An autumn haiku",
        evaluation=TaskEvaluation(score=6, feedback="Close"),
        messages=[ChatMessage(role="user", content="Write a haiku")],
        coins_deducted=0,
    )

    data = result.to_dict()
    assert data["state"] == "retry_available"
    assert data["attempts_remaining"] == 2
    assert data["evaluation"]["score"] == 6
    assert data["messages"] == [{"role": "user", "content": "Write a haiku", "is_error": False}]
    assert data["message"] == "2 attempts remaining"


def test_attempts_remaining_never_negative():
    assert TaskSubmissionResult(state=TaskState.ATTEMPTS_EXHAUSTED, attempts_used=5, max_attempts=3).attempts_remaining == 0
