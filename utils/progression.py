"""
Lesson unlock chain for a chapter's learning path.

Lessons are ordered by ``order_index``. The first lesson is always open; every
other lesson opens once the lesson right before it is completed. The "current"
lesson is the one the learner should take next: open and not yet completed.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

HORIZONTAL_OFFSET = 100
VERTICAL_SPACING = 140


class LessonStatus(str, Enum):
    LOCKED = "locked"
    CURRENT = "current"
    COMPLETED = "completed"


@dataclass
class LessonState:
    lesson_id: int
    index: int
    unlocked: bool
    completed: bool
    is_current: bool
    status: LessonStatus
    progress_percentage: int
    position: Dict[str, int]

    def to_dict(self):
        data = asdict(self)
        data["status"] = self.status.value
        return data


def _progress_by_lesson(progress_records: Iterable) -> Dict[int, object]:
    return {record.lesson_id: record for record in progress_records}


def is_lesson_completed(lesson_id: int, progress: Dict[int, object]) -> bool:
    record = progress.get(lesson_id)
    return bool(record and record.completed)


def is_lesson_unlocked(index: int, lessons: Sequence, progress: Dict[int, object]) -> bool:
    if index == 0:
        return True
    if index < 0 or index >= len(lessons):
        return False
    return is_lesson_completed(lessons[index - 1].id, progress)


def is_current_lesson(index: int, lessons: Sequence, progress: Dict[int, object]) -> bool:
    return is_lesson_unlocked(index, lessons, progress) and not is_lesson_completed(lessons[index].id, progress)


def zigzag_position(index: int) -> Dict[str, int]:
    """Node offset on the learning path: center, right, center, left, repeat"""
    x = 0
    remainder = index % 4
    if remainder == 1:
        x = HORIZONTAL_OFFSET
    elif remainder == 3:
        x = -HORIZONTAL_OFFSET
    return {"x": x, "y": index * VERTICAL_SPACING}


def compute_lesson_states(lessons: Sequence, progress_records: Iterable = ()) -> List[LessonState]:
    """
    Compute unlock/completion state for every lesson of a chapter.

    Args:
        lessons: Lesson rows (anything with ``id``) already sorted by order_index
        progress_records: The learner's progress rows; may be empty for anonymous users

    Returns:
        One LessonState per lesson, in path order
    """
    progress = _progress_by_lesson(progress_records)
    states = []

    for index, lesson in enumerate(lessons):
        unlocked = is_lesson_unlocked(index, lessons, progress)
        completed = is_lesson_completed(lesson.id, progress)
        is_current = is_current_lesson(index, lessons, progress)

        if completed:
            status = LessonStatus.COMPLETED
        elif unlocked:
            status = LessonStatus.CURRENT
        else:
            status = LessonStatus.LOCKED

        record = progress.get(lesson.id)
        states.append(
            LessonState(
                lesson_id=lesson.id,
                index=index,
                unlocked=unlocked,
                completed=completed,
                is_current=is_current,
                status=status,
                progress_percentage=record.progress_percentage if record else 0,
                position=zigzag_position(index),
            )
        )

    return states


def find_current_lesson(states: List[LessonState]) -> Optional[LessonState]:
    for state in states:
        if state.is_current:
            return state
    return None
