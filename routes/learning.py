"""
Learning Content Service Router
Handles the course structure: courses → chapters → lessons → blocks
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session, joinedload

from db import get_db
from models import Chapter, Course, Lesson, User
from schemas.api_models import (
    ChapterResponse,
    CourseDetailResponse,
    CourseResponse,
    LearningPathLesson,
    LearningPathResponse,
    LessonDetailResponse,
    LessonSummary,
)
from utils.auth_dependencies import get_current_user_optional
from utils.blocks import render_block
from utils.error_handling import LessonLockedError, validate_resource_exists
from utils.progress_service import get_chapter_lessons, get_lesson_player, get_lesson_state, get_user_progress
from utils.progression import compute_lesson_states, find_current_lesson
from utils.structured_logging import get_logger, LogCategory

logger = get_logger("routes.learning")

router = APIRouter()


@router.get(
    "/courses",
    response_model=List[CourseResponse],
    summary="List All Courses",
    description="Retrieve all courses ordered for display",
)
async def get_courses(db: Session = Depends(get_db)):
    """
    ## List All Available Courses

    Courses are returned in `order_index` order with their display metadata
    (difficulty, duration, icon, colors, badges).
    """
    courses = db.query(Course).order_by(Course.order_index, Course.id).all()
    logger.info(f"Retrieved {len(courses)} courses", category=LogCategory.DATABASE)
    return courses


@router.get(
    "/courses/{course_id}",
    response_model=CourseDetailResponse,
    summary="Get Course",
    description="Retrieve a course with its chapters",
)
async def get_course(course_id: int = Path(..., gt=0), db: Session = Depends(get_db)):
    course = db.query(Course).options(joinedload(Course.chapters)).filter(Course.id == course_id).first()
    validate_resource_exists(course, "Course", course_id)
    return course


@router.get(
    "/chapters/{chapter_id}/path",
    response_model=LearningPathResponse,
    summary="Chapter Learning Path",
    description="Lessons of a chapter with their unlock state and path position",
)
async def get_learning_path(
    chapter_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """
    ## Learning Path

    The first lesson is always open. Each later lesson opens once the lesson
    before it is completed. Anonymous visitors see the path with no progress.
    """
    chapter = db.query(Chapter).filter(Chapter.id == chapter_id).first()
    validate_resource_exists(chapter, "Chapter", chapter_id)

    lessons = get_chapter_lessons(db, chapter_id)
    progress = get_user_progress(db, current_user, [l.id for l in lessons]) if current_user else []
    states = compute_lesson_states(lessons, progress)
    current = find_current_lesson(states)

    path = []
    for lesson, state in zip(lessons, states):
        path.append(
            LearningPathLesson(
                **LessonSummary.model_validate(lesson).model_dump(),
                status=state.status.value,
                unlocked=state.unlocked,
                completed=state.completed,
                is_current=state.is_current,
                progress_percentage=state.progress_percentage,
                position=state.position,
            )
        )

    return LearningPathResponse(
        chapter=ChapterResponse.model_validate(chapter),
        lessons=path,
        current_lesson_id=current.lesson_id if current else None,
        completed_count=sum(1 for s in states if s.completed),
        total_count=len(states),
    )


@router.get(
    "/lessons/{lesson_id}",
    response_model=LessonDetailResponse,
    summary="Get Lesson",
    description="Lesson with its validated blocks and the learner's position in it",
)
async def get_lesson(
    lesson_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    lesson = db.query(Lesson).filter(Lesson.id == lesson_id).first()
    validate_resource_exists(lesson, "Lesson", lesson_id)

    state = get_lesson_state(db, current_user, lesson)
    if not state.unlocked:
        logger.info(
            f"Locked lesson {lesson_id} requested",
            category=LogCategory.PROGRESS,
            user_id=current_user.id if current_user else None,
        )
        raise LessonLockedError("Complete the previous lesson to unlock this one")

    player = get_lesson_player(db, current_user, lesson)
    blocks, statuses = player.blocks, player.statuses

    rendered = [
        render_block(block, statuses[block.id], is_last=index == len(blocks) - 1)
        for index, block in enumerate(blocks)
    ]

    return LessonDetailResponse(
        lesson=LessonSummary.model_validate(lesson),
        status=state.status.value,
        blocks=rendered,
        player=player.to_dict(),
    )
