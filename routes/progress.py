"""
Lesson progress endpoints
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from db import get_db
from models import Lesson, User
from schemas.api_models import ProgressRecord, ProgressRewards, ProgressUpdateRequest, ProgressUpdateResponse
from utils.auth_dependencies import get_current_user
from utils.error_handling import BlockNavigationError, LessonLockedError, validate_resource_exists
from utils.progress_service import get_lesson_player, get_lesson_state, get_user_progress, upsert_lesson_progress
from utils.structured_logging import get_logger, LogCategory

logger = get_logger("routes.progress")

router = APIRouter()


@router.post(
    "",
    response_model=ProgressUpdateResponse,
    summary="Update Lesson Progress",
    description="Idempotent upsert of the caller's progress on a lesson",
)
async def update_progress(
    body: ProgressUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    ## Update Lesson Progress

    Creates or updates the progress record for (current user, lesson).
    Completing a lesson for the first time awards XP, the streak bonus and
    coins; repeating the call returns the same record and awards nothing.
    A lesson can only be completed once every block in it is finished.
    """
    lesson = db.query(Lesson).filter(Lesson.id == body.lesson_id).first()
    validate_resource_exists(lesson, "Lesson", body.lesson_id)

    state = get_lesson_state(db, current_user, lesson)
    if not state.unlocked:
        raise LessonLockedError("Complete the previous lesson to unlock this one")

    if body.completed and not state.completed:
        player = get_lesson_player(db, current_user, lesson)
        try:
            player.finish()
        except BlockNavigationError:
            logger.info(
                f"Lesson {lesson.id} completion rejected at block {player.current.id}",
                category=LogCategory.PROGRESS,
                user_id=current_user.id,
            )
            raise

    logger.info(
        f"Updating progress for lesson {lesson.id}",
        category=LogCategory.PROGRESS,
        user_id=current_user.id,
        extra={"progress_percentage": body.progress_percentage, "completed": body.completed},
    )

    update = upsert_lesson_progress(
        db,
        current_user,
        lesson,
        progress_percentage=body.progress_percentage,
        completed=body.completed,
    )

    return ProgressUpdateResponse(
        data=ProgressRecord.model_validate(update.progress),
        rewards=ProgressRewards(**update.rewards_dict()),
    )


@router.get(
    "",
    response_model=List[ProgressRecord],
    summary="List My Progress",
    description="All progress records of the current user",
)
async def list_progress(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return get_user_progress(db, current_user)
