"""
Lesson progress persistence, completion rewards and daily streaks.
"""

from dataclasses import dataclass, fields
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from config import settings
from models import Lesson, LessonBlock, User, UserExperience, UserLessonBlockAttempt, UserProgress
from utils.blocks import LessonPlayer, block_status_from_attempt, parse_blocks
from utils.coin_service import CoinService
from utils.error_handling import safe_database_operation
from utils.events import event_bus, CoinsChanged, ExperienceChanged, LessonCompleted
from utils.progression import LessonState, compute_lesson_states
from utils.structured_logging import get_logger, LogCategory
from utils.xp import get_level_and_progress, get_xp_rewards

logger = get_logger("progress")


@dataclass
class ProgressUpdate:
    progress: UserProgress
    newly_completed: bool
    xp_awarded: int = 0
    streak_bonus: int = 0
    coins_awarded: int = 0
    total_xp: Optional[int] = None
    level: Optional[int] = None
    previous_level: Optional[int] = None
    leveled_up: bool = False

    def rewards_dict(self):
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "progress"}


def get_user_progress(db: Session, user: User, lesson_ids: Optional[List[int]] = None) -> List[UserProgress]:
    query = db.query(UserProgress).filter(UserProgress.user_id == user.id)
    if lesson_ids is not None:
        if not lesson_ids:
            return []
        query = query.filter(UserProgress.lesson_id.in_(lesson_ids))
    return query.all()


def get_chapter_lessons(db: Session, chapter_id: int) -> List[Lesson]:
    return db.query(Lesson).filter(Lesson.chapter_id == chapter_id).order_by(Lesson.order_index).all()


def get_lesson_state(db: Session, user: Optional[User], lesson: Lesson) -> LessonState:
    """Unlock state of one lesson within its chapter for ``user`` (anonymous: no progress)"""
    lessons = get_chapter_lessons(db, lesson.chapter_id)
    progress = get_user_progress(db, user, [l.id for l in lessons]) if user else []
    states = compute_lesson_states(lessons, progress)
    return next(state for state in states if state.lesson_id == lesson.id)


def get_lesson_player(db: Session, user: Optional[User], lesson: Lesson) -> LessonPlayer:
    """Parsed blocks of a lesson with the learner's block statuses, resumed at the first unfinished block"""
    blocks = parse_blocks(db.query(LessonBlock).filter(LessonBlock.lesson_id == lesson.id).all())

    attempts = {}
    if user and blocks:
        rows = (
            db.query(UserLessonBlockAttempt)
            .filter(
                UserLessonBlockAttempt.user_id == user.id,
                UserLessonBlockAttempt.lesson_block_id.in_([b.id for b in blocks]),
            )
            .all()
        )
        attempts = {row.lesson_block_id: row for row in rows}

    statuses = {block.id: block_status_from_attempt(block, attempts.get(block.id)) for block in blocks}
    return LessonPlayer.from_statuses(blocks, statuses)


def get_experience(db: Session, user: User) -> Optional[UserExperience]:
    return db.query(UserExperience).filter(UserExperience.user_id == user.id).first()


def next_streak(current_streak: int, last_activity: Optional[date], today: date) -> int:
    """Same day keeps the streak, the following day extends it, any gap restarts it at 1"""
    if last_activity is None:
        return 1
    gap = (today - last_activity).days
    if gap <= 0:
        return max(current_streak, 1)
    if gap == 1:
        return current_streak + 1
    return 1


def award_lesson_experience(db: Session, user: User, today: Optional[date] = None):
    """
    Add lesson XP and streak bonus to the user's experience row (not committed).

    Returns:
        Tuple of (experience row, xp awarded, streak bonus, previous level)
    """
    today = today or datetime.utcnow().date()
    rewards = get_xp_rewards()

    experience = get_experience(db, user)
    if experience is None:
        experience = UserExperience(user_id=user.id, total_xp=0, streak_count=0)
        db.add(experience)

    previous_level = get_level_and_progress(experience.total_xp or 0).level

    streak = next_streak(experience.streak_count or 0, experience.last_activity_date, today)
    streak_bonus = rewards.streak_bonus(streak) if streak > (experience.streak_count or 0) else 0

    xp_awarded = rewards.lesson + streak_bonus
    experience.total_xp = (experience.total_xp or 0) + xp_awarded
    experience.streak_count = streak
    experience.last_activity_date = today

    return experience, xp_awarded, streak_bonus, previous_level


def upsert_lesson_progress(
    db: Session,
    user: User,
    lesson: Lesson,
    progress_percentage: int = 100,
    completed: bool = True,
    today: Optional[date] = None,
) -> ProgressUpdate:
    """
    Create or update the (user, lesson) progress record.

    Completion is sticky: once a lesson is completed, later calls cannot mark
    it incomplete. Rewards are granted only on the first transition to
    completed, so repeating a call never double-counts XP or coins.
    """
    progress_percentage = max(0, min(100, progress_percentage))
    coin_service = CoinService(db)
    # Balance row must exist before the progress transaction starts
    coin_service.get_balance(user)

    with safe_database_operation(db, "upsert lesson progress"):
        progress = (
            db.query(UserProgress)
            .filter(UserProgress.user_id == user.id, UserProgress.lesson_id == lesson.id)
            .first()
        )
        was_completed = bool(progress and progress.completed)

        if progress is None:
            progress = UserProgress(user_id=user.id, lesson_id=lesson.id)
            db.add(progress)

        if was_completed:
            progress.progress_percentage = 100
        else:
            progress.progress_percentage = 100 if completed else progress_percentage
            progress.completed = completed
            if completed:
                progress.completed_at = datetime.utcnow()

        progress.updated_at = datetime.utcnow()
        update = ProgressUpdate(progress=progress, newly_completed=completed and not was_completed)

        if update.newly_completed:
            progress.points_earned = lesson.points or 0
            experience, xp_awarded, streak_bonus, previous_level = award_lesson_experience(db, user, today)
            balance = coin_service.credit(user, settings.LESSON_COMPLETION_COINS, commit=False)

            update.xp_awarded = xp_awarded
            update.streak_bonus = streak_bonus
            update.coins_awarded = settings.LESSON_COMPLETION_COINS
            update.total_xp = experience.total_xp
            update.level = get_level_and_progress(experience.total_xp).level
            update.previous_level = previous_level
            update.leveled_up = update.level > previous_level

        db.commit()
        db.refresh(progress)

    if update.newly_completed:
        logger.info(
            f"Lesson {lesson.id} completed",
            category=LogCategory.PROGRESS,
            user_id=user.id,
            extra=update.rewards_dict(),
        )
        event_bus.publish(
            LessonCompleted(
                user_id=user.id,
                lesson_id=lesson.id,
                xp_awarded=update.xp_awarded,
                coins_awarded=update.coins_awarded,
            )
        )
        event_bus.publish(
            ExperienceChanged(
                user_id=user.id,
                total_xp=update.total_xp,
                level=update.level,
                previous_level=update.previous_level,
            )
        )
        if update.coins_awarded:
            event_bus.publish(
                CoinsChanged(user_id=user.id, total_coins=balance.total_coins, delta=update.coins_awarded)
            )
    else:
        logger.debug(
            f"Progress updated for lesson {lesson.id}",
            category=LogCategory.PROGRESS,
            user_id=user.id,
            extra={"progress_percentage": progress.progress_percentage, "completed": progress.completed},
        )

    return update
