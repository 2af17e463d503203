from sqlalchemy import Column, Integer, String, DateTime, Date, ForeignKey, func, Boolean, JSON, BigInteger, Text, Float
from sqlalchemy import UniqueConstraint, Index
from sqlalchemy.orm import declarative_base, relationship
import enum
from datetime import datetime

Base = declarative_base()


class SubscriptionTier(enum.Enum):
    FREE = "free"
    PRO = "pro"


class BlockType(str, enum.Enum):
    THEORY = "theory"
    PRACTICE = "practice"
    VIDEO = "video"
    CHATBOT = "chatbot"


# Users and accounts


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=True)
    password_hash = Column(String, nullable=True)  # NULL for Telegram-only accounts

    # Telegram profile
    telegram_id = Column(BigInteger, nullable=True, unique=True, index=True)
    telegram_username = Column(String, nullable=True)  # without @
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    subscription = relationship("UserSubscription", uselist=False, back_populates="user")


class UserSubscription(Base):
    __tablename__ = "user_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    subscription_tier = Column(String(20), default=SubscriptionTier.FREE.value, nullable=False)
    max_coins = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="subscription")

    @property
    def is_pro(self) -> bool:
        return self.subscription_tier == SubscriptionTier.PRO.value


# Authored content: courses -> chapters -> lessons -> blocks


class Course(Base):
    __tablename__ = "courses"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    order_index = Column(Integer, nullable=False, default=0)
    difficulty = Column(String(20), nullable=False, default="beginner")
    lessons_count = Column(Integer, nullable=False, default=0)
    duration_hours = Column(Integer, nullable=False, default=0)
    icon = Column(String, nullable=True)
    color = Column(String, nullable=True)
    bg_color = Column(String, nullable=True)
    badges = Column(JSON, nullable=True)  # Array of badge labels
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    chapters = relationship("Chapter", order_by="Chapter.order_index", back_populates="course")


class Chapter(Base):
    __tablename__ = "chapters"
    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    course = relationship("Course", back_populates="chapters")
    lessons = relationship("Lesson", order_by="Lesson.order_index", back_populates="chapter")

    __table_args__ = (Index("idx_chapters_course_order", "course_id", "order_index"),)


class Lesson(Base):
    __tablename__ = "lessons"
    id = Column(Integer, primary_key=True, index=True)
    chapter_id = Column(Integer, ForeignKey("chapters.id"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    order_index = Column(Integer, nullable=False)
    lesson_type = Column(String(20), nullable=False, default="mixed")  # video, slides, quiz, reading, mixed
    duration_minutes = Column(Integer, nullable=False, default=5)
    points = Column(Integer, nullable=False, default=10)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    chapter = relationship("Chapter", back_populates="lessons")
    blocks = relationship("LessonBlock", order_by="LessonBlock.order_index", back_populates="lesson")

    __table_args__ = (Index("idx_lessons_chapter_order", "chapter_id", "order_index"),)


class LessonBlock(Base):
    __tablename__ = "lesson_blocks"
    id = Column(Integer, primary_key=True, index=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id"), nullable=False)
    block_type = Column(String(20), nullable=False)  # theory, practice, video, chatbot
    order_index = Column(Integer, nullable=False)
    title = Column(String, nullable=False, default="")
    content = Column(JSON, nullable=False)  # Shape depends on block_type, validated in utils.blocks
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    lesson = relationship("Lesson", back_populates="blocks")

    __table_args__ = (Index("idx_lesson_blocks_lesson_order", "lesson_id", "order_index"),)


# Per-user state


class UserProgress(Base):
    __tablename__ = "user_progress"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False)
    progress_percentage = Column(Integer, default=0, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    points_earned = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    lesson = relationship("Lesson")

    # One logical record per (user, lesson)
    __table_args__ = (UniqueConstraint("user_id", "lesson_id", name="uq_user_progress_user_lesson"),)


class UserExperience(Base):
    __tablename__ = "user_experience"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    total_xp = Column(Integer, default=0, nullable=False)
    streak_count = Column(Integer, default=0, nullable=False)
    last_activity_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)


class UserLessonBlockAttempt(Base):
    __tablename__ = "user_lesson_block_attempts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    lesson_block_id = Column(Integer, ForeignKey("lesson_blocks.id", ondelete="CASCADE"), nullable=False)
    attempts_used = Column(Integer, default=0, nullable=False)
    interactions = Column(Integer, default=0, nullable=False)  # successful chat exchanges, task-less chatbots
    completed = Column(Boolean, default=False, nullable=False)
    feedback_data = Column(JSON, nullable=True)  # last evaluation: score, feedback, strengths, improvements
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    block = relationship("LessonBlock")

    __table_args__ = (UniqueConstraint("user_id", "lesson_block_id", name="uq_user_block_attempt"),)


class UserCoins(Base):
    __tablename__ = "user_coins"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    total_coins = Column(Integer, default=0, nullable=False)
    coins_spent = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)


class AIUsageLog(Base):
    __tablename__ = "ai_usage_log"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    model = Column(String(50), nullable=False)
    input_tokens = Column(Integer, default=0, nullable=False)
    output_tokens = Column(Integer, default=0, nullable=False)
    cost_usd = Column(Float, default=0.0, nullable=False)
    multiplier = Column(Float, default=1.0, nullable=False)
    coins_deducted = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (Index("idx_ai_usage_user_created", "user_id", "created_at"),)
