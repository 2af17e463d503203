"""Seed a demo course with one chapter of lessons covering every block type.

Usage:
  Run from the project root with the virtual environment activated, e.g.:
    python scripts/seed_course.py
"""

import os
import sys

# Ensure project root is on the import path when running as a script
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from sqlalchemy.orm import Session

from db import SessionLocal
from models import BlockType, Chapter, Course, Lesson, LessonBlock
from utils.blocks import parse_content, ErrorContent
from utils.structured_logging import get_logger, LogCategory

logger = get_logger("scripts.seed_course")

COURSE_TITLE = "Prompt Engineering Basics"

COURSE = {
    "title": COURSE_TITLE,
    "description": "Learn to write prompts that get useful answers from AI models.",
    "order_index": 1,
    "difficulty": "beginner",
    "duration_hours": 2,
    "icon": "sparkles",
    "color": "#7C3AED",
    "bg_color": "#F5F3FF",
    "badges": ["Free", "Popular"],
}

CHAPTER = {"title": "Talking to AI", "description": "What a prompt is and how to make it specific", "order_index": 1}

LESSONS = [
    {
        "title": "What is a prompt",
        "lesson_type": "mixed",
        "duration_minutes": 5,
        "points": 10,
        "blocks": [
            (
                BlockType.THEORY,
                "Prompts",
                {
                    "title": "A prompt is an instruction",
                    "content": "The model only knows what you tell it. Say who it should be, what to do and in what form.",
                    "points": ["Give a role", "Describe the task", "Ask for a format"],
                },
            ),
            (BlockType.VIDEO, "Intro video", {"videoUrl": "https://www.youtube.com/embed/dOxUroR57xs"}),
            (
                BlockType.PRACTICE,
                "Check yourself",
                {
                    "question": "Which prompt will give the more useful answer?",
                    "options": ["Write about dogs", "Write a 100-word guide to feeding a puppy, as a vet"],
                    "correct": 1,
                    "explanation": "It sets a role, a topic, a length and an audience.",
                },
            ),
        ],
    },
    {
        "title": "Ask the assistant",
        "lesson_type": "mixed",
        "duration_minutes": 7,
        "points": 15,
        "blocks": [
            (
                BlockType.CHATBOT,
                "Practice chat",
                {
                    "title": "Chat with a tutor",
                    "systemPrompt": "You are a friendly tutor who explains prompt writing with short examples.",
                    "initialMessage": "Ask me anything about writing prompts!",
                    "suggestedQuestions": ["What is a system prompt?", "How long should a prompt be?"],
                    "minInteractions": 2,
                },
            ),
        ],
    },
    {
        "title": "Your first task",
        "lesson_type": "mixed",
        "duration_minutes": 10,
        "points": 20,
        "blocks": [
            (
                BlockType.CHATBOT,
                "Write a prompt",
                {
                    "title": "Haiku generator",
                    "systemPrompt": "You are a helpful assistant.",
                    "task": {
                        "id": "haiku-1",
                        "title": "Autumn haiku",
                        "description": "Write a prompt that makes the model produce a haiku about autumn",
                        "successCriteria": ["Exactly three lines", "5-7-5 syllables", "About autumn"],
                        "maxAttempts": 3,
                    },
                },
            ),
        ],
    },
]


def create_course(db: Session) -> Course:
    """Create the demo course; returns the existing one if it was already seeded"""
    existing = db.query(Course).filter(Course.title == COURSE_TITLE).first()
    if existing:
        logger.info(f"Course '{COURSE_TITLE}' already exists with id {existing.id}. Skipping create.")
        return existing

    course = Course(**COURSE, lessons_count=len(LESSONS))
    db.add(course)
    db.flush()

    chapter = Chapter(course_id=course.id, **CHAPTER)
    db.add(chapter)
    db.flush()

    for order, definition in enumerate(LESSONS, 1):
        lesson = Lesson(
            chapter_id=chapter.id,
            title=definition["title"],
            description="",
            order_index=order,
            lesson_type=definition["lesson_type"],
            duration_minutes=definition["duration_minutes"],
            points=definition["points"],
        )
        db.add(lesson)
        db.flush()

        for block_order, (block_type, title, content) in enumerate(definition["blocks"], 1):
            parsed = parse_content(block_type.value, content)
            if isinstance(parsed, ErrorContent):
                raise ValueError(f"Seed block '{title}' is invalid: {parsed.message}")
            db.add(
                LessonBlock(
                    lesson_id=lesson.id,
                    block_type=block_type.value,
                    order_index=block_order,
                    title=title,
                    content=content,
                )
            )

    db.commit()
    db.refresh(course)
    logger.info(
        f"Created course '{COURSE_TITLE}' with id {course.id}",
        category=LogCategory.DATABASE,
        extra={"lessons": len(LESSONS)},
    )
    return course


def main() -> None:
    db = SessionLocal()
    try:
        create_course(db)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
