import pytest
import os
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set test environment variables before any application import reads them
os.environ["NODE_ENV"] = "test"
os.environ["SQLALCHEMY_TEST_DATABASE_URL"] = "sqlite:///./test.db"
os.environ["OPENAI_API_KEY"] = "test_openai_key"
os.environ["SESSION_SECRET"] = "test_session_secret"
os.environ["TELEGRAM_BOT_TOKEN"] = "123456:test_bot_token"
os.environ["TELEGRAM_DEV_FALLBACK"] = "false"

from fastapi.testclient import TestClient

from app import app
from db import engine, SessionLocal, get_db
from models import (
    Base,
    BlockType,
    Chapter,
    Course,
    Lesson,
    LessonBlock,
    SubscriptionTier,
    User,
    UserCoins,
    UserLessonBlockAttempt,
    UserSubscription,
)
from utils.jwt_utils import jwt_manager


@pytest.fixture(scope="session", autouse=True)
def test_engine():
    """Create the schema once and remove the SQLite file at the end"""
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()
    try:
        os.remove("./test.db")
    except FileNotFoundError:
        pass


@pytest.fixture(scope="function")
def test_db(test_engine):
    """Create test database session"""
    session = SessionLocal()

    yield session

    # Cleanup after each test
    session.close()
    with test_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="function")
def client(test_db):
    """Create test client with test database"""

    def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    # Clean up dependency override
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {jwt_manager.create_session_token(user.id)}"}


@pytest.fixture
def user(test_db):
    user = User(email="learner@example.com", first_name="Ada")
    test_db.add(user)
    test_db.commit()
    test_db.refresh(user)
    return user


@pytest.fixture
def pro_user(test_db):
    user = User(email="pro@example.com", first_name="Grace")
    test_db.add(user)
    test_db.commit()
    test_db.add(UserSubscription(user_id=user.id, subscription_tier=SubscriptionTier.PRO.value))
    test_db.commit()
    test_db.refresh(user)
    return user


@pytest.fixture
def headers(user):
    return auth_headers(user)


def finish_blocks(db, user: User, blocks) -> None:
    """Record every block as done: quizzes answered, chats held, tasks passed"""
    for block in blocks:
        db.add(
            UserLessonBlockAttempt(
                user_id=user.id, lesson_block_id=block.id, attempts_used=1, interactions=2, completed=True
            )
        )
    db.commit()


def set_coins(db, user: User, total: int) -> UserCoins:
    coins = db.query(UserCoins).filter(UserCoins.user_id == user.id).first()
    if coins is None:
        coins = UserCoins(user_id=user.id, total_coins=total, coins_spent=0)
        db.add(coins)
    else:
        coins.total_coins = total
    db.commit()
    return coins


@pytest.fixture
def course_data(test_db):
    """
    One course, one chapter and three lessons.

    Lesson 1 holds one block of every type, including a chatbot task and a
    task-less chatbot; lessons 2 and 3 hold a single theory block each.
    """
    course = Course(
        title="Prompt Engineering Basics",
        description="Learn to talk to AI models",
        order_index=1,
        difficulty="beginner",
        lessons_count=3,
        duration_hours=2,
        badges=["New"],
    )
    test_db.add(course)
    test_db.commit()

    chapter = Chapter(course_id=course.id, title="Getting Started", order_index=1)
    test_db.add(chapter)
    test_db.commit()

    lessons = [
        Lesson(chapter_id=chapter.id, title=f"Lesson {i}", description="", order_index=i, points=10)
        for i in range(1, 4)
    ]
    test_db.add_all(lessons)
    test_db.commit()

    first = lessons[0]
    blocks = {
        "theory": LessonBlock(
            lesson_id=first.id,
            block_type=BlockType.THEORY.value,
            order_index=1,
            title="What is a prompt",
            content={"title": "Prompts", "content": "A prompt is an instruction.", "points": ["Be specific"]},
        ),
        "practice": LessonBlock(
            lesson_id=first.id,
            block_type=BlockType.PRACTICE.value,
            order_index=2,
            title="Quiz",
            content={
                "question": "Which prompt is more specific?",
                "options": ["Write something", "Write a 3-line haiku about autumn"],
                "correct": 1,
                "explanation": "It names the form, length and topic.",
            },
        ),
        "chat": LessonBlock(
            lesson_id=first.id,
            block_type=BlockType.CHATBOT.value,
            order_index=3,
            title="Talk to the assistant",
            content={"model": "gpt-4o-mini", "systemPrompt": "You are a tutor.", "minInteractions": 2},
        ),
        "task": LessonBlock(
            lesson_id=first.id,
            block_type=BlockType.CHATBOT.value,
            order_index=4,
            title="Write a prompt",
            content={
                "model": "gpt-4o-mini",
                "systemPrompt": "You are a helpful assistant.",
                "task": {
                    "id": 7,
                    "title": "Haiku",
                    "description": "Get the model to write a haiku about autumn",
                    "successCriteria": ["Three lines", "About autumn"],
                    "maxAttempts": 2,
                },
            },
        ),
    }
    test_db.add_all(blocks.values())
    for lesson in lessons[1:]:
        test_db.add(
            LessonBlock(
                lesson_id=lesson.id,
                block_type=BlockType.THEORY.value,
                order_index=1,
                title="Reading",
                content={"content": "Text"},
            )
        )
    test_db.commit()

    return {"course": course, "chapter": chapter, "lessons": lessons, "blocks": blocks}
