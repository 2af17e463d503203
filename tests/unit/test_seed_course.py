from models import Course, LessonBlock
from scripts.seed_course import LESSONS, create_course
from utils.blocks import parse_blocks


def test_seed_creates_valid_blocks(test_db):
    course = create_course(test_db)

    assert course.lessons_count == len(LESSONS)
    lessons = course.chapters[0].lessons
    assert [l.title for l in lessons] == [definition["title"] for definition in LESSONS]

    blocks = parse_blocks(test_db.query(LessonBlock).all())
    assert not any(block.is_error for block in blocks)
    assert {block.block_type for block in blocks} == {"theory", "video", "practice", "chatbot"}


def test_seed_is_idempotent(test_db):
    first = create_course(test_db)
    second = create_course(test_db)

    assert first.id == second.id
    assert test_db.query(Course).count() == 1
