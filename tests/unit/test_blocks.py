from types import SimpleNamespace

import pytest

from utils.blocks import (
    BlockStatus,
    ChatbotContent,
    ErrorContent,
    LessonPlayer,
    PracticeContent,
    TheoryContent,
    block_status_from_attempt,
    can_advance,
    check_practice_answer,
    parse_block,
    parse_blocks,
    parse_content,
    render_block,
)
from utils.error_handling import BlockNavigationError

QUIZ = {"question": "2 + 2?", "options": ["3", "4"], "correct": 1, "explanation": "Arithmetic"}
TASK_CHAT = {"task": {"id": 3, "title": "T", "description": "Do it", "maxAttempts": 2}}


def row(block_id, block_type, content, order_index=None, title=""):
    return SimpleNamespace(
        id=block_id,
        block_type=block_type,
        content=content,
        order_index=block_id if order_index is None else order_index,
        title=title,
    )


class TestParsing:
    def test_camel_case_keys(self):
        content = parse_content("theory", {"content": "x", "imageAlt": "diagram", "layout": "text-image"})
        assert isinstance(content, TheoryContent)
        assert content.image_alt == "diagram"

    def test_chatbot_defaults(self):
        content = parse_content("chatbot", {})
        assert isinstance(content, ChatbotContent)
        assert content.model == "gpt-4o-mini"
        assert content.min_interactions == 3
        assert content.task is None

    def test_task_id_is_stringified(self):
        content = parse_content("chatbot", TASK_CHAT)
        assert content.task.id == "3"
        assert content.task.max_attempts == 2

    def test_unknown_type_becomes_error(self):
        content = parse_content("hologram", {})
        assert isinstance(content, ErrorContent)
        assert "hologram" in content.message

    def test_invalid_practice_becomes_error(self):
        assert isinstance(parse_content("practice", {"question": "q", "options": ["a"], "correct": 0}), ErrorContent)
        assert isinstance(parse_content("practice", {**QUIZ, "correct": 5}), ErrorContent)

    def test_video_requires_url(self):
        assert isinstance(parse_content("video", {"title": "no url"}), ErrorContent)
        assert parse_content("video", {"videoUrl": "https://v"}).video_url == "https://v"

    def test_blocks_sorted_by_order_index(self):
        parsed = parse_blocks([row(1, "theory", {}, order_index=2), row(2, "theory", {}, order_index=1)])
        assert [b.id for b in parsed] == [2, 1]


class TestCanAdvance:
    def test_theory_video_and_error_always_advance(self):
        assert can_advance(parse_block(row(1, "theory", {})))
        assert can_advance(parse_block(row(2, "video", {"videoUrl": "u"})))
        assert can_advance(parse_block(row(3, "bogus", {})))

    def test_practice_needs_an_answer(self):
        block = parse_block(row(1, "practice", QUIZ))
        assert not can_advance(block)
        assert can_advance(block, BlockStatus(answered=True))

    def test_chat_needs_min_interactions(self):
        block = parse_block(row(1, "chatbot", {"minInteractions": 2}))
        assert not can_advance(block, BlockStatus(interactions=1))
        assert can_advance(block, BlockStatus(interactions=2))

    def test_task_needs_completion_or_exhausted_attempts(self):
        block = parse_block(row(1, "chatbot", TASK_CHAT))
        assert not can_advance(block, BlockStatus(attempts_used=1, interactions=10))
        assert can_advance(block, BlockStatus(attempts_used=1, task_completed=True))
        assert can_advance(block, BlockStatus(attempts_used=2))

    def test_status_from_attempt_row(self):
        quiz = parse_block(row(1, "practice", QUIZ))
        chat = parse_block(row(2, "chatbot", TASK_CHAT))
        attempt = SimpleNamespace(completed=True, interactions=4, attempts_used=1)

        assert block_status_from_attempt(quiz, None) == BlockStatus()
        assert block_status_from_attempt(quiz, attempt) == BlockStatus(answered=True)
        assert block_status_from_attempt(chat, attempt) == BlockStatus(
            interactions=4, attempts_used=1, task_completed=True
        )


class TestPractice:
    def test_check_answer(self):
        content = PracticeContent.model_validate(QUIZ)
        assert check_practice_answer(content, 1) == (True, "Arithmetic")
        assert check_practice_answer(content, 0) == (False, "Arithmetic")

    def test_check_answer_out_of_range(self):
        with pytest.raises(ValueError):
            check_practice_answer(PracticeContent.model_validate(QUIZ), 2)

    def test_answer_key_hidden_until_answered(self):
        block = parse_block(row(1, "practice", QUIZ))

        hidden = render_block(block)
        assert "correct" not in hidden["content"]
        assert "explanation" not in hidden["content"]
        assert hidden["can_advance"] is False

        shown = render_block(block, BlockStatus(answered=True))
        assert shown["content"]["correct"] == 1
        assert shown["status"] == {"answered": True}


class TestRender:
    def test_error_block_renders_message(self):
        view = render_block(parse_block(row(1, "bogus", {})), is_last=True)
        assert view["content"]["kind"] == "error"
        assert view["is_last"] is True
        assert view["can_advance"] is True

    def test_chatbot_uses_camel_case_and_reports_status(self):
        view = render_block(parse_block(row(1, "chatbot", TASK_CHAT)), BlockStatus(attempts_used=1))
        assert view["content"]["minInteractions"] == 3
        assert view["content"]["task"]["maxAttempts"] == 2
        assert view["status"]["attempts_used"] == 1


class TestLessonPlayer:
    def blocks(self):
        return parse_blocks([row(1, "theory", {}), row(2, "practice", QUIZ), row(3, "theory", {})])

    def test_cannot_pass_unanswered_quiz(self):
        player = LessonPlayer(blocks=self.blocks())
        player.next()
        assert player.current.id == 2

        with pytest.raises(BlockNavigationError):
            player.next()

    def test_answering_unblocks(self):
        player = LessonPlayer(blocks=self.blocks(), statuses={2: BlockStatus(answered=True)})
        player.next()
        player.next()
        assert player.is_last
        player.complete()
        assert player.completed

    def test_complete_only_from_last_block(self):
        player = LessonPlayer(blocks=self.blocks())
        with pytest.raises(BlockNavigationError):
            player.complete()

    def test_next_on_last_block_fails(self):
        player = LessonPlayer(blocks=self.blocks(), statuses={2: BlockStatus(answered=True)}, position=2)
        with pytest.raises(BlockNavigationError):
            player.next()

    def test_resume_at_first_unfinished_block(self):
        player = LessonPlayer.from_statuses(self.blocks(), {})
        assert player.position == 1

        finished = LessonPlayer.from_statuses(self.blocks(), {2: BlockStatus(answered=True)})
        assert finished.position == 2
        assert finished.to_dict()["can_complete"] is True

    def test_empty_lesson(self):
        player = LessonPlayer(blocks=[])
        assert player.current is None
        assert player.to_dict()["total_blocks"] == 0

    def test_finish_walks_to_the_end(self):
        player = LessonPlayer.from_statuses(self.blocks(), {2: BlockStatus(answered=True)})
        player.finish()
        assert player.completed
        assert player.current.id == 3

    def test_finish_stops_at_unfinished_block(self):
        player = LessonPlayer.from_statuses(self.blocks(), {})
        with pytest.raises(BlockNavigationError):
            player.finish()
        assert player.current.id == 2
        assert not player.completed

    def test_finish_empty_lesson(self):
        player = LessonPlayer(blocks=[])
        player.finish()
        assert player.completed
