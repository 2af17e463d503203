"""
Lesson block payloads and forward-only block navigation.

Block content is stored as JSON keyed by the block type. It is validated here,
once, when blocks are loaded; anything that fails validation becomes an
ErrorContent so the lesson still renders and shows what went wrong.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from config import settings
from models import BlockType
from utils.error_handling import BlockNavigationError
from utils.structured_logging import get_logger

logger = get_logger("blocks")


class BlockPayload(BaseModel):
    """Authored JSON uses camelCase keys; Python code uses snake_case"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TheoryContent(BlockPayload):
    title: str = ""
    content: str = ""
    points: List[str] = Field(default_factory=list)
    image: Optional[str] = None
    image_alt: Optional[str] = None
    layout: str = "text-only"  # text-only, image-only, text-image, image-text


class VideoContent(BlockPayload):
    video_url: str
    title: Optional[str] = None
    description: Optional[str] = None


class PracticeContent(BlockPayload):
    question: str
    options: List[str] = Field(..., min_length=2)
    correct: int
    explanation: Optional[str] = None

    @model_validator(mode="after")
    def correct_addresses_an_option(self):
        if not 0 <= self.correct < len(self.options):
            raise ValueError(f"correct index {self.correct} is out of range for {len(self.options)} options")
        return self


class ChatbotTask(BlockPayload):
    id: Optional[str] = None
    title: str
    description: str
    prompt: str = ""
    success_criteria: List[str] = Field(default_factory=list)
    max_attempts: int = Field(default=settings.DEFAULT_MAX_ATTEMPTS, ge=1)

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        return str(v) if v is not None else v


class ChatbotContent(BlockPayload):
    title: str = ""
    description: str = ""
    model: str = settings.DEFAULT_CHAT_MODEL
    system_prompt: str = ""
    allowed_capabilities: List[str] = Field(default_factory=lambda: ["text"])
    initial_message: Optional[str] = None
    suggested_questions: List[str] = Field(default_factory=list)
    min_interactions: int = Field(default=settings.DEFAULT_MIN_INTERACTIONS, ge=0)
    task: Optional[ChatbotTask] = None


class ErrorContent(BlockPayload):
    message: str


BlockContent = Union[TheoryContent, VideoContent, PracticeContent, ChatbotContent, ErrorContent]

CONTENT_MODELS = {
    BlockType.THEORY.value: TheoryContent,
    BlockType.VIDEO.value: VideoContent,
    BlockType.PRACTICE.value: PracticeContent,
    BlockType.CHATBOT.value: ChatbotContent,
}


@dataclass
class ParsedBlock:
    id: int
    block_type: str
    order_index: int
    title: str
    content: BlockContent

    @property
    def is_error(self) -> bool:
        return isinstance(self.content, ErrorContent)

    @property
    def task(self) -> Optional[ChatbotTask]:
        if isinstance(self.content, ChatbotContent):
            return self.content.task
        return None


@dataclass
class BlockStatus:
    """What the learner has done in a block so far"""

    answered: bool = False
    interactions: int = 0
    attempts_used: int = 0
    task_completed: bool = False


def block_status_from_attempt(parsed: ParsedBlock, attempt) -> BlockStatus:
    """Build a BlockStatus from the learner's UserLessonBlockAttempt row (or None)"""
    if attempt is None:
        return BlockStatus()
    if isinstance(parsed.content, PracticeContent):
        # A practice block is done once any answer has been recorded
        return BlockStatus(answered=bool(attempt.completed))
    return BlockStatus(
        interactions=attempt.interactions or 0,
        attempts_used=attempt.attempts_used or 0,
        task_completed=bool(attempt.completed),
    )


def parse_content(block_type: str, content: Any) -> BlockContent:
    model = CONTENT_MODELS.get(block_type)
    if model is None:
        return ErrorContent(message=f"Unknown block type: {block_type}")
    try:
        return model.model_validate(content or {})
    except ValidationError as e:
        return ErrorContent(message=f"Invalid {block_type} block content: {e.error_count()} validation error(s)")


def parse_block(block) -> ParsedBlock:
    """Validate a LessonBlock row into a typed ParsedBlock"""
    content = parse_content(block.block_type, block.content)
    if isinstance(content, ErrorContent):
        logger.warning(
            f"Block {block.id} could not be parsed: {content.message}",
            extra={"block_id": block.id, "block_type": block.block_type},
        )
    return ParsedBlock(
        id=block.id,
        block_type=block.block_type,
        order_index=block.order_index,
        title=block.title or "",
        content=content,
    )


def parse_blocks(blocks: Sequence) -> List[ParsedBlock]:
    return [parse_block(block) for block in sorted(blocks, key=lambda b: b.order_index)]


def can_advance(parsed: ParsedBlock, status: Optional[BlockStatus] = None) -> bool:
    status = status or BlockStatus()
    content = parsed.content

    if isinstance(content, (ErrorContent, TheoryContent, VideoContent)):
        return True
    if isinstance(content, PracticeContent):
        return status.answered
    if isinstance(content, ChatbotContent):
        if content.task is not None:
            # Running out of attempts ends the task but does not trap the learner
            return status.task_completed or status.attempts_used >= content.task.max_attempts
        return status.interactions >= content.min_interactions
    return True


def check_practice_answer(content: PracticeContent, option_index: int) -> Tuple[bool, Optional[str]]:
    if not 0 <= option_index < len(content.options):
        raise ValueError(f"Option {option_index} does not exist")
    return option_index == content.correct, content.explanation


def render_block(parsed: ParsedBlock, status: Optional[BlockStatus] = None, is_last: bool = False) -> Dict[str, Any]:
    """JSON-ready view of a block for the lesson player"""
    status = status or BlockStatus()
    view: Dict[str, Any] = {
        "id": parsed.id,
        "block_type": parsed.block_type,
        "order_index": parsed.order_index,
        "title": parsed.title,
        "is_last": is_last,
        "can_advance": can_advance(parsed, status),
    }

    if parsed.is_error:
        view["content"] = {"kind": "error", "message": parsed.content.message}
        return view

    content = parsed.content.model_dump(by_alias=True)
    if isinstance(parsed.content, PracticeContent) and not status.answered:
        # Answer key stays server-side until the learner has answered
        content.pop("correct", None)
        content.pop("explanation", None)
    view["content"] = content

    if isinstance(parsed.content, ChatbotContent):
        view["status"] = {
            "interactions": status.interactions,
            "attempts_used": status.attempts_used,
            "task_completed": status.task_completed,
        }
    elif isinstance(parsed.content, PracticeContent):
        view["status"] = {"answered": status.answered}

    return view


@dataclass
class LessonPlayer:
    """Forward-only cursor over a lesson's blocks"""

    blocks: List[ParsedBlock]
    statuses: Dict[int, BlockStatus] = field(default_factory=dict)
    position: int = 0
    completed: bool = False

    @classmethod
    def from_statuses(cls, blocks: List[ParsedBlock], statuses: Dict[int, BlockStatus]) -> "LessonPlayer":
        """Resume at the first block the learner cannot move past yet"""
        player = cls(blocks=blocks, statuses=statuses)
        for index, block in enumerate(blocks):
            player.position = index
            if not can_advance(block, statuses.get(block.id)):
                break
        return player

    @property
    def current(self) -> Optional[ParsedBlock]:
        if not self.blocks:
            return None
        return self.blocks[self.position]

    @property
    def is_last(self) -> bool:
        return self.position >= len(self.blocks) - 1

    def status_of(self, block: ParsedBlock) -> BlockStatus:
        return self.statuses.get(block.id, BlockStatus())

    def can_advance(self) -> bool:
        if self.current is None:
            return True
        return can_advance(self.current, self.status_of(self.current))

    def next(self) -> ParsedBlock:
        if self.is_last:
            raise BlockNavigationError("Already at the last block; complete the lesson instead")
        if not self.can_advance():
            raise BlockNavigationError("Current block is not finished yet")
        self.position += 1
        return self.current

    def complete(self) -> None:
        if not self.is_last:
            raise BlockNavigationError("Lesson can only be completed from the last block")
        if not self.can_advance():
            raise BlockNavigationError("Current block is not finished yet")
        self.completed = True

    def finish(self) -> None:
        """Walk to the last block and complete; stops at the first unfinished block"""
        while not self.is_last:
            self.next()
        self.complete()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": self.position,
            "total_blocks": len(self.blocks),
            "current_block_id": self.current.id if self.current else None,
            "is_last": self.is_last,
            "can_advance": self.can_advance(),
            "can_complete": self.is_last and self.can_advance(),
        }
