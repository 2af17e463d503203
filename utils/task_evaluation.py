"""
Chatbot block workflows: graded prompt-writing tasks and free chat.

A task block asks the learner to write a prompt. Each submission is sent to
the model, the reply is scored by an evaluator, and the score decides whether
the task is completed. Attempts are limited per (user, block).
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from config import settings
from models import LessonBlock, User, UserLessonBlockAttempt
from utils.blocks import BlockStatus, ChatbotContent, block_status_from_attempt, can_advance, parse_block
from utils.coin_service import CoinService
from utils.error_handling import AttemptsExhaustedError, UpstreamModelError, safe_database_operation
from utils.llm_client import LLMClient, TaskEvaluation
from utils.pricing import estimate_min_cost
from utils.structured_logging import get_logger, LogCategory

logger = get_logger("task_evaluation")


class TaskState(str, Enum):
    NOT_STARTED = "not_started"
    AWAITING_RESPONSE = "awaiting_response"
    EVALUATED = "evaluated"
    COMPLETED = "completed"
    RETRY_AVAILABLE = "retry_available"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"


def derive_task_state(attempts_used: int, max_attempts: int, completed: bool) -> TaskState:
    """Resting state of a task from its persisted attempt record"""
    if completed:
        return TaskState.COMPLETED
    if attempts_used >= max_attempts:
        return TaskState.ATTEMPTS_EXHAUSTED
    if attempts_used == 0:
        return TaskState.NOT_STARTED
    return TaskState.RETRY_AVAILABLE


def get_status_message(state: TaskState, attempts_remaining: int) -> str:
    """Generate a user-friendly status message"""
    if state == TaskState.COMPLETED:
        return "Task completed successfully!"
    if state == TaskState.ATTEMPTS_EXHAUSTED:
        return "Maximum attempts reached. You can continue to the next block."
    if attempts_remaining == 1:
        return "Last attempt remaining. Make it count!"
    return f"{attempts_remaining} attempts remaining"


@dataclass
class ChatMessage:
    role: str  # user or assistant
    content: str
    is_error: bool = False


@dataclass
class TaskSubmissionResult:
    state: TaskState
    attempts_used: int
    max_attempts: int
    content: Optional[str] = None
    evaluation: Optional[TaskEvaluation] = None
    messages: List[ChatMessage] = field(default_factory=list)
    coins_deducted: int = 0
    remaining_coins: Optional[int] = None
    already_completed: bool = False
    error: Optional[str] = None

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempts_used)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "content": self.content,
            "evaluation": self.evaluation.model_dump() if self.evaluation else None,
            "attempts_used": self.attempts_used,
            "attempts_remaining": self.attempts_remaining,
            "max_attempts": self.max_attempts,
            "messages": [asdict(m) for m in self.messages],
            "coins_deducted": self.coins_deducted,
            "remaining_coins": self.remaining_coins,
            "already_completed": self.already_completed,
            "error": self.error,
            "message": get_status_message(self.state, self.attempts_remaining),
        }


@dataclass
class ChatResult:
    messages: List[ChatMessage]
    interactions: int
    min_interactions: int
    can_advance: bool
    coins_deducted: int = 0
    remaining_coins: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TaskEvaluationWorkflow:
    """Submission and chat handling for one learner in one chatbot block"""

    def __init__(
        self,
        db: Session,
        user: User,
        block: LessonBlock,
        llm: Optional[LLMClient] = None,
        lesson_mode: bool = True,
    ):
        parsed = parse_block(block)
        if not isinstance(parsed.content, ChatbotContent):
            raise ValueError(f"Block {block.id} is not a chatbot block")

        self.db = db
        self.user = user
        self.block = block
        self.parsed = parsed
        self.content: ChatbotContent = parsed.content
        self.task = self.content.task
        self.llm = llm or LLMClient()
        self.coins = CoinService(db)
        self.lesson_mode = lesson_mode

    @property
    def max_attempts(self) -> int:
        return self.task.max_attempts if self.task else settings.DEFAULT_MAX_ATTEMPTS

    @property
    def model(self) -> str:
        return self.content.model or settings.DEFAULT_CHAT_MODEL

    def _get_attempt(self) -> Optional[UserLessonBlockAttempt]:
        return (
            self.db.query(UserLessonBlockAttempt)
            .filter(
                UserLessonBlockAttempt.user_id == self.user.id,
                UserLessonBlockAttempt.lesson_block_id == self.block.id,
            )
            .first()
        )

    def _get_or_create_attempt(self) -> UserLessonBlockAttempt:
        attempt = self._get_attempt()
        if attempt is None:
            attempt = UserLessonBlockAttempt(
                user_id=self.user.id,
                lesson_block_id=self.block.id,
                attempts_used=0,
                interactions=0,
                completed=False,
            )
            self.db.add(attempt)
        return attempt

    def _log_state(self, state: TaskState, **extra):
        logger.info(
            f"Task state: {state.value}",
            category=LogCategory.PROGRESS,
            user_id=self.user.id,
            extra={"block_id": self.block.id, **extra},
        )

    def block_status(self) -> BlockStatus:
        return block_status_from_attempt(self.parsed, self._get_attempt())

    def status(self) -> Dict[str, Any]:
        attempt = self._get_attempt()
        attempts_used = attempt.attempts_used if attempt else 0
        completed = bool(attempt and attempt.completed)
        state = derive_task_state(attempts_used, self.max_attempts, completed)
        remaining = max(0, self.max_attempts - attempts_used)
        return {
            "block_id": self.block.id,
            "has_task": self.task is not None,
            "state": state.value,
            "attempts_used": attempts_used,
            "attempts_remaining": remaining,
            "max_attempts": self.max_attempts,
            "interactions": attempt.interactions if attempt else 0,
            "min_interactions": self.content.min_interactions,
            "completed": completed,
            "can_advance": can_advance(self.parsed, self.block_status()),
            "feedback": attempt.feedback_data if attempt else None,
            "message": get_status_message(state, remaining),
        }

    def _ensure_can_afford(self, prompt: str) -> None:
        self.coins.ensure_can_afford(
            self.user,
            estimate_min_cost(self.model, prompt, self.content.system_prompt),
            lesson_mode=self.lesson_mode,
        )

    def submit(self, prompt: str, context: Optional[List[dict]] = None) -> TaskSubmissionResult:
        """
        Run one graded attempt.

        Generation failures and evaluation failures never consume an attempt.
        A malformed evaluation reply is scored with the fallback evaluation and
        does consume one.
        """
        if self.task is None:
            raise ValueError(f"Block {self.block.id} has no task")

        attempt = self._get_attempt()
        attempts_used = attempt.attempts_used if attempt else 0

        if attempt is not None and attempt.completed:
            return TaskSubmissionResult(
                state=TaskState.COMPLETED,
                attempts_used=attempts_used,
                max_attempts=self.max_attempts,
                evaluation=TaskEvaluation.model_validate(attempt.feedback_data) if attempt.feedback_data else None,
                already_completed=True,
            )

        if attempts_used >= self.max_attempts:
            raise AttemptsExhaustedError(self.max_attempts, attempts_used)

        self._ensure_can_afford(prompt)

        resting_state = derive_task_state(attempts_used, self.max_attempts, False)
        messages = [ChatMessage(role="user", content=prompt)]
        self._log_state(TaskState.AWAITING_RESPONSE, attempts_used=attempts_used)

        try:
            generation = self.llm.generate(prompt, self.model, self.content.system_prompt, context)
        except UpstreamModelError as e:
            logger.warning(
                "Generation failed, attempt not consumed",
                category=LogCategory.LLM,
                user_id=self.user.id,
                extra={"block_id": self.block.id, "error": e.message},
            )
            messages.append(ChatMessage(role="assistant", content=f"Error: {e.message}", is_error=True))
            return TaskSubmissionResult(
                state=resting_state,
                attempts_used=attempts_used,
                max_attempts=self.max_attempts,
                messages=messages,
                error=e.message,
            )

        charge = self.coins.charge(self.user, generation.model, generation.usage, lesson_mode=self.lesson_mode)
        coins_deducted = charge.coins_deducted
        remaining_coins = charge.remaining
        messages.append(ChatMessage(role="assistant", content=generation.content))

        try:
            evaluation, eval_usage = self.llm.evaluate(
                prompt,
                generation.content,
                self.task.description,
                self.task.success_criteria,
            )
        except UpstreamModelError as e:
            logger.warning(
                "Evaluation failed, attempt not recorded",
                category=LogCategory.LLM,
                user_id=self.user.id,
                extra={"block_id": self.block.id, "error": e.message},
            )
            self._record_interaction()
            return TaskSubmissionResult(
                state=resting_state,
                attempts_used=attempts_used,
                max_attempts=self.max_attempts,
                content=generation.content,
                messages=messages,
                coins_deducted=coins_deducted,
                remaining_coins=remaining_coins,
                error=e.message,
            )

        eval_charge = self.coins.charge(
            self.user, settings.EVALUATION_MODEL, eval_usage, lesson_mode=self.lesson_mode
        )
        coins_deducted += eval_charge.coins_deducted
        remaining_coins = eval_charge.remaining

        self._log_state(TaskState.EVALUATED, score=evaluation.score)

        succeeded = evaluation.success or evaluation.score >= settings.TASK_SUCCESS_SCORE
        attempts_used += 1

        with safe_database_operation(self.db, "record task attempt"):
            attempt = self._get_or_create_attempt()
            attempt.attempts_used = attempts_used
            attempt.interactions = (attempt.interactions or 0) + 1
            attempt.completed = succeeded
            attempt.feedback_data = evaluation.model_dump()
            self.db.commit()

        state = derive_task_state(attempts_used, self.max_attempts, succeeded)
        self._log_state(state, score=evaluation.score, attempts_used=attempts_used)

        return TaskSubmissionResult(
            state=state,
            attempts_used=attempts_used,
            max_attempts=self.max_attempts,
            content=generation.content,
            evaluation=evaluation,
            messages=messages,
            coins_deducted=coins_deducted,
            remaining_coins=remaining_coins,
        )

    def _record_interaction(self) -> int:
        with safe_database_operation(self.db, "record chat interaction"):
            attempt = self._get_or_create_attempt()
            attempt.interactions = (attempt.interactions or 0) + 1
            self.db.commit()
            return attempt.interactions

    def chat(self, prompt: str, context: Optional[List[dict]] = None) -> ChatResult:
        """Free conversation in a task-less chatbot block; only successful replies count as interactions"""
        self._ensure_can_afford(prompt)

        messages = [ChatMessage(role="user", content=prompt)]
        status = self.block_status()

        try:
            generation = self.llm.generate(prompt, self.model, self.content.system_prompt, context)
        except UpstreamModelError as e:
            messages.append(ChatMessage(role="assistant", content=f"Error: {e.message}", is_error=True))
            return ChatResult(
                messages=messages,
                interactions=status.interactions,
                min_interactions=self.content.min_interactions,
                can_advance=can_advance(self.parsed, status),
                error=e.message,
            )

        charge = self.coins.charge(self.user, generation.model, generation.usage, lesson_mode=self.lesson_mode)
        messages.append(ChatMessage(role="assistant", content=generation.content))
        interactions = self._record_interaction()
        status.interactions = interactions

        return ChatResult(
            messages=messages,
            interactions=interactions,
            min_interactions=self.content.min_interactions,
            can_advance=can_advance(self.parsed, status),
            coins_deducted=charge.coins_deducted,
            remaining_coins=charge.remaining,
        )
