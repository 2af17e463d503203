"""
Lesson block interaction endpoints: practice answers, AI chat and graded tasks
"""

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from db import get_db
from models import BlockType, LessonBlock, User, UserLessonBlockAttempt
from schemas.api_models import BlockMessageRequest, PracticeAnswerRequest, PracticeAnswerResponse
from utils.auth_dependencies import get_current_user
from utils.blocks import PracticeContent, check_practice_answer, parse_block
from utils.error_handling import LessonLockedError, safe_database_operation, validate_resource_exists
from utils.llm_client import LLMClient, get_llm_client
from utils.progress_service import get_lesson_state
from utils.structured_logging import get_logger, LogCategory
from utils.task_evaluation import TaskEvaluationWorkflow

logger = get_logger("routes.blocks")

router = APIRouter()


def _load_block(db: Session, block_id: int, user: User) -> LessonBlock:
    block = db.query(LessonBlock).filter(LessonBlock.id == block_id).first()
    validate_resource_exists(block, "Block", block_id)

    state = get_lesson_state(db, user, block.lesson)
    if not state.unlocked:
        raise LessonLockedError("Complete the previous lesson to unlock this one")
    return block


def _chatbot_workflow(db: Session, block: LessonBlock, user: User, llm: LLMClient) -> TaskEvaluationWorkflow:
    if block.block_type != BlockType.CHATBOT.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Block is not a chatbot block")
    try:
        return TaskEvaluationWorkflow(db, user, block, llm=llm)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post(
    "/{block_id}/answer",
    response_model=PracticeAnswerResponse,
    summary="Answer Practice Question",
)
async def answer_practice(
    body: PracticeAnswerRequest,
    block_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    ## Answer a Practice Quiz

    Any answer completes the block for navigation purposes; the response says
    whether it was right and reveals the explanation.
    """
    block = _load_block(db, block_id, current_user)
    parsed = parse_block(block)
    if not isinstance(parsed.content, PracticeContent):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Block is not a practice block")

    try:
        is_correct, explanation = check_practice_answer(parsed.content, body.option_index)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    with safe_database_operation(db, "record practice answer"):
        attempt = (
            db.query(UserLessonBlockAttempt)
            .filter(
                UserLessonBlockAttempt.user_id == current_user.id,
                UserLessonBlockAttempt.lesson_block_id == block.id,
            )
            .first()
        )
        if attempt is None:
            attempt = UserLessonBlockAttempt(user_id=current_user.id, lesson_block_id=block.id)
            db.add(attempt)
        attempt.attempts_used = (attempt.attempts_used or 0) + 1
        attempt.completed = True
        attempt.feedback_data = {"selected": body.option_index, "correct": is_correct}
        db.commit()

    logger.info(
        f"Practice answer for block {block.id}: {'correct' if is_correct else 'incorrect'}",
        category=LogCategory.PROGRESS,
        user_id=current_user.id,
    )

    return PracticeAnswerResponse(
        block_id=block.id,
        correct=is_correct,
        correct_index=parsed.content.correct,
        explanation=explanation,
    )


@router.post("/{block_id}/chat", summary="Chat With Lesson Assistant")
async def chat_with_block(
    body: BlockMessageRequest,
    block_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
):
    """Free conversation in a chatbot block without a task. Counts interactions toward the block's minimum."""
    block = _load_block(db, block_id, current_user)
    workflow = _chatbot_workflow(db, block, current_user, llm)
    if workflow.task is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="This block has a task; submit it to /task instead"
        )

    result = workflow.chat(body.prompt, [m.model_dump() for m in body.context])
    return result.to_dict()


@router.post("/{block_id}/task", summary="Submit Task Attempt")
async def submit_task(
    body: BlockMessageRequest,
    block_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
):
    """
    ## Submit a Prompt for a Graded Task

    The prompt is sent to the block's model and the reply is scored from 1 to
    10. A score of 8 or more (or an explicit success verdict) completes the
    task. Each scored submission uses one attempt; failed generations and
    failed evaluations do not.
    """
    block = _load_block(db, block_id, current_user)
    workflow = _chatbot_workflow(db, block, current_user, llm)
    if workflow.task is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This block has no task")

    result = workflow.submit(body.prompt, [m.model_dump() for m in body.context])
    return result.to_dict()


@router.get("/{block_id}/attempts", summary="Get Attempt Status")
async def get_attempt_status(
    block_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
):
    block = _load_block(db, block_id, current_user)
    workflow = _chatbot_workflow(db, block, current_user, llm)
    return workflow.status()
