"""
Metered AI tools: free-form generation and prompt evaluation outside lessons
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config import settings
from db import get_db
from models import User
from schemas.api_models import EvaluateRequest, EvaluationResponse, GenerateRequest, GenerateResponse, ModelInfo, Usage
from utils.auth_dependencies import get_current_user
from utils.coin_service import CoinService
from utils.llm_client import LLMClient, get_llm_client
from utils.pricing import (
    MODEL_PRICES,
    completion_token_limit,
    estimate_max_cost,
    estimate_min_cost,
    get_model_price,
)
from utils.structured_logging import get_logger, LogCategory

logger = get_logger("routes.ai")

router = APIRouter()


@router.get("/models", response_model=List[ModelInfo], summary="List Models")
async def list_models():
    """Allowed models with their prices and the coin cost of a full-length reply"""
    return [
        ModelInfo(
            id=model,
            input_price_per_million=price.input_per_million,
            output_price_per_million=price.output_per_million,
            completion_token_limit=completion_token_limit(model),
            max_cost_coins=estimate_max_cost(model),
        )
        for model, price in MODEL_PRICES.items()
    ]


@router.post("/generate", response_model=GenerateResponse, summary="Generate Content")
async def generate_content(
    body: GenerateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
):
    """
    ## Generate Content

    Free-tier users pay for the call in coins. The balance is checked before
    the model is called and the exact cost is deducted afterwards. Pro users
    are not charged.
    """
    model = body.model or settings.DEFAULT_CHAT_MODEL
    get_model_price(model)

    coins = CoinService(db)
    coins.ensure_can_afford(current_user, estimate_min_cost(model, body.prompt, body.system_prompt or ""))

    generation = llm.generate(body.prompt, model, body.system_prompt)
    charge = coins.charge(current_user, generation.model, generation.usage)

    logger.info(
        "Content generated",
        category=LogCategory.LLM,
        user_id=current_user.id,
        extra={"model": model, "coins_deducted": charge.coins_deducted},
    )

    return GenerateResponse(
        content=generation.content,
        model=generation.model,
        usage=Usage(input_tokens=generation.usage.input_tokens, output_tokens=generation.usage.output_tokens),
        coins_deducted=charge.coins_deducted,
        remaining_coins=charge.remaining,
    )


@router.post("/evaluate", response_model=EvaluationResponse, summary="Evaluate Prompt and Content")
async def evaluate_content(
    body: EvaluateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
):
    """Score a prompt and the content it produced against the task's criteria (1-10)"""
    model = settings.EVALUATION_MODEL
    coins = CoinService(db)
    coins.ensure_can_afford(
        current_user, estimate_min_cost(model, body.prompt + body.content, body.system_prompt or "")
    )

    evaluation, usage = llm.evaluate(
        body.prompt,
        body.content,
        body.task.description,
        body.task.criteria,
        system_prompt=body.system_prompt,
        model=model,
    )
    charge = coins.charge(current_user, model, usage)

    return EvaluationResponse(
        evaluation=evaluation.model_dump(),
        usage=Usage(input_tokens=usage.input_tokens, output_tokens=usage.output_tokens),
        coins_deducted=charge.coins_deducted,
        remaining_coins=charge.remaining,
    )
