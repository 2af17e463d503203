import json
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Tuple

import openai
from openai import OpenAI
from pydantic import BaseModel, Field, ValidationError

from config import settings
from utils.error_handling import UpstreamModelError
from utils.pricing import TokenUsage, completion_token_limit, get_model_price, uses_completion_tokens
from utils.structured_logging import get_logger, LogCategory

logger = get_logger("llm")

LEGACY_TEMPERATURE = 0.7
EVALUATION_MAX_TOKENS = 1000

DEFAULT_GENERATION_SYSTEM_PROMPT = (
    "You are an expert content creator. Do exactly what the user asks and produce "
    "high-quality, professional content that matches the request."
)

DEFAULT_EVALUATION_SYSTEM_PROMPT = (
    "You are an expert at judging the quality of prompts and the content they produce. "
    "Always answer with valid JSON only, without any extra text."
)

DEFAULT_CRITERIA = [
    "Quality of the completed task",
    "Compliance with the requirements",
    "Creativity and originality",
]

FINISH_REASON_MESSAGES = {
    "length": "The model ran out of tokens before producing an answer. Try a shorter or simpler request.",
    "content_filter": "The response was blocked by the content filter. Try rephrasing your request.",
}


@lru_cache(maxsize=1)
def get_openai_client() -> OpenAI:
    return OpenAI(api_key=settings.OPENAI_API_KEY)


class TaskEvaluation(BaseModel):
    score: int = Field(..., ge=1, le=10)
    feedback: str
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    success: bool = False


FALLBACK_EVALUATION = TaskEvaluation(
    score=5,
    feedback="Could not get a detailed evaluation. The result looks reasonable, but it is worth trying again.",
    strengths=["The task was attempted"],
    improvements=["Try a more detailed prompt"],
)


@dataclass
class GenerationResult:
    content: str
    usage: TokenUsage
    model: str


def parse_evaluation(text: str) -> TaskEvaluation:
    """
    Parse the evaluator's reply into a TaskEvaluation.

    The model is asked for bare JSON but sometimes wraps it in prose or code
    fences, so the outermost {...} span is used. Anything unparseable yields
    FALLBACK_EVALUATION instead of an error.
    """
    match = re.search(r"\{[\s\S]*\}", text or "")
    candidate = match.group(0) if match else (text or "")
    try:
        data = json.loads(candidate)
        if not isinstance(data, dict):
            raise ValueError("evaluation is not a JSON object")
        return TaskEvaluation.model_validate(data)
    except (ValueError, ValidationError) as e:
        logger.warning(
            "Failed to parse evaluation reply, using fallback",
            category=LogCategory.LLM,
            extra={"error": str(e), "reply_preview": (text or "")[:200]},
        )
        return FALLBACK_EVALUATION.model_copy(deep=True)


def build_evaluation_prompt(prompt: str, content: str, task_description: str, criteria: Optional[List[str]] = None) -> str:
    criteria = criteria or DEFAULT_CRITERIA
    numbered = "\n".join(f"{i}. {criterion}" for i, criterion in enumerate(criteria, 1))

    return f"""Task: {task_description}

User's prompt: "{prompt}"

Generated content:
\"\"\"
{content}
\"\"\"

Evaluation criteria:
{numbered}

Rate the quality of the prompt and the result on a scale from 1 to 10, where:
Score 8-10: excellent, the task is done at the highest level
Score 5-7: good, but can be improved
Score 1-4: needs substantial rework

Return the answer ONLY as JSON:
{{
  "score": number from 1 to 10,
  "feedback": "detailed feedback on the quality of the prompt and the result",
  "strengths": ["strength 1", "strength 2"],
  "improvements": ["improvement 1", "improvement 2"],
  "success": true if every criterion is met
}}"""


class LLMClient:
    """Thin wrapper over OpenAI chat completions with per-model request shaping"""

    def __init__(self, client: Optional[OpenAI] = None):
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = get_openai_client()
        return self._client

    def _request_params(self, model: str, max_tokens: Optional[int] = None) -> dict:
        limit = max_tokens or completion_token_limit(model)
        if uses_completion_tokens(model):
            return {"max_completion_tokens": limit}
        return {"max_tokens": limit, "temperature": LEGACY_TEMPERATURE}

    def _complete(self, model: str, messages: list, max_tokens: Optional[int] = None):
        get_model_price(model)
        try:
            return self.client.chat.completions.create(
                model=model,
                messages=messages,
                **self._request_params(model, max_tokens),
            )
        except openai.APIStatusError as e:
            logger.error(
                f"OpenAI API error: {e.status_code}",
                category=LogCategory.LLM,
                exception=e,
                extra={"model": model},
            )
            raise UpstreamModelError(f"OpenAI API error: {e.status_code} {e.message}", upstream_status=e.status_code)
        except openai.APIError as e:
            logger.error("OpenAI request failed", category=LogCategory.LLM, exception=e, extra={"model": model})
            raise UpstreamModelError(f"OpenAI request failed: {e}")

    def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        context: Optional[List[dict]] = None,
    ) -> GenerationResult:
        """
        Generate content for a user prompt.

        Args:
            prompt: The user's message
            model: Model id from the price table; defaults to DEFAULT_CHAT_MODEL
            system_prompt: Instructions for the assistant
            context: Earlier {role, content} messages of the conversation

        Returns:
            GenerationResult with the text, token usage and model
        """
        model = model or settings.DEFAULT_CHAT_MODEL
        messages = [{"role": "system", "content": system_prompt or DEFAULT_GENERATION_SYSTEM_PROMPT}]
        messages.extend(context or [])
        messages.append({"role": "user", "content": prompt})

        logger.info("Generating content", category=LogCategory.LLM, extra={"model": model})
        completion = self._complete(model, messages)

        if not completion.choices:
            raise UpstreamModelError("No response from OpenAI")

        choice = completion.choices[0]
        content = (choice.message.content or "").strip()
        if not content:
            message = FINISH_REASON_MESSAGES.get(choice.finish_reason, "Empty response from OpenAI")
            raise UpstreamModelError(message)

        return GenerationResult(content=content, usage=TokenUsage.from_openai(completion.usage), model=model)

    def evaluate(
        self,
        prompt: str,
        content: str,
        task_description: str,
        criteria: Optional[List[str]] = None,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
    ) -> Tuple[TaskEvaluation, TokenUsage]:
        """Score generated content against the task rubric"""
        model = model or settings.EVALUATION_MODEL
        messages = [
            {"role": "system", "content": system_prompt or DEFAULT_EVALUATION_SYSTEM_PROMPT},
            {"role": "user", "content": build_evaluation_prompt(prompt, content, task_description, criteria)},
        ]

        logger.info("Evaluating content", category=LogCategory.LLM, extra={"model": model})
        completion = self._complete(model, messages, max_tokens=EVALUATION_MAX_TOKENS)

        if not completion.choices or not completion.choices[0].message.content:
            raise UpstreamModelError("Empty evaluation response from OpenAI")

        evaluation = parse_evaluation(completion.choices[0].message.content)
        return evaluation, TokenUsage.from_openai(completion.usage)


def get_llm_client() -> LLMClient:
    """FastAPI dependency; tests override it with a fake client"""
    return LLMClient()
