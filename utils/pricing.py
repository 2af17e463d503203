"""
Model price table and USD/coin conversion for metered AI calls.

Prices are USD per one million tokens. One coin is worth ``COIN_RATE_USD``.
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional

from config import settings
from utils.error_handling import UnknownModelError


@dataclass(frozen=True)
class ModelPrice:
    input_per_million: float
    output_per_million: float


@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    @classmethod
    def from_openai(cls, usage) -> "TokenUsage":
        if usage is None:
            return cls()
        return cls(
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        )

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(self.input_tokens + other.input_tokens, self.output_tokens + other.output_tokens)


MODEL_PRICES: Dict[str, ModelPrice] = {
    "gpt-5-2025-08-07": ModelPrice(1.25, 10.00),
    "gpt-5-mini-2025-08-07": ModelPrice(0.25, 2.00),
    "gpt-5-nano-2025-08-07": ModelPrice(0.05, 0.40),
    "gpt-4.1-2025-04-14": ModelPrice(2.00, 8.00),
    "gpt-4.1-mini-2025-04-14": ModelPrice(0.40, 1.60),
    "o3-2025-04-16": ModelPrice(2.00, 8.00),
    "o4-mini-2025-04-16": ModelPrice(1.10, 4.40),
    "gpt-4o": ModelPrice(2.50, 10.00),
    "gpt-4o-mini": ModelPrice(0.15, 0.60),
}

# Models that take max_completion_tokens and ignore temperature
COMPLETION_TOKEN_LIMITS: Dict[str, int] = {
    "gpt-5-2025-08-07": 8000,
    "gpt-5-mini-2025-08-07": 4000,
    "gpt-5-nano-2025-08-07": 3000,
    "gpt-4.1-2025-04-14": 4000,
    "gpt-4.1-mini-2025-04-14": 4000,
    "o3-2025-04-16": 6000,
    "o4-mini-2025-04-16": 6000,
}

LEGACY_MAX_TOKENS = 2000


def is_known_model(model: str) -> bool:
    return model in MODEL_PRICES


def get_model_price(model: str) -> ModelPrice:
    try:
        return MODEL_PRICES[model]
    except KeyError:
        raise UnknownModelError(model)


def uses_completion_tokens(model: str) -> bool:
    return model in COMPLETION_TOKEN_LIMITS


def completion_token_limit(model: str) -> int:
    get_model_price(model)
    return COMPLETION_TOKEN_LIMITS.get(model, LEGACY_MAX_TOKENS)


def calculate_cost_usd(model: str, input_tokens: int, output_tokens: int, multiplier: Optional[float] = None) -> float:
    """Provider cost of a call in USD, scaled by the platform multiplier"""
    if multiplier is None:
        multiplier = settings.AI_COST_MULTIPLIER
    price = get_model_price(model)
    base = (input_tokens / 1_000_000) * price.input_per_million + (output_tokens / 1_000_000) * price.output_per_million
    return base * multiplier


def usd_to_coins(usd: float, coin_rate: Optional[float] = None) -> int:
    if coin_rate is None:
        coin_rate = settings.COIN_RATE_USD
    # Half-up, so a cost of exactly half a coin is charged as one
    return int(math.floor(usd / coin_rate + 0.5))


def calculate_coins(model: str, input_tokens: int, output_tokens: int, multiplier: Optional[float] = None) -> int:
    return usd_to_coins(calculate_cost_usd(model, input_tokens, output_tokens, multiplier))


def estimate_input_tokens(text: str) -> int:
    # Roughly four characters per token
    return math.ceil(len(text or "") / 4)


def estimate_min_cost(model: str, prompt: str, system_prompt: str = "", multiplier: Optional[float] = None) -> int:
    """Lower-bound coin cost of a call (input only), used for the balance check before generating"""
    input_tokens = estimate_input_tokens(prompt) + estimate_input_tokens(system_prompt)
    return max(1, calculate_coins(model, input_tokens, 0, multiplier))


def estimate_max_cost(model: str, prompt: str = "", system_prompt: str = "", multiplier: Optional[float] = None) -> int:
    """Coin cost if the reply uses the model's whole completion budget"""
    input_tokens = estimate_input_tokens(prompt) + estimate_input_tokens(system_prompt)
    return calculate_coins(model, input_tokens, completion_token_limit(model), multiplier)
