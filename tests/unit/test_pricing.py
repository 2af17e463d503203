from types import SimpleNamespace

import pytest

from utils.error_handling import UnknownModelError
from utils.pricing import (
    MODEL_PRICES,
    TokenUsage,
    calculate_coins,
    calculate_cost_usd,
    completion_token_limit,
    estimate_input_tokens,
    estimate_max_cost,
    estimate_min_cost,
    get_model_price,
    usd_to_coins,
    uses_completion_tokens,
)


def test_every_priced_model_has_a_token_limit():
    for model in MODEL_PRICES:
        assert completion_token_limit(model) > 0


def test_unknown_model_rejected():
    with pytest.raises(UnknownModelError):
        get_model_price("gpt-imaginary")
    with pytest.raises(UnknownModelError):
        calculate_cost_usd("gpt-imaginary", 10, 10)


def test_request_shape_by_model_family():
    assert uses_completion_tokens("gpt-5-mini-2025-08-07")
    assert completion_token_limit("gpt-5-2025-08-07") == 8000
    assert not uses_completion_tokens("gpt-4o-mini")
    assert completion_token_limit("gpt-4o-mini") == 2000


def test_cost_in_usd():
    # 1M input at $0.15 + 1M output at $0.60, no markup
    assert calculate_cost_usd("gpt-4o-mini", 1_000_000, 1_000_000, multiplier=1) == pytest.approx(0.75)
    assert calculate_cost_usd("gpt-4o-mini", 1_000_000, 1_000_000, multiplier=3) == pytest.approx(2.25)


def test_multiplier_defaults_to_settings():
    assert calculate_cost_usd("gpt-4o", 1000, 0) == pytest.approx(0.0025 * 3)


def test_usd_to_coins_rounds_half_up():
    assert usd_to_coins(0.5, coin_rate=1) == 1
    assert usd_to_coins(2.5, coin_rate=1) == 3
    assert usd_to_coins(0.0004) == 0
    assert usd_to_coins(1.0) == 1000


def test_coins_for_a_typical_call():
    # gpt-4o: (2000 * 2.50 + 500 * 10.00) / 1M = $0.01, x3 = $0.03 -> 30 coins
    assert calculate_coins("gpt-4o", 2000, 500) == 30


def test_estimates():
    assert estimate_input_tokens("") == 0
    assert estimate_input_tokens("abcde") == 2
    # Tiny prompts still cost at least a coin up front
    assert estimate_min_cost("gpt-4o-mini", "hi") == 1
    assert estimate_max_cost("gpt-4o-mini") == calculate_coins("gpt-4o-mini", 0, 2000)
    assert estimate_max_cost("gpt-5-2025-08-07") > estimate_min_cost("gpt-5-2025-08-07", "hello")


def test_token_usage_from_openai():
    usage = TokenUsage.from_openai(SimpleNamespace(prompt_tokens=12, completion_tokens=30))
    assert usage == TokenUsage(12, 30)
    assert TokenUsage.from_openai(None) == TokenUsage()
    assert usage + TokenUsage(1, 2) == TokenUsage(13, 32)
