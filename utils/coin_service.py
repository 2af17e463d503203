"""
Coin balances and per-call AI usage metering.

Free-tier users pay for AI calls from their coin balance. Pro users and calls
made inside a lesson are logged with their real cost but nothing is deducted.
"""

from dataclasses import dataclass, asdict
from typing import Optional

from sqlalchemy.orm import Session

from config import settings
from models import User, UserCoins, AIUsageLog
from utils.error_handling import InsufficientCoinsError, safe_database_operation
from utils.events import event_bus, CoinsChanged
from utils.pricing import TokenUsage, calculate_cost_usd, usd_to_coins
from utils.structured_logging import get_logger, LogCategory

logger = get_logger("billing")


@dataclass
class ChargeResult:
    cost_usd: float
    coins: int  # cost of the call in coins
    coins_deducted: int  # what was actually taken; 0 for pro and lesson mode
    remaining: Optional[int]

    def to_dict(self):
        return asdict(self)


class CoinService:
    def __init__(self, db: Session):
        self.db = db

    def _get_or_create(self, user: User) -> UserCoins:
        coins = self.db.query(UserCoins).filter(UserCoins.user_id == user.id).first()
        if coins is None:
            coins = UserCoins(user_id=user.id, total_coins=settings.STARTING_COINS, coins_spent=0)
            with safe_database_operation(self.db, "create coin balance"):
                self.db.add(coins)
                self.db.commit()
                self.db.refresh(coins)
            logger.info(
                "Coin balance created",
                category=LogCategory.BILLING,
                user_id=user.id,
                extra={"starting_coins": settings.STARTING_COINS},
            )
        return coins

    def get_balance(self, user: User) -> UserCoins:
        return self._get_or_create(user)

    def is_pro(self, user: User) -> bool:
        subscription = user.subscription
        return bool(subscription and subscription.is_pro)

    def bypasses_billing(self, user: User, lesson_mode: bool) -> bool:
        return lesson_mode or self.is_pro(user)

    def ensure_can_afford(self, user: User, estimated_coins: int, lesson_mode: bool = False) -> None:
        """Reject before any generation when the balance cannot cover the estimate"""
        if self.bypasses_billing(user, lesson_mode):
            return
        balance = self._get_or_create(user)
        if balance.total_coins <= 0 or balance.total_coins < estimated_coins:
            logger.warning(
                "Insufficient coins for AI call",
                category=LogCategory.BILLING,
                user_id=user.id,
                extra={"required": estimated_coins, "available": balance.total_coins},
            )
            raise InsufficientCoinsError(required=max(estimated_coins, 1), available=balance.total_coins)

    def charge(self, user: User, model: str, usage: TokenUsage, lesson_mode: bool = False) -> ChargeResult:
        """
        Log a completed AI call and debit its cost.

        The full cost is deducted or nothing is: a free-tier balance below the
        cost raises InsufficientCoinsError and leaves the balance untouched.
        """
        multiplier = settings.AI_COST_MULTIPLIER
        cost_usd = calculate_cost_usd(model, usage.input_tokens, usage.output_tokens, multiplier)
        coins = usd_to_coins(cost_usd)
        bypass = self.bypasses_billing(user, lesson_mode)
        balance = self._get_or_create(user)

        if not bypass and balance.total_coins < coins:
            raise InsufficientCoinsError(required=coins, available=balance.total_coins)

        deducted = 0 if bypass else coins

        with safe_database_operation(self.db, "charge AI usage"):
            self.db.add(
                AIUsageLog(
                    user_id=user.id,
                    model=model,
                    input_tokens=usage.input_tokens,
                    output_tokens=usage.output_tokens,
                    cost_usd=cost_usd,
                    multiplier=multiplier,
                    coins_deducted=deducted,
                )
            )
            if deducted:
                balance.total_coins -= deducted
                balance.coins_spent += deducted
            self.db.commit()
            self.db.refresh(balance)

        logger.info(
            f"AI usage charged: {deducted} coins",
            category=LogCategory.BILLING,
            user_id=user.id,
            extra={
                "model": model,
                "input_tokens": usage.input_tokens,
                "output_tokens": usage.output_tokens,
                "cost_usd": cost_usd,
                "coins": coins,
                "lesson_mode": lesson_mode,
                "pro": bypass and not lesson_mode,
            },
        )

        if deducted:
            event_bus.publish(CoinsChanged(user_id=user.id, total_coins=balance.total_coins, delta=-deducted))

        return ChargeResult(cost_usd=cost_usd, coins=coins, coins_deducted=deducted, remaining=balance.total_coins)

    def credit(self, user: User, amount: int, commit: bool = True) -> UserCoins:
        """Add coins to the balance, e.g. as a lesson reward.

        With ``commit=False`` the caller owns the transaction and publishes
        CoinsChanged itself once it has committed.
        """
        balance = self._get_or_create(user)
        if amount <= 0:
            return balance
        balance.total_coins += amount
        if commit:
            with safe_database_operation(self.db, "credit coins"):
                self.db.commit()
                self.db.refresh(balance)
            event_bus.publish(CoinsChanged(user_id=user.id, total_coins=balance.total_coins, delta=amount))
        return balance
