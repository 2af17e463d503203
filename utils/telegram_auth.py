"""
Telegram Mini App ``initData`` verification.

See https://core.telegram.org/bots/webapps#validating-data-received-via-the-mini-app
"""

import hashlib
import hmac
import json
import time
from typing import Dict, Optional
from urllib.parse import parse_qsl

from pydantic import BaseModel, ValidationError

from config import settings
from utils.error_handling import AuthenticationError
from utils.structured_logging import get_logger, LogCategory

logger = get_logger("telegram_auth")

DEV_FAKE_HASH = "dev_fake_hash"
MAX_AUTH_AGE_SECONDS = 24 * 60 * 60


class TelegramUser(BaseModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    photo_url: Optional[str] = None
    language_code: Optional[str] = None


def parse_init_data(init_data: str) -> Dict[str, str]:
    return dict(parse_qsl(init_data, keep_blank_values=True))


def compute_init_data_hash(fields: Dict[str, str], bot_token: str) -> str:
    data_check_string = "\n".join(f"{key}={value}" for key, value in sorted(fields.items()) if key != "hash")
    secret_key = hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()
    return hmac.new(secret_key, data_check_string.encode(), hashlib.sha256).hexdigest()


def verify_telegram_init_data(
    init_data: str,
    bot_token: str,
    max_age_seconds: Optional[int] = MAX_AUTH_AGE_SECONDS,
    allow_dev_fallback: Optional[bool] = None,
) -> TelegramUser:
    """
    Check the signature of Mini App initData and return the Telegram user it carries.

    Raises:
        AuthenticationError: if the data is missing, unsigned, forged or stale
    """
    if allow_dev_fallback is None:
        allow_dev_fallback = settings.TELEGRAM_DEV_FALLBACK

    if not init_data:
        raise AuthenticationError("Missing initData")

    fields = parse_init_data(init_data)
    received_hash = fields.get("hash")
    if not received_hash:
        raise AuthenticationError("Invalid Telegram data")

    if received_hash == DEV_FAKE_HASH and allow_dev_fallback:
        logger.warning("Accepting unsigned Telegram initData (dev fallback)", category=LogCategory.AUTHENTICATION)
    else:
        if not bot_token:
            raise AuthenticationError("Telegram login is not configured")
        expected = compute_init_data_hash(fields, bot_token)
        if not hmac.compare_digest(expected, received_hash):
            raise AuthenticationError("Invalid Telegram data")

        if max_age_seconds is not None:
            try:
                auth_date = int(fields.get("auth_date", "0"))
            except ValueError:
                raise AuthenticationError("Invalid Telegram data")
            if time.time() - auth_date > max_age_seconds:
                raise AuthenticationError("Telegram data has expired")

    user_param = fields.get("user")
    if not user_param:
        raise AuthenticationError("No user data found")

    try:
        return TelegramUser.model_validate(json.loads(user_param))
    except (ValueError, ValidationError):
        raise AuthenticationError("Invalid Telegram user data")


def telegram_email(telegram_id: int) -> str:
    return f"telegram_{telegram_id}@ailearning.app"
