"""
app/core/security.py

Purpose: Telegram Mini App init data verification

- Recomputes the HMAC-SHA256 signature over the data-check string
- Secret key derived from the bot token with the "WebAppData" key
- Rejects payloads older than the configured max age (24h by default)
"""

import hashlib
import hmac
import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl

from app.core.exceptions import AuthenticationError
from app.core.logging import get_logger

logger = get_logger(__name__)

WEB_APP_DATA_KEY = b"WebAppData"


@dataclass
class InitData:
    """Verified Mini App launch parameters."""
    user: Dict[str, Any]
    auth_date: int
    query_id: Optional[str] = None
    params: Dict[str, str] = field(default_factory=dict)

    @property
    def telegram_id(self) -> str:
        return str(self.user.get("id", ""))


def build_data_check_string(params: Dict[str, str]) -> str:
    """
    Sorted `key=value` lines joined with newlines, `hash` excluded.
    """
    return "\n".join(f"{key}={params[key]}" for key in sorted(params) if key != "hash")


def compute_hash(params: Dict[str, str], bot_token: str) -> str:
    secret_key = hmac.new(WEB_APP_DATA_KEY, bot_token.encode(), hashlib.sha256).digest()
    return hmac.new(
        secret_key,
        build_data_check_string(params).encode(),
        hashlib.sha256,
    ).hexdigest()


def verify_init_data(
    init_data: Optional[str],
    bot_token: Optional[str],
    max_age_seconds: int = 86400,
    now: Optional[float] = None,
) -> InitData:
    """
    Verifies a Mini App init data string.

    Args:
        init_data: URL-encoded launch parameters as provided by the Mini App
        bot_token: Bot token the Mini App belongs to
        max_age_seconds: Oldest acceptable auth_date
        now: Current unix time (defaults to time.time())

    Returns:
        Parsed InitData

    Raises:
        AuthenticationError: Missing data, bad signature or expired auth date
    """
    if not init_data:
        raise AuthenticationError("Missing initData")
    if not bot_token:
        logger.error("Init data verification attempted without a bot token")
        raise AuthenticationError("Bot token not configured")

    params = dict(parse_qsl(init_data, keep_blank_values=True))
    received_hash = params.pop("hash", None)
    if not received_hash:
        raise AuthenticationError("Missing hash")

    expected_hash = compute_hash(params, bot_token)
    if not hmac.compare_digest(expected_hash.encode(), received_hash.encode()):
        logger.warning("Init data signature mismatch")
        raise AuthenticationError("Invalid hash")

    try:
        auth_date = int(params.get("auth_date", "0"))
    except ValueError as e:
        raise AuthenticationError("Invalid auth_date") from e

    now = time.time() if now is None else now
    if now - auth_date > max_age_seconds:
        raise AuthenticationError("Auth data expired", details={"auth_date": auth_date})

    try:
        user = json.loads(params["user"]) if params.get("user") else {}
    except ValueError as e:
        raise AuthenticationError("Invalid user payload") from e

    return InitData(
        user=user,
        auth_date=auth_date,
        query_id=params.get("query_id"),
        params=params,
    )
