"""
app/api/deps.py

Purpose: Request dependencies

- Service container lookup (owned by the app, not a global)
- Storefront identity from verified Mini App init data
- Admin password check
"""

import hmac
from typing import Optional

from fastapi import Depends, Header, Request

from app.core.exceptions import AuthenticationError
from app.core.logging import get_logger
from app.core.security import InitData, verify_init_data
from app.services.container import ShopServices

logger = get_logger(__name__)


def get_services(request: Request) -> ShopServices:
    return request.app.state.services


def get_init_data(
    x_telegram_init_data: Optional[str] = Header(default=None),
    services: ShopServices = Depends(get_services),
) -> InitData:
    """
    Verifies the `X-Telegram-Init-Data` header.
    """
    init_data = verify_init_data(
        x_telegram_init_data,
        services.config.BOT_TOKEN,
        max_age_seconds=services.config.INIT_DATA_MAX_AGE_SECONDS,
    )
    if not init_data.telegram_id:
        raise AuthenticationError("Init data carries no user")
    return init_data


def require_admin(
    x_admin_password: Optional[str] = Header(default=None),
    services: ShopServices = Depends(get_services),
) -> str:
    """
    Checks the `X-Admin-Password` header in constant time.

    Returns:
        The admin identity recorded as processedBy
    """
    expected = services.config.ADMIN_PASSWORD
    if not expected:
        logger.error("Admin request rejected: ADMIN_PASSWORD is not configured")
        raise AuthenticationError("Admin access is not configured")

    if not x_admin_password or not hmac.compare_digest(x_admin_password.encode(), expected.encode()):
        logger.warning("Admin request with a wrong password")
        raise AuthenticationError("Invalid admin password")

    return services.config.ADMIN_TELEGRAM_ID or "admin"
