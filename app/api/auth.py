"""
app/api/auth.py

Purpose: Mini App init data verification endpoint

- POST /auth/verify with {"initData": "..."}
- Replies {valid, user, authDate}; failures are 401 with the reason
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_services
from app.core.exceptions import AuthenticationError
from app.core.logging import get_logger
from app.core.security import verify_init_data
from app.schemas.shop import VerifyRequest, VerifyResponse
from app.services.container import ShopServices

logger = get_logger(__name__)
router = APIRouter()


@router.post("/auth/verify", response_model=VerifyResponse, response_model_by_alias=True)
async def verify(body: VerifyRequest, services: ShopServices = Depends(get_services)):
    """
    Verifies Telegram.WebApp.initData.
    """
    try:
        init_data = verify_init_data(
            body.init_data,
            services.config.BOT_TOKEN,
            max_age_seconds=services.config.INIT_DATA_MAX_AGE_SECONDS,
        )
    except AuthenticationError as e:
        status_code = 400 if e.message == "Missing initData" else 401
        return JSONResponse(
            status_code=status_code,
            content=VerifyResponse(valid=False, error=e.message).model_dump(by_alias=True, exclude_none=True),
        )

    logger.info("Init data verified", extra={"telegram_id": init_data.telegram_id})
    return VerifyResponse(valid=True, user=init_data.user, auth_date=init_data.auth_date)
