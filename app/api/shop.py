"""
app/api/shop.py

Purpose: Storefront endpoints for the Mini App

- Every route requires verified init data (X-Telegram-Init-Data)
- Session bootstrap, catalog browsing, purchases and top-ups
- Admin notifications are scheduled as background tasks
"""

from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends

from app.api.deps import get_init_data, get_services
from app.core.exceptions import ExternalServiceError, ResourceNotFoundError, UserBannedError
from app.core.logging import get_logger
from app.core.security import InitData
from app.schemas.shop import OtpResponse, PlaceOrderRequest, TopupRequest
from app.services.container import ShopServices

logger = get_logger(__name__)
router = APIRouter(prefix="/shop")


def profile_from_init_data(init_data: InitData) -> Dict[str, Any]:
    """Maps the Mini App user object onto user profile fields."""
    user = init_data.user
    return {
        "telegram_id": init_data.telegram_id,
        "username": user.get("username"),
        "first_name": user.get("first_name"),
        "last_name": user.get("last_name"),
        "photo_url": user.get("photo_url"),
        "is_premium": bool(user.get("is_premium", False)),
    }


async def ensure_not_banned(services: ShopServices, telegram_id: str):
    ban = await services.bans.get_ban(telegram_id, use_cache=False)
    if ban is not None:
        raise UserBannedError(details={"reason": ban.reason, "bannedAt": ban.banned_at.isoformat()})


@router.get("/session")
async def session(
    init_data: InitData = Depends(get_init_data),
    services: ShopServices = Depends(get_services),
):
    """
    Launch payload: registers the user and returns what the home screen renders.
    """
    await ensure_not_banned(services, init_data.telegram_id)
    user = await services.users.register_user(profile_from_init_data(init_data))

    return {
        "user": user,
        "settings": await services.settings.get_settings(),
        "categories": await services.catalog.list_categories(),
        "banners": await services.content.get_home_banners(),
        "paymentMethods": await services.content.list_payment_methods(),
    }


@router.get("/me")
async def me(
    init_data: InitData = Depends(get_init_data),
    services: ShopServices = Depends(get_services),
):
    user = await services.users.get_user_by_telegram_id(init_data.telegram_id, use_cache=False)
    if user is None:
        raise ResourceNotFoundError("User not found")
    return user


@router.get("/categories/{category_id}")
async def category_detail(
    category_id: str,
    init_data: InitData = Depends(get_init_data),
    services: ShopServices = Depends(get_services),
):
    """
    Category page: products, purchase form fields and category banners.
    """
    category = await services.catalog.get_category(category_id)
    if category is None:
        raise ResourceNotFoundError("Category not found", details={"id": category_id})

    return {
        "category": category,
        "products": await services.catalog.get_products_by_category(category_id),
        "inputTables": await services.catalog.get_input_tables_by_category(category_id),
        "banners": await services.content.get_category_banners(category_id),
    }


@router.post("/otp", response_model=OtpResponse, response_model_by_alias=True)
async def request_otp(
    init_data: InitData = Depends(get_init_data),
    services: ShopServices = Depends(get_services),
):
    """
    Sends a purchase confirmation code through the bot.
    """
    await ensure_not_banned(services, init_data.telegram_id)
    code = services.otp.issue(init_data.telegram_id)
    sent = await services.notifier.send_otp(
        init_data.telegram_id, code, services.config.OTP_VALIDITY_MINUTES
    )
    if not sent:
        services.otp.discard(init_data.telegram_id)
        raise ExternalServiceError("Could not deliver the confirmation code")
    return OtpResponse(sent=True, validity_minutes=services.config.OTP_VALIDITY_MINUTES)


@router.post("/orders", status_code=201)
async def place_order(
    body: PlaceOrderRequest,
    background_tasks: BackgroundTasks,
    init_data: InitData = Depends(get_init_data),
    services: ShopServices = Depends(get_services),
):
    order = await services.orders.place_order(
        init_data.telegram_id,
        body.product_id,
        input_values=body.input_values,
        otp=body.otp,
    )
    user = await services.users.get_user_by_telegram_id(init_data.telegram_id)
    background_tasks.add_task(services.notifier.notify_new_order, order, user)
    return {"order": order, "balance": user.balance if user else None}


@router.get("/orders")
async def my_orders(
    init_data: InitData = Depends(get_init_data),
    services: ShopServices = Depends(get_services),
):
    return await services.orders.get_orders_by_user(init_data.telegram_id)


@router.post("/topups", status_code=201)
async def request_topup(
    body: TopupRequest,
    background_tasks: BackgroundTasks,
    init_data: InitData = Depends(get_init_data),
    services: ShopServices = Depends(get_services),
):
    topup = await services.topups.create_topup(
        init_data.telegram_id,
        body.amount,
        body.payment_method,
        proof_image=body.proof_image,
    )
    user = await services.users.get_user_by_telegram_id(init_data.telegram_id)
    background_tasks.add_task(services.notifier.notify_new_topup, topup, user)
    return topup


@router.get("/topups")
async def my_topups(
    init_data: InitData = Depends(get_init_data),
    services: ShopServices = Depends(get_services),
):
    return await services.topups.get_topups_by_user(init_data.telegram_id)
