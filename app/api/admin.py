"""
app/api/admin.py

Purpose: Admin dashboard endpoints

- Every route requires X-Admin-Password
- Users, bans, order and top-up processing
- Catalog, payment methods, banners and settings management
- Broadcast to every known user
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends

from app.api.deps import get_services, require_admin
from app.core.exceptions import ResourceNotFoundError
from app.core.logging import get_logger
from app.schemas.admin import (
    AnnouncementRequest,
    BalanceUpdateRequest,
    BanRequest,
    BannerCreate,
    BroadcastRequest,
    CategoryCreate,
    CategoryUpdate,
    InputTableCreate,
    InputTableUpdate,
    PaymentMethodCreate,
    PaymentMethodUpdate,
    ProductCreate,
    ProductUpdate,
    SettingsUpdate,
)
from app.services.container import ShopServices

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


def changes_of(body) -> dict:
    return body.model_dump(exclude_unset=True, exclude_none=True)


def deleted_or_404(deleted: bool, entity: str, record_id: str) -> dict:
    if not deleted:
        raise ResourceNotFoundError(f"{entity} not found", details={"id": record_id})
    return {"deleted": True, "id": record_id}


# ============================================================
# DASHBOARD
# ============================================================

@router.get("/dashboard")
async def dashboard(services: ShopServices = Depends(get_services)):
    return await services.stats.get_dashboard()


@router.get("/stats")
async def stats(services: ShopServices = Depends(get_services)):
    return await services.stats.get_stats()


@router.post("/cache/refresh")
async def refresh_cache(services: ShopServices = Depends(get_services)):
    refreshed = await services.refresher.run_cycle()
    return {"refreshed": refreshed}


# ============================================================
# USERS & BANS
# ============================================================

@router.get("/users")
async def list_users(services: ShopServices = Depends(get_services)):
    return await services.users.list_users()


@router.get("/users/{telegram_id}")
async def user_detail(telegram_id: str, services: ShopServices = Depends(get_services)):
    user = await services.users.get_user_by_telegram_id(telegram_id)
    if user is None:
        raise ResourceNotFoundError("User not found", details={"telegram_id": telegram_id})
    return {
        "user": user,
        "orders": await services.orders.get_orders_by_user(telegram_id),
        "topups": await services.topups.get_topups_by_user(telegram_id),
        "banned": await services.bans.is_user_banned(telegram_id),
    }


@router.post("/users/{telegram_id}/balance")
async def update_balance(
    telegram_id: str,
    body: BalanceUpdateRequest,
    services: ShopServices = Depends(get_services),
):
    return await services.users.update_user_balance(telegram_id, body.amount, body.operation)


@router.post("/users/{telegram_id}/ban")
async def ban_user(
    telegram_id: str,
    background_tasks: BackgroundTasks,
    body: Optional[BanRequest] = None,
    services: ShopServices = Depends(get_services),
):
    entry = await services.bans.ban_user(telegram_id, body.reason if body else None)
    background_tasks.add_task(services.notifier.notify_ban, entry.telegram_id, entry.reason)
    return entry


@router.post("/users/{telegram_id}/unban")
async def unban_user(
    telegram_id: str,
    background_tasks: BackgroundTasks,
    services: ShopServices = Depends(get_services),
):
    removed = await services.bans.unban_user(telegram_id)
    if removed:
        background_tasks.add_task(services.notifier.notify_unban, telegram_id)
    return {"unbanned": removed}


@router.get("/banned")
async def banned_users(services: ShopServices = Depends(get_services)):
    return await services.bans.list_banned_users()


# ============================================================
# ORDERS & TOP-UPS
# ============================================================

@router.get("/orders")
async def list_orders(status: Optional[str] = None, services: ShopServices = Depends(get_services)):
    if status:
        return await services.orders.get_orders_by_status(status)
    return await services.orders.list_orders()


@router.post("/orders/{order_id}/approve")
async def approve_order(
    order_id: str,
    background_tasks: BackgroundTasks,
    services: ShopServices = Depends(get_services),
    admin_id: str = Depends(require_admin),
):
    order = await services.orders.approve_order(order_id, processed_by=admin_id)
    background_tasks.add_task(services.notifier.notify_order_status, order)
    return order


@router.post("/orders/{order_id}/reject")
async def reject_order(
    order_id: str,
    background_tasks: BackgroundTasks,
    services: ShopServices = Depends(get_services),
    admin_id: str = Depends(require_admin),
):
    order = await services.orders.reject_order(order_id, processed_by=admin_id)
    background_tasks.add_task(services.notifier.notify_order_status, order)
    return order


@router.get("/topups")
async def list_topups(status: Optional[str] = None, services: ShopServices = Depends(get_services)):
    if status:
        return await services.topups.get_topups_by_status(status)
    return await services.topups.list_topups()


@router.post("/topups/{topup_id}/approve")
async def approve_topup(
    topup_id: str,
    background_tasks: BackgroundTasks,
    services: ShopServices = Depends(get_services),
    admin_id: str = Depends(require_admin),
):
    topup = await services.topups.approve_topup(topup_id, processed_by=admin_id)
    background_tasks.add_task(services.notifier.notify_topup_status, topup)
    return topup


@router.post("/topups/{topup_id}/reject")
async def reject_topup(
    topup_id: str,
    background_tasks: BackgroundTasks,
    services: ShopServices = Depends(get_services),
    admin_id: str = Depends(require_admin),
):
    topup = await services.topups.reject_topup(topup_id, processed_by=admin_id)
    background_tasks.add_task(services.notifier.notify_topup_status, topup)
    return topup


# ============================================================
# CATALOG
# ============================================================

@router.get("/categories")
async def list_categories(services: ShopServices = Depends(get_services)):
    return await services.catalog.list_categories()


@router.post("/categories", status_code=201)
async def create_category(body: CategoryCreate, services: ShopServices = Depends(get_services)):
    return await services.catalog.create_category(body.model_dump())


@router.patch("/categories/{category_id}")
async def update_category(category_id: str, body: CategoryUpdate, services: ShopServices = Depends(get_services)):
    return await services.catalog.update_category(category_id, changes_of(body))


@router.delete("/categories/{category_id}")
async def delete_category(category_id: str, services: ShopServices = Depends(get_services)):
    removed = await services.catalog.delete_category(category_id)
    return {"deleted": True, "id": category_id, "removed": removed}


@router.get("/products")
async def list_products(category_id: Optional[str] = None, services: ShopServices = Depends(get_services)):
    if category_id:
        return await services.catalog.get_products_by_category(category_id)
    return await services.catalog.list_products()


@router.post("/products", status_code=201)
async def create_product(body: ProductCreate, services: ShopServices = Depends(get_services)):
    return await services.catalog.create_product(changes_of(body))


@router.patch("/products/{product_id}")
async def update_product(product_id: str, body: ProductUpdate, services: ShopServices = Depends(get_services)):
    return await services.catalog.update_product(product_id, changes_of(body))


@router.delete("/products/{product_id}")
async def delete_product(product_id: str, services: ShopServices = Depends(get_services)):
    return deleted_or_404(await services.catalog.delete_product(product_id), "Product", product_id)


@router.get("/input-tables")
async def list_input_tables(category_id: Optional[str] = None, services: ShopServices = Depends(get_services)):
    if category_id:
        return await services.catalog.get_input_tables_by_category(category_id)
    return await services.catalog.list_input_tables()


@router.post("/input-tables", status_code=201)
async def create_input_table(body: InputTableCreate, services: ShopServices = Depends(get_services)):
    return await services.catalog.create_input_table(body.model_dump())


@router.patch("/input-tables/{table_id}")
async def update_input_table(table_id: str, body: InputTableUpdate, services: ShopServices = Depends(get_services)):
    return await services.catalog.update_input_table(table_id, changes_of(body))


@router.delete("/input-tables/{table_id}")
async def delete_input_table(table_id: str, services: ShopServices = Depends(get_services)):
    return deleted_or_404(await services.catalog.delete_input_table(table_id), "Input table", table_id)


# ============================================================
# PAYMENT METHODS & BANNERS
# ============================================================

@router.get("/payment-methods")
async def list_payment_methods(services: ShopServices = Depends(get_services)):
    return await services.content.list_payment_methods()


@router.post("/payment-methods", status_code=201)
async def create_payment_method(body: PaymentMethodCreate, services: ShopServices = Depends(get_services)):
    return await services.content.create_payment_method(body.model_dump())


@router.get("/payment-methods/{payment_id}")
async def payment_method_detail(payment_id: str, services: ShopServices = Depends(get_services)):
    method = await services.content.get_payment_method(payment_id)
    if method is None:
        raise ResourceNotFoundError("Payment method not found", details={"id": payment_id})
    return method


@router.patch("/payment-methods/{payment_id}")
async def update_payment_method(
    payment_id: str,
    body: PaymentMethodUpdate,
    services: ShopServices = Depends(get_services),
):
    return await services.content.update_payment_method(payment_id, changes_of(body))


@router.delete("/payment-methods/{payment_id}")
async def delete_payment_method(payment_id: str, services: ShopServices = Depends(get_services)):
    return deleted_or_404(await services.content.delete_payment_method(payment_id), "Payment method", payment_id)


@router.get("/banners")
async def list_banners(services: ShopServices = Depends(get_services)):
    return await services.content.list_banners()


@router.post("/banners/{kind}", status_code=201)
async def create_banner(kind: str, body: BannerCreate, services: ShopServices = Depends(get_services)):
    return await services.content.create_banner(kind, changes_of(body))


@router.delete("/banners/{kind}/{banner_id}")
async def delete_banner(kind: str, banner_id: str, services: ShopServices = Depends(get_services)):
    return deleted_or_404(await services.content.delete_banner(kind, banner_id), "Banner", banner_id)


# ============================================================
# SETTINGS & BROADCAST
# ============================================================

@router.get("/settings")
async def get_settings(services: ShopServices = Depends(get_services)):
    return await services.settings.get_settings()


@router.patch("/settings")
async def update_settings(body: SettingsUpdate, services: ShopServices = Depends(get_services)):
    return await services.settings.update_settings(changes_of(body))


@router.put("/announcement")
async def set_announcement(body: AnnouncementRequest, services: ShopServices = Depends(get_services)):
    return await services.settings.set_announcement(body.announcement)


@router.post("/broadcast")
async def broadcast(body: BroadcastRequest, services: ShopServices = Depends(get_services)):
    """
    Sends a message to every registered user. Runs inline so the tally can be returned.
    """
    users = await services.users.list_users()
    results = await services.notifier.broadcast(
        [user.telegram_id for user in users],
        body.message,
        photo=body.photo,
    )
    logger.info(f"Broadcast to {len(users)} user(s) requested by admin")
    return {"total": len(users), **results}
