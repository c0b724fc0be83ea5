"""
app/services/container.py

Purpose: Wires services for one application instance

- Storage client, repositories and services built from a Settings object
- Owned by the FastAPI app (app.state.services), never a module global
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from app.core.config import Settings
from app.db.collections import Collection, all_bin_ids, bin_id
from app.db.jsonbin import JsonBinClient
from app.db.repository import Repository, SingletonDocument
from app.models.catalog import Category, InputTableDefinition, Product
from app.models.content import CategoryBanner, HomeBanner, PaymentMethod, ShopSettings
from app.models.order import Order, Topup
from app.models.user import BannedUser, User
from app.services.ban_service import BanService
from app.services.cache_refresher import CacheRefresher
from app.services.catalog_service import CatalogService
from app.services.content_service import ContentService
from app.services.notification_service import TelegramNotifier
from app.services.order_service import OrderService
from app.services.otp_service import OtpService
from app.services.settings_service import SettingsService
from app.services.stats_service import StatsService
from app.services.topup_service import TopupService
from app.services.user_service import UserService


@dataclass
class ShopServices:
    config: Settings
    storage: JsonBinClient
    notifier: TelegramNotifier
    settings: SettingsService
    users: UserService
    bans: BanService
    catalog: CatalogService
    content: ContentService
    orders: OrderService
    topups: TopupService
    stats: StatsService
    otp: OtpService
    refresher: CacheRefresher


def build_services(
    config: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ShopServices:
    """
    Builds the service graph.

    Args:
        config: Application settings
        transport: Optional httpx transport shared by the store and bot clients
    """
    storage = JsonBinClient(
        base_url=config.JSONBIN_BASE_URL,
        api_key=config.JSONBIN_API_KEY,
        timeout=config.JSONBIN_TIMEOUT,
        cache_ttl=config.CACHE_TTL_SECONDS,
        versioning=config.JSONBIN_VERSIONING,
        transport=transport,
    )

    def repository(collection: Collection, model, entity: str, key: Optional[str] = None) -> Repository:
        return Repository(
            storage,
            collection,
            bin_id(collection, config),
            model,
            entity,
            key=key,
            max_retries=config.MAX_WRITE_RETRIES,
        )

    notifier = TelegramNotifier(
        bot_token=config.BOT_TOKEN,
        admin_chat_id=config.ADMIN_TELEGRAM_ID,
        api_base=config.TELEGRAM_API_BASE,
        timeout=config.TELEGRAM_TIMEOUT,
        broadcast_delay=config.BROADCAST_DELAY_SECONDS,
        currency=config.DEFAULT_CURRENCY,
        transport=transport,
    )

    settings = SettingsService(SingletonDocument(
        storage, bin_id(Collection.MAIN, config), ShopSettings, "Settings",
        max_retries=config.MAX_WRITE_RETRIES,
    ))
    users = UserService(repository(Collection.USERS, User, "User"))
    bans = BanService(
        repository(Collection.BANNED, BannedUser, "Ban"),
        users,
        banned_by=config.ADMIN_TELEGRAM_ID,
    )
    catalog = CatalogService(
        repository(Collection.CATEGORIES, Category, "Category"),
        repository(Collection.PRODUCTS, Product, "Product"),
        repository(Collection.INPUT_TABLES, InputTableDefinition, "Input table"),
        default_currency=config.DEFAULT_CURRENCY,
    )
    content = ContentService(
        repository(Collection.BANNERS, HomeBanner, "Banner", key="type1"),
        repository(Collection.BANNERS, CategoryBanner, "Banner", key="type2"),
        repository(Collection.PAYMENTS, PaymentMethod, "Payment method"),
    )
    otp = OtpService(validity_minutes=config.OTP_VALIDITY_MINUTES)
    orders = OrderService(
        repository(Collection.ORDERS, Order, "Order"),
        users,
        bans,
        catalog,
        notifier,
        otp,
        max_failed_attempts=config.MAX_FAILED_PURCHASE_ATTEMPTS,
        otp_required=config.OTP_REQUIRED,
    )
    topups = TopupService(repository(Collection.TOPUPS, Topup, "Topup"), users, bans)
    stats = StatsService(users, orders, topups, catalog, content, bans, settings)
    refresher = CacheRefresher(
        storage,
        all_bin_ids(config).values(),
        interval=config.CACHE_REFRESH_INTERVAL_SECONDS,
        housekeeping=otp.purge_expired,
    )

    return ShopServices(
        config=config,
        storage=storage,
        notifier=notifier,
        settings=settings,
        users=users,
        bans=bans,
        catalog=catalog,
        content=content,
        orders=orders,
        topups=topups,
        stats=stats,
        otp=otp,
        refresher=refresher,
    )
