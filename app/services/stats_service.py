"""
app/services/stats_service.py

Purpose: Admin dashboard aggregates

- Headline counters computed from full collection reads
- Dashboard snapshot fetches every collection concurrently
"""

import asyncio
from typing import Any, Dict

from app.core.logging import get_logger
from app.models.status import ProcessingStatus
from app.services.catalog_service import CatalogService
from app.services.content_service import ContentService
from app.services.ban_service import BanService
from app.services.order_service import OrderService
from app.services.settings_service import SettingsService
from app.services.topup_service import TopupService
from app.services.user_service import UserService

logger = get_logger(__name__)


class StatsService:

    def __init__(
        self,
        users: UserService,
        orders: OrderService,
        topups: TopupService,
        catalog: CatalogService,
        content: ContentService,
        bans: BanService,
        settings: SettingsService,
    ):
        self.users = users
        self.orders = orders
        self.topups = topups
        self.catalog = catalog
        self.content = content
        self.bans = bans
        self.settings = settings

    async def get_stats(self) -> Dict[str, int]:
        """
        Headline counters.

        totalRevenue sums approved order amounts.
        """
        users, orders, topups, products, categories = await asyncio.gather(
            self.users.list_users(),
            self.orders.list_orders(),
            self.topups.list_topups(),
            self.catalog.list_products(),
            self.catalog.list_categories(),
        )
        approved = [order for order in orders if order.status == ProcessingStatus.APPROVED]
        return {
            "totalUsers": len(users),
            "totalOrders": len(orders),
            "pendingOrders": sum(1 for order in orders if order.status == ProcessingStatus.PENDING),
            "approvedOrders": len(approved),
            "totalRevenue": sum(order.amount for order in approved),
            "pendingTopups": sum(1 for topup in topups if topup.status == ProcessingStatus.PENDING),
            "totalProducts": len(products),
            "totalCategories": len(categories),
        }

    async def get_dashboard(self) -> Dict[str, Any]:
        """
        Everything the admin dashboard renders, fetched in parallel.
        """
        (
            stats, settings, users, orders, topups, categories,
            products, input_tables, banners, payments, banned,
        ) = await asyncio.gather(
            self.get_stats(),
            self.settings.get_settings(),
            self.users.list_users(),
            self.orders.list_orders(),
            self.topups.list_topups(),
            self.catalog.list_categories(),
            self.catalog.list_products(),
            self.catalog.list_input_tables(),
            self.content.list_banners(),
            self.content.list_payment_methods(),
            self.bans.list_banned_users(),
        )
        logger.debug("Dashboard snapshot assembled")
        return {
            "stats": stats,
            "settings": settings,
            "users": users,
            "orders": orders,
            "topups": topups,
            "categories": categories,
            "products": products,
            "inputTables": input_tables,
            "banners": banners,
            "payments": payments,
            "bannedUsers": banned,
        }
