"""
app/services/content_service.py

Purpose: Storefront content

- Home carousel banners (type1) and category banners (type2), one shared document
- Payment methods offered on the top-up screen
"""

from typing import Any, Dict, List, Optional

from app.core.exceptions import ValidationError
from app.core.logging import get_logger
from app.db.collections import BANNER_KINDS
from app.db.repository import Repository
from app.models.content import CategoryBanner, HomeBanner, PaymentMethod
from app.services.catalog_service import build_record

logger = get_logger(__name__)


class ContentService:

    def __init__(
        self,
        home_banners: Repository[HomeBanner],
        category_banners: Repository[CategoryBanner],
        payments: Repository[PaymentMethod],
    ):
        self.home_banners = home_banners
        self.category_banners = category_banners
        self.payments = payments

    def _banners(self, kind: str) -> Repository:
        if kind not in BANNER_KINDS:
            raise ValidationError(f"Unknown banner type: {kind}", details={"allowed": list(BANNER_KINDS)})
        return self.home_banners if kind == "type1" else self.category_banners

    # Banners

    async def list_banners(self) -> Dict[str, List[Any]]:
        return {
            "type1": await self.home_banners.list(),
            "type2": await self.category_banners.list(),
        }

    async def get_home_banners(self) -> List[HomeBanner]:
        return await self.home_banners.list()

    async def get_category_banners(self, category_id: Optional[str] = None) -> List[CategoryBanner]:
        if category_id is None:
            return await self.category_banners.list()
        return await self.category_banners.filter(lambda banner: banner.category_id == category_id)

    async def create_banner(self, kind: str, data: Dict[str, Any]):
        repository = self._banners(kind)
        return await repository.create(build_record(repository.model, data))

    async def delete_banner(self, kind: str, banner_id: str) -> bool:
        return await self._banners(kind).delete(banner_id)

    # Payment methods

    async def list_payment_methods(self) -> List[PaymentMethod]:
        return await self.payments.list()

    async def get_payment_method(self, payment_id: str) -> Optional[PaymentMethod]:
        return await self.payments.get(payment_id)

    async def create_payment_method(self, data: Dict[str, Any]) -> PaymentMethod:
        return await self.payments.create(build_record(PaymentMethod, data))

    async def update_payment_method(self, payment_id: str, changes: Dict[str, Any]) -> PaymentMethod:
        return await self.payments.update(payment_id, changes)

    async def delete_payment_method(self, payment_id: str) -> bool:
        return await self.payments.delete(payment_id)
