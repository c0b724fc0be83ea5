"""
app/models/content.py

Purpose: Storefront content records

- Shop settings singleton
- Home carousel (type1) and category (type2) banners
- Payment methods shown on the top-up screen
"""

from datetime import datetime
from typing import List

from pydantic import Field

from app.models.base import Record
from utils.constants import DEFAULT_ANNOUNCEMENT, DEFAULT_THEME, DEFAULT_WEBSITE_NAME
from utils.shop_utils import generate_id
from utils.time_utils import utcnow


class ShopSettings(Record):
    website_name: str = DEFAULT_WEBSITE_NAME
    website_logo: str = ""
    announcement: str = DEFAULT_ANNOUNCEMENT
    emoji_triggers: List[str] = Field(default_factory=list)
    theme: str = DEFAULT_THEME
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class HomeBanner(Record):
    id: str = Field(default_factory=generate_id)
    image: str
    created_at: datetime = Field(default_factory=utcnow)


class CategoryBanner(Record):
    id: str = Field(default_factory=generate_id)
    category_id: str
    image: str
    description: str = ""
    created_at: datetime = Field(default_factory=utcnow)


class PaymentMethod(Record):
    id: str = Field(default_factory=generate_id)
    name: str
    address: str = ""
    account_name: str = ""
    note: str = ""
    icon: str = ""
    created_at: datetime = Field(default_factory=utcnow)
