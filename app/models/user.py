"""
app/models/user.py

Purpose: User and ban records

- Telegram identity (string-normalized telegramId)
- Wallet balance and order/top-up counters
- Failed purchase tracking for fraud control
- Ban list entries
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from app.models.base import Record
from utils.shop_utils import generate_id
from utils.time_utils import utcnow
from utils.validation_utils import normalize_telegram_id


class BalanceOperation(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    SET = "set"


class User(Record):
    id: str = Field(default_factory=generate_id)
    telegram_id: str
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    photo_url: str = ""
    is_premium: bool = False
    balance: int = 0
    total_orders: int = 0
    approved_orders: int = 0
    rejected_orders: int = 0
    total_spent: int = 0
    total_topups: int = 0
    failed_purchase_attempts: int = 0
    last_failed_attempt: Optional[datetime] = None
    joined_at: datetime = Field(default_factory=utcnow)
    last_active: datetime = Field(default_factory=utcnow)

    @field_validator("telegram_id", mode="before")
    @classmethod
    def coerce_telegram_id(cls, v):
        return normalize_telegram_id(v)

    @field_validator("username", "first_name", "last_name", "photo_url", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or ""

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.username or self.telegram_id


class BannedUser(Record):
    id: str = Field(default_factory=generate_id)
    telegram_id: str
    username: str = ""
    first_name: str = ""
    reason: str
    banned_at: datetime = Field(default_factory=utcnow)
    banned_by: str = ""

    @field_validator("telegram_id", "banned_by", mode="before")
    @classmethod
    def coerce_ids(cls, v):
        return "" if v is None else str(v)

    @field_validator("username", "first_name", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or ""
