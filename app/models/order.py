"""
app/models/order.py

Purpose: Order and top-up records

- Denormalized product/category snapshot taken at purchase time
- Captured input field values
- Processing status and audit fields
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import Field, field_validator

from app.models.base import Record
from app.models.status import ProcessingStatus
from utils.shop_utils import generate_id, generate_order_id
from utils.time_utils import utcnow
from utils.validation_utils import normalize_telegram_id


class Order(Record):
    id: str = Field(default_factory=generate_id)
    order_id: str = Field(default_factory=generate_order_id)
    user_id: str
    telegram_id: str
    product_id: str
    product_name: str
    category_id: Optional[str] = None
    category_name: str = ""
    amount: int
    currency: str = "MMK"
    input_values: Dict[str, str] = Field(default_factory=dict)
    status: ProcessingStatus = ProcessingStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    processed_at: Optional[datetime] = None
    processed_by: Optional[str] = None

    @field_validator("telegram_id", mode="before")
    @classmethod
    def coerce_telegram_id(cls, v):
        return normalize_telegram_id(v)


class Topup(Record):
    id: str = Field(default_factory=generate_id)
    user_id: str
    telegram_id: str
    amount: int
    payment_method: str
    proof_image: str = ""
    status: ProcessingStatus = ProcessingStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    processed_at: Optional[datetime] = None
    processed_by: Optional[str] = None

    @field_validator("telegram_id", mode="before")
    @classmethod
    def coerce_telegram_id(cls, v):
        return normalize_telegram_id(v)
