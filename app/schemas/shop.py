"""
app/schemas/shop.py

Purpose: Storefront request/response bodies

- camelCase on the wire, matching the stored documents
- Init data verification, purchases and top-up requests
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VerifyRequest(CamelModel):
    init_data: Optional[str] = Field(default=None, description="Raw Telegram.WebApp.initData string")


class VerifyResponse(CamelModel):
    valid: bool
    user: Optional[Dict[str, Any]] = None
    auth_date: Optional[int] = None
    error: Optional[str] = None


class PlaceOrderRequest(CamelModel):
    product_id: str = Field(..., min_length=1)
    input_values: Dict[str, str] = Field(default_factory=dict)
    otp: Optional[str] = Field(default=None, description="Confirmation code sent by the bot")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "productId": "id_lrx3k2a9q8w7e6r5t",
                "inputValues": {"Player ID": "123456789", "Server ID": "2001"},
                "otp": "482913",
            }
        }
    )


class TopupRequest(CamelModel):
    amount: int = Field(..., gt=0)
    payment_method: str = Field(..., min_length=1)
    proof_image: str = Field(default="", description="Payment receipt image URL or data URI")


class OtpResponse(CamelModel):
    sent: bool
    validity_minutes: int
