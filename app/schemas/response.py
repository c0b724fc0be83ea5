"""
app/schemas/response.py

Purpose: Error body shared by every exception handler
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ErrorResponse(BaseModel):
    """
    {"error": message, "code": machine-readable code, "details": optional context}
    """
    error: str
    code: str
    details: Optional[Any] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Insufficient balance",
                "code": "INSUFFICIENT_BALANCE",
                "details": {"balance": 3000, "required": 4000, "attempts_left": 4},
            }
        }
    )
