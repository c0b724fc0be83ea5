"""
app/models/base.py

Purpose: Base record model

- camelCase keys in stored documents, snake_case attributes in Python
- Unknown stored keys are kept and written back untouched
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Record(BaseModel):
    """
    Base class for every record stored inside a collection document.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_document(self) -> Dict[str, Any]:
        """Serializes the record the way it is stored (camelCase, ISO timestamps)."""
        return self.model_dump(mode="json", by_alias=True)
