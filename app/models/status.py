"""
app/models/status.py

Purpose: Order and top-up status machine

- Single source of truth for processing statuses
- Transition validation (pending -> approved | rejected, both terminal)
"""

from enum import Enum
from typing import Dict, List

from app.core.exceptions import InvalidStateTransitionError


class ProcessingStatus(str, Enum):
    """
    Lifecycle of an order or a top-up request.
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


STATUS_TRANSITIONS: Dict[ProcessingStatus, List[ProcessingStatus]] = {
    ProcessingStatus.PENDING: [
        ProcessingStatus.APPROVED,
        ProcessingStatus.REJECTED,
    ],
    ProcessingStatus.APPROVED: [],
    ProcessingStatus.REJECTED: [],
}


def is_terminal(status: ProcessingStatus) -> bool:
    return not STATUS_TRANSITIONS.get(status)


def is_valid_transition(from_status: ProcessingStatus, to_status: ProcessingStatus) -> bool:
    """
    Checks if a status transition is valid.

    Args:
        from_status: Current status
        to_status: Target status

    Returns:
        True if transition is allowed, False otherwise
    """
    return to_status in STATUS_TRANSITIONS.get(from_status, [])


def ensure_transition(entity: str, entity_id: str, from_status: ProcessingStatus, to_status: ProcessingStatus):
    """
    Raises InvalidStateTransitionError unless the transition is allowed.
    """
    if not is_valid_transition(from_status, to_status):
        if is_terminal(from_status):
            message = f"{entity} {entity_id} is already {from_status.value}"
        else:
            message = f"Cannot move {entity} {entity_id} from {from_status.value} to {to_status.value}"
        raise InvalidStateTransitionError(
            message,
            details={"id": entity_id, "from": from_status.value, "to": to_status.value},
        )
