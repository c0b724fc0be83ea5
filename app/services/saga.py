"""
app/services/saga.py

Purpose: Compensating actions for multi-collection flows

- Each completed step registers how to undo itself
- On failure, compensations run newest-first and the original error propagates
- A failing compensation is logged and the remaining ones still run
"""

from typing import Awaitable, Callable, List, Tuple

from app.core.logging import get_logger

logger = get_logger(__name__)

Compensation = Callable[[], Awaitable[object]]


class Saga:
    """
    Usage:

        async with Saga("approve_order") as saga:
            await step_one()
            saga.add_compensation("undo step one", undo_step_one)
            await step_two()
    """

    def __init__(self, name: str):
        self.name = name
        self._compensations: List[Tuple[str, Compensation]] = []
        self.compensated = False

    def add_compensation(self, description: str, action: Compensation):
        self._compensations.append((description, action))

    async def compensate(self):
        """Runs every registered compensation in reverse order."""
        self.compensated = True
        while self._compensations:
            description, action = self._compensations.pop()
            try:
                await action()
                logger.info(f"[{self.name}] compensated: {description}")
            except Exception as e:
                logger.error(
                    f"[{self.name}] compensation failed ({description}): {e}",
                    exc_info=True
                )

    async def __aenter__(self) -> "Saga":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            logger.warning(f"[{self.name}] step failed, rolling back: {exc}")
            await self.compensate()
        return False
