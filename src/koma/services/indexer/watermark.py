"""Block watermark tracking."""

from typing import Iterable

from koma.services.indexer.categories import CATEGORIES, EventCategory
from koma.uow import UnitOfWork


class BlockWatermark:
    """Highest processed block, per category and process-wide.

    Each category keeps its own fetch cursor so a category whose fetch failed
    resumes from its own last persisted block. ``value`` is the maximum over
    all cursors. Every update is a monotonic max assignment: neither the
    cursors nor ``value`` ever decrease.
    """

    def __init__(self, cursors: dict[str, int] | None = None):
        self._cursors: dict[str, int] = dict(cursors or {})
        self._value = max(self._cursors.values(), default=0)

    @classmethod
    async def load(
        cls, uow: UnitOfWork, categories: Iterable[EventCategory] = CATEGORIES
    ) -> "BlockWatermark":
        """Derive cursors from the highest stored block of every event table.

        Empty tables start at block 0.
        """
        cursors = {}
        for category in categories:
            cursors[category.name] = await uow.events_for(category.model).max_block_number()
        return cls(cursors)

    @property
    def value(self) -> int:
        """Process-wide watermark (highest block persisted in any category)."""
        return self._value

    def cursor(self, category: str) -> int:
        """Fetch lower bound (exclusive) for a category."""
        return self._cursors.get(category, 0)

    def advance(self, category: str, block_number: int) -> bool:
        """Raise a category cursor to ``block_number`` if it is higher.

        Returns:
            True if the cursor moved
        """
        if block_number <= self._cursors.get(category, 0):
            return False
        self._cursors[category] = block_number
        if block_number > self._value:
            self._value = block_number
        return True

    def as_dict(self) -> dict[str, int]:
        """Copy of all category cursors."""
        return dict(self._cursors)
