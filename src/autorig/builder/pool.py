"""Candidate pool provider: budget-filtered, objective-ordered parts per category."""

from __future__ import annotations

import logging
from typing import List, TYPE_CHECKING

from ..data.repository import to_part
from ..schemas import BUILD_ORDER, SORT_OBJECTIVES, BudgetAllocation, CandidatePool, Part, Strategy

if TYPE_CHECKING:
    from ..data.repository import GraphStore
    from ..session import SessionState

logger = logging.getLogger(__name__)


class CandidatePoolProvider:
    def __init__(self, store: "GraphStore"):
        self.store = store

    async def fetch_within_budget(
        self,
        allocation: BudgetAllocation,
        strategy: Strategy,
        session: "SessionState",
        input_text: str | None = None,
    ) -> CandidatePool:
        if input_text is not None and session.refresh_for_input(input_text):
            logger.debug("[CACHE] input changed, range cache cleared")

        order_field, descending = SORT_OBJECTIVES[strategy]
        snapshot = session.budget_snapshot.setdefault(strategy, {})
        pool: CandidatePool = session.pools.setdefault(strategy, {})

        for category in BUILD_ORDER:
            ceiling = allocation.get(category, 0)
            key = (category, ceiling, order_field)
            excluded = session.excluded_names(strategy, category)

            raw = session.range_cache.get(key)
            if raw is None or snapshot.get(category) != ceiling:
                nodes = await self.store.find_within_price(category, ceiling, order_field, descending)
                raw = [to_part(category, node) for node in nodes]
                session.range_cache[key] = raw
                snapshot[category] = ceiling
            else:
                logger.debug("[CACHE] range hit %s <= %d (%s)", category.value, ceiling, order_field)

            parts: List[Part] = [p for p in raw if p.name not in excluded] if excluded else list(raw)
            pool[category] = parts

        return pool
