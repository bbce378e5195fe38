"""
预算分配模块 - Budget Allocation Module

根据总预算、用途和用户指定的配件，分配各类配件的预算上限。
Split the total budget into per-category ceilings based on purpose and the
parts the user explicitly asked for.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple, TYPE_CHECKING

from ..config import ResolverLimits
from ..data.repository import to_part
from ..schemas import (
    BUILD_ORDER,
    BudgetAllocation,
    Category,
    Intent,
    Part,
    PreferredParts,
    Purpose,
    Strategy,
)

if TYPE_CHECKING:
    from ..data.repository import GraphStore
    from ..session import SessionState

logger = logging.getLogger(__name__)


PURPOSE_WEIGHTS: Dict[Purpose, Dict[Category, float]] = {
    Purpose.GAMING: {
        Category.CPU: 0.17,
        Category.CPU_COOLER: 0.07,
        Category.MOTHERBOARD: 0.11,
        Category.GRAPHICS_CARD: 0.30,
        Category.RAM: 0.07,
        Category.INTERNAL_STORAGE: 0.07,
        Category.CASE: 0.07,
        Category.POWER_SUPPLY: 0.14,
    },
    Purpose.WORKSTATION: {
        Category.CPU: 0.21,
        Category.CPU_COOLER: 0.07,
        Category.MOTHERBOARD: 0.14,
        Category.GRAPHICS_CARD: 0.08,
        Category.RAM: 0.14,
        Category.INTERNAL_STORAGE: 0.14,
        Category.CASE: 0.11,
        Category.POWER_SUPPLY: 0.11,
    },
}
"""
用途预算权重 - Purpose Budget Weights

每张表的权重之和为 1.0。
Each table sums to 1.0.

- gaming: 显卡占 30%，CPU 占 17%
- workstation: CPU 占 21%，内存与存储各 14%
"""


def boosted_weights(purpose: Purpose, boost: float) -> Dict[Category, float]:
    """
    放宽权重 - Loosen Weights

    在每个类别上加上相同的份额 ``boost / 8``，使总和变为 ``1 + boost``。
    Add the same share ``boost / 8`` to every category so the table sums
    to ``1 + boost``.
    """
    base = PURPOSE_WEIGHTS[purpose]
    share = boost / len(base)
    return {category: weight + share for category, weight in base.items()}


def preferred_parts_cost(preferred: PreferredParts) -> int:
    """首选配件总价（每类取第一个）- Cost of the first preferred part per category."""
    return sum(parts[0].price for parts in preferred.values() if parts)


def allocate_remaining(remaining: int, weights: Dict[Category, float]) -> BudgetAllocation:
    return {category: int(remaining * weights[category]) for category in BUILD_ORDER}


class BudgetAllocator:
    """
    预算分配器 - Budget Allocator

    分配流程 Allocation Steps:
    1. 解析首选配件（按输入文本缓存）
       Resolve preferred parts, cached per input text
    2. 根据用途选取权重表并放宽
       Pick the purpose weight table and loosen it
    3. 每轮只扣除一次首选配件的费用
       Deduct the preferred parts cost once per run
    4. 按权重计算各类上限
       Multiply the remaining budget by each weight
    """

    def __init__(self, store: "GraphStore", limits: ResolverLimits | None = None):
        self.store = store
        self.limits = limits or ResolverLimits()

    async def allocate(
        self,
        intent: Intent,
        strategy: Strategy,
        session: "SessionState",
    ) -> Tuple[PreferredParts, BudgetAllocation]:
        preferred = await self.resolve_preferred(intent, session)

        boost = self.limits.boost_with_preferred if intent.preferred_parts else self.limits.boost_default
        weights = boosted_weights(intent.purpose, boost)

        if not intent.preferred_cost_deducted:
            cost = preferred_parts_cost(preferred)
            intent.budget = max(0, intent.budget - cost)
            intent.preferred_cost_deducted = True
            if cost:
                logger.debug("[BUDGET] %s: %d committed to preferred parts", strategy.value, cost)

        allocation = allocate_remaining(intent.budget, weights)
        logger.debug("[BUDGET] %s: remaining=%d allocation=%s", strategy.value, intent.budget, allocation)
        return preferred, allocation

    async def resolve_preferred(self, intent: Intent, session: "SessionState") -> PreferredParts:
        cached = session.preferred_cache
        if cached is not None and cached[0] == intent.text:
            logger.debug("[CACHE] preferred parts hit")
            return {category: list(parts) for category, parts in cached[1].items()}

        preferred: PreferredParts = {}
        for ref in intent.preferred_parts:
            if ref.match_by == "chipset":
                node = await self.store.find_by_chipset(ref.category, ref.name)
            else:
                node = await self.store.search_by_name(
                    ref.category, ref.name, self.limits.name_match_threshold
                )
            if node is None:
                logger.info("[BUDGET] no catalog match for preferred %s %r", ref.category.value, ref.name)
                continue
            part = to_part(ref.category, node)
            bucket: List[Part] = preferred.setdefault(ref.category, [])
            if all(existing.name != part.name for existing in bucket):
                bucket.append(part)

        session.preferred_cache = (intent.text, preferred)
        return {category: list(parts) for category, parts in preferred.items()}
