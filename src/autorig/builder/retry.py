"""Budget retry controller: rebuild with a perturbed budget until complete or out of bounds."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from ..config import ResolverLimits
from ..schemas import Configuration, Intent, Strategy

if TYPE_CHECKING:
    from ..session import SessionState
    from .budget import BudgetAllocator
    from .picker import ConfigurationBuilder
    from .pool import CandidatePoolProvider

logger = logging.getLogger(__name__)


class BudgetRetryController:
    def __init__(
        self,
        allocator: "BudgetAllocator",
        pools: "CandidatePoolProvider",
        builder: "ConfigurationBuilder",
        limits: ResolverLimits | None = None,
    ):
        self.allocator = allocator
        self.pools = pools
        self.builder = builder
        self.limits = limits or ResolverLimits()

    def should_stop(self, attempts: int, increases: int, configuration: Configuration, initial_budget: int) -> bool:
        limits = self.limits
        return (
            attempts >= limits.max_attempts
            or increases >= limits.max_budget_increases
            or configuration.total_cost() > initial_budget * limits.max_cost_ratio
        )

    def adjust_budget(self, budget: int, attempts: int) -> tuple[int, bool]:
        """Return the next budget and whether it counts as an increase."""
        limits = self.limits
        if attempts % limits.realloc_every == 0:
            return math.floor(budget * limits.realloc_factor + limits.realloc_offset), False
        return math.floor(budget * limits.growth_factor), True

    async def resolve(self, intent: Intent, strategy: Strategy, session: "SessionState") -> Configuration:
        """Build one configuration for ``strategy``; ``intent`` is mutated (budget) and should be a run copy."""
        attempts = 0
        increases = 0
        partial: Configuration | None = None

        while True:
            preferred, allocation = await self.allocator.allocate(intent, strategy, session)
            pool = await self.pools.fetch_within_budget(allocation, strategy, session, intent.text)
            configuration = await self.builder.build(preferred, pool, start=partial)

            if configuration.is_complete():
                if attempts:
                    logger.info("[RETRY] %s complete after %d budget adjustment(s)", strategy.value, attempts)
                return configuration

            if self.should_stop(attempts, increases, configuration, intent.initial_budget):
                logger.info(
                    "[RETRY] %s gave up after %d adjustment(s), missing=%s",
                    strategy.value,
                    attempts,
                    [c.value for c in configuration.missing()],
                )
                return configuration

            intent.budget, increased = self.adjust_budget(intent.budget, attempts)
            if increased:
                increases += 1
            attempts += 1
            partial = configuration
            logger.debug("[RETRY] %s attempt %d, budget -> %d", strategy.value, attempts, intent.budget)
