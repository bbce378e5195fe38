"""Diversifier: several distinct configurations per strategy, streamed as they appear."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Dict, List, Optional, Protocol, Sequence, TYPE_CHECKING

from ..config import ResolverLimits
from ..schemas import BUILD_ORDER, Configuration, Intent, Strategy

if TYPE_CHECKING:
    from ..session import SessionState
    from .retry import BudgetRetryController

logger = logging.getLogger(__name__)


class LiveUpdateChannel(Protocol):
    def publish(self, configuration: Configuration, requester_id: Optional[str] = None) -> None: ...


class Diversifier:
    def __init__(
        self,
        retry: "BudgetRetryController",
        channel: Optional[LiveUpdateChannel] = None,
        limits: ResolverLimits | None = None,
        rng: Optional[random.Random] = None,
    ):
        self.retry = retry
        self.channel = channel
        self.limits = limits or ResolverLimits()
        self.rng = rng or random.Random()

    async def resolve_many(
        self,
        intent: Intent,
        strategies: Sequence[Strategy],
        session: "SessionState",
        requester_id: Optional[str] = None,
    ) -> Dict[Strategy, List[Configuration]]:
        results = await asyncio.gather(
            *(self.diversify(intent, strategy, session, requester_id) for strategy in strategies)
        )
        return dict(zip(strategies, results))

    async def diversify(
        self,
        intent: Intent,
        strategy: Strategy,
        session: "SessionState",
        requester_id: Optional[str] = None,
    ) -> List[Configuration]:
        session.reset_exclusions(strategy)
        builds: List[Configuration] = []

        for attempt in range(self.limits.diversify_attempts):
            configuration = await self.retry.resolve(intent.for_run(), strategy, session)
            if not configuration.is_complete():
                logger.info("[DIVERSIFY] %s pools exhausted after %d attempt(s)", strategy.value, attempt)
                # an empty list would hide why nothing was built
                if not builds:
                    builds.append(configuration.clone())
                break
            if any(existing.same_parts(configuration) for existing in builds):
                logger.debug("[DIVERSIFY] %s duplicate on attempt %d", strategy.value, attempt)
            else:
                builds.append(configuration.clone())
                if self.channel is not None:
                    self.channel.publish(configuration.clone(), requester_id)

            # duplicates also exclude a part, otherwise the next attempt repeats them
            assigned = [category for category in BUILD_ORDER if configuration.get(category) is not None]
            category = self.rng.choice(assigned)
            session.exclude(strategy, category, configuration.get(category).name)
            logger.debug(
                "[DIVERSIFY] %s excluded %s %r", strategy.value, category.value, configuration.get(category).name
            )

        logger.info("[DIVERSIFY] %s produced %d configuration(s)", strategy.value, len(builds))
        return builds
