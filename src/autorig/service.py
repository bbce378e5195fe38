from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager, nullcontext
from typing import AsyncIterator, Dict, List, Optional, Sequence

from .builder import (
    BudgetAllocator,
    BudgetRetryController,
    CandidatePoolProvider,
    CompatibilityChecker,
    ConfigurationBuilder,
    Diversifier,
    LiveUpdateChannel,
)
from .config import Settings
from .data.repository import GraphStore, InMemoryGraphStore
from .intent import HttpIntentExtractor, IntentExtractor, LLMIntentExtractor, parse_intent
from .schemas import Configuration, Intent, Strategy
from .session import SessionState, SessionStore

logger = logging.getLogger(__name__)

ALL_STRATEGIES: tuple[Strategy, ...] = (Strategy.COST, Strategy.PERFORMANCE, Strategy.POPULARITY)


class AutoBuildService:
    """Text in, configurations out.

    One instance per process: the compatibility edge cache and the session
    store live here and are shared by every request.
    """

    def __init__(
        self,
        store: GraphStore,
        extractor: IntentExtractor,
        channel: Optional[LiveUpdateChannel] = None,
        settings: Settings | None = None,
        sessions: SessionStore | None = None,
    ):
        self.settings = settings or Settings()
        limits = self.settings.limits
        self.store = store
        self.extractor = extractor
        self.sessions = sessions or SessionStore(
            ttl_seconds=self.settings.session_ttl_seconds,
            sweep_interval_seconds=self.settings.session_sweep_interval_seconds,
        )
        self.checker = CompatibilityChecker(store)
        self.allocator = BudgetAllocator(store, limits)
        self.pools = CandidatePoolProvider(store)
        self.builder = ConfigurationBuilder(self.checker, max_steps=limits.max_search_steps)
        self.retry = BudgetRetryController(self.allocator, self.pools, self.builder, limits)
        self.diversifier = Diversifier(self.retry, channel, limits)

    async def extract_intent(self, text: str) -> Intent:
        entities = await self.extractor.extract(text)
        return parse_intent(text, entities)

    @asynccontextmanager
    async def _session(self, requester_id: Optional[str]) -> AsyncIterator[SessionState]:
        rid = requester_id or f"anonymous-{uuid.uuid4()}"
        async with self.sessions.lease(rid) as state:
            yield state

    def _deadline(self):
        seconds = self.settings.request_timeout_seconds
        return asyncio.timeout(seconds) if seconds > 0 else nullcontext()

    async def resolve_many(
        self,
        text: str,
        requester_id: Optional[str] = None,
        strategies: Sequence[Strategy] = ALL_STRATEGIES,
    ) -> Dict[Strategy, List[Configuration]]:
        start = time.time()
        async with self._deadline():
            intent = await self.extract_intent(text)
            async with self._session(requester_id) as session:
                results = await self.diversifier.resolve_many(intent, strategies, session, requester_id)
        logger.info(
            "[PERF] resolve_many %s in %.3fs (edge cache=%d)",
            {s.value: len(r) for s, r in results.items()},
            time.time() - start,
            self.checker.cached_edges,
        )
        return results

    async def resolve_one(self, text: str, requester_id: Optional[str] = None) -> Configuration:
        start = time.time()
        async with self._deadline():
            intent = await self.extract_intent(text)
            async with self._session(requester_id) as session:
                # exclusions left by an earlier resolve_many must not shrink this pool
                session.reset_exclusions(Strategy.PERFORMANCE)
                configuration = await self.retry.resolve(intent.for_run(), Strategy.PERFORMANCE, session)
        logger.info(
            "[PERF] resolve_one %s in %.3fs",
            "complete" if configuration.is_complete() else "partial",
            time.time() - start,
        )
        return configuration

    def start(self) -> None:
        self.sessions.start()

    async def close(self) -> None:
        await self.sessions.stop()
        await self.extractor.aclose()
        await self.store.close()


def build_store(settings: Settings) -> GraphStore:
    if settings.graph_store == "neo4j":
        from .data.neo4j_store import Neo4jGraphStore

        return Neo4jGraphStore(
            settings.neo4j_uri,
            settings.neo4j_user,
            settings.neo4j_password,
            database=settings.neo4j_database,
            retries=settings.store_retries,
        )
    logger.info("[STORE] using in-memory catalog %s", settings.catalog_path)
    return InMemoryGraphStore.from_json(settings.catalog_path)


def build_extractor(settings: Settings) -> IntentExtractor:
    if settings.intent_extractor == "llm":
        return LLMIntentExtractor(settings.llm_provider)
    return HttpIntentExtractor(settings.spacy_api_url, settings.extractor_timeout_seconds)


def build_service(settings: Settings, channel: Optional[LiveUpdateChannel] = None) -> AutoBuildService:
    return AutoBuildService(build_store(settings), build_extractor(settings), channel, settings)
