from __future__ import annotations

import asyncio
import logging
import threading
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Dict, List, Optional, Set, Tuple

from .schemas import CandidatePool, Category, Part, PreferredParts, Strategy

logger = logging.getLogger(__name__)

RangeKey = Tuple[Category, int, str]


@dataclass
class SessionState:
    pools: Dict[Strategy, CandidatePool] = field(default_factory=dict)
    preferred_cache: Optional[Tuple[str, PreferredParts]] = None
    range_cache: Dict[RangeKey, List[Part]] = field(default_factory=dict)
    budget_snapshot: Dict[Strategy, Dict[Category, int]] = field(default_factory=dict)
    excluded: Dict[Strategy, Dict[Category, Set[str]]] = field(default_factory=dict)
    last_input_text: Optional[str] = None
    last_access: float = 0.0
    leases: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def excluded_names(self, strategy: Strategy, category: Category) -> Set[str]:
        return self.excluded.get(strategy, {}).get(category, set())

    def exclude(self, strategy: Strategy, category: Category, name: str) -> None:
        self.excluded.setdefault(strategy, {}).setdefault(category, set()).add(name)
        pool = self.pools.get(strategy)
        if pool and category in pool:
            pool[category] = [p for p in pool[category] if p.name != name]

    def reset_exclusions(self, strategy: Strategy) -> None:
        self.excluded[strategy] = {}

    def refresh_for_input(self, text: str) -> bool:
        """Drop range-query caches when the request text changed."""
        if self.last_input_text == text:
            return False
        self.last_input_text = text
        self.range_cache.clear()
        self.budget_snapshot.clear()
        return True


class SessionStore:
    """Per-requester state with idle eviction.

    Entries are created on first lookup and evicted by ``sweep`` once they
    have been idle longer than ``ttl_seconds`` and no resolution holds them.
    """

    def __init__(
        self,
        ttl_seconds: int = 300,
        sweep_interval_seconds: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = max(0, int(ttl_seconds))
        self.sweep_interval_seconds = max(1, int(sweep_interval_seconds))
        self._clock = clock
        self._states: Dict[str, SessionState] = {}
        self._lock = threading.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, requester_id: str) -> bool:
        return requester_id in self._states

    def get(self, requester_id: str) -> SessionState:
        with self._lock:
            state = self._states.get(requester_id)
            if state is None:
                state = SessionState()
                self._states[requester_id] = state
            state.last_access = self._clock()
            return state

    @asynccontextmanager
    async def lease(self, requester_id: str) -> AsyncIterator[SessionState]:
        state = self.get(requester_id)
        with self._lock:
            state.leases += 1
        try:
            async with state.lock:
                yield state
        finally:
            with self._lock:
                state.leases -= 1
                state.last_access = self._clock()

    def sweep(self, now: Optional[float] = None) -> int:
        if self.ttl_seconds <= 0:
            return 0
        now = self._clock() if now is None else now
        expire_before = now - float(self.ttl_seconds)
        with self._lock:
            stale = [
                rid
                for rid, state in self._states.items()
                if state.last_access < expire_before and state.leases == 0
            ]
            for rid in stale:
                self._states.pop(rid, None)
        if stale:
            logger.info("[SESSION] evicted %d idle session(s)", len(stale))
        return len(stale)

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            self.sweep()

    def start(self) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
