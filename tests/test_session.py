import asyncio

from autorig.schemas import Category, Strategy
from autorig.session import SessionState, SessionStore

from conftest import B550, B660, fixture_part


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_sessions_are_created_lazily_and_reused():
    store = SessionStore()
    assert "u1" not in store
    first = store.get("u1")
    assert store.get("u1") is first
    assert len(store) == 1


def test_sweep_evicts_idle_sessions_only():
    clock = FakeClock()
    store = SessionStore(ttl_seconds=300, clock=clock)
    store.get("old")
    clock.now += 200
    store.get("fresh")
    clock.now += 150

    assert store.sweep() == 1
    assert "old" not in store
    assert "fresh" in store


def test_sweep_skips_leased_sessions():
    clock = FakeClock()
    store = SessionStore(ttl_seconds=300, clock=clock)

    async def scenario():
        async with store.lease("busy"):
            clock.now += 1_000
            assert store.sweep() == 0
        assert "busy" in store
        clock.now += 1_000
        return store.sweep()

    assert asyncio.run(scenario()) == 1


def test_lease_serializes_requests_for_one_requester():
    store = SessionStore()
    order = []

    async def request(tag):
        async with store.lease("u1"):
            order.append(f"{tag}-start")
            await asyncio.sleep(0.01)
            order.append(f"{tag}-end")

    async def scenario():
        await asyncio.gather(request("a"), request("b"))

    asyncio.run(scenario())
    assert order == ["a-start", "a-end", "b-start", "b-end"]


def test_zero_ttl_disables_sweeping():
    clock = FakeClock()
    store = SessionStore(ttl_seconds=0, clock=clock)
    store.get("u1")
    clock.now += 10_000
    assert store.sweep() == 0


def test_exclusions_are_per_strategy_and_filter_live_pool():
    state = SessionState()
    state.pools[Strategy.COST] = {Category.MOTHERBOARD: [fixture_part(B550), fixture_part(B660)]}

    state.exclude(Strategy.COST, Category.MOTHERBOARD, B550)
    assert [p.name for p in state.pools[Strategy.COST][Category.MOTHERBOARD]] == [B660]
    assert state.excluded_names(Strategy.COST, Category.MOTHERBOARD) == {B550}
    assert state.excluded_names(Strategy.PERFORMANCE, Category.MOTHERBOARD) == set()

    state.reset_exclusions(Strategy.COST)
    assert state.excluded_names(Strategy.COST, Category.MOTHERBOARD) == set()


def test_refresh_for_input_clears_range_caches():
    state = SessionState()
    assert state.refresh_for_input("a")
    state.range_cache[(Category.CPU, 1, "price")] = []
    state.budget_snapshot[Strategy.COST] = {Category.CPU: 1}
    assert not state.refresh_for_input("a")
    assert state.range_cache

    assert state.refresh_for_input("b")
    assert state.range_cache == {}
    assert state.budget_snapshot == {}
