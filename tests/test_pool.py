import asyncio

from autorig.builder.pool import CandidatePoolProvider
from autorig.schemas import BUILD_ORDER, Category, Strategy
from autorig.session import SessionState

from conftest import B550, B660, I5, RYZEN, counting_store


def _allocation(ceiling=10_000_000):
    return {category: ceiling for category in BUILD_ORDER}


def test_pool_is_ordered_by_strategy_objective():
    provider = CandidatePoolProvider(counting_store())
    session = SessionState()

    cost = asyncio.run(provider.fetch_within_budget(_allocation(), Strategy.COST, session, "x"))
    assert [p.name for p in cost[Category.CPU]] == [I5, RYZEN]

    performance = asyncio.run(provider.fetch_within_budget(_allocation(), Strategy.PERFORMANCE, session, "x"))
    assert [p.name for p in performance[Category.CPU]] == [RYZEN, I5]

    popularity = asyncio.run(provider.fetch_within_budget(_allocation(), Strategy.POPULARITY, session, "x"))
    assert [p.name for p in popularity[Category.CPU]] == [I5, RYZEN]


def test_pool_respects_ceiling():
    provider = CandidatePoolProvider(counting_store())
    allocation = _allocation()
    allocation[Category.MOTHERBOARD] = 2_050_000
    allocation[Category.CASE] = 0
    pool = asyncio.run(provider.fetch_within_budget(allocation, Strategy.COST, SessionState(), "x"))
    assert [p.name for p in pool[Category.MOTHERBOARD]] == [B550]
    assert pool[Category.CASE] == []


def test_range_queries_are_cached_until_ceiling_or_input_changes():
    store = counting_store()
    provider = CandidatePoolProvider(store)
    session = SessionState()

    asyncio.run(provider.fetch_within_budget(_allocation(), Strategy.COST, session, "same"))
    asyncio.run(provider.fetch_within_budget(_allocation(), Strategy.COST, session, "same"))
    assert len(store.range_queries) == len(BUILD_ORDER)

    allocation = _allocation()
    allocation[Category.CPU] = 2_950_000
    asyncio.run(provider.fetch_within_budget(allocation, Strategy.COST, session, "same"))
    assert len(store.range_queries) == len(BUILD_ORDER) + 1

    asyncio.run(provider.fetch_within_budget(allocation, Strategy.COST, session, "different"))
    assert len(store.range_queries) == 2 * len(BUILD_ORDER) + 1


def test_excluded_names_are_filtered_from_cached_pools():
    provider = CandidatePoolProvider(counting_store())
    session = SessionState()
    session.exclude(Strategy.COST, Category.MOTHERBOARD, B660)

    pool = asyncio.run(provider.fetch_within_budget(_allocation(), Strategy.COST, session, "x"))
    assert [p.name for p in pool[Category.MOTHERBOARD]] == [B550]

    other = asyncio.run(provider.fetch_within_budget(_allocation(), Strategy.PERFORMANCE, session, "x"))
    assert {p.name for p in other[Category.MOTHERBOARD]} == {B550, B660}
