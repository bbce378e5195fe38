from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CATALOG_PATH = ROOT / "data" / "catalog.json"


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class ResolverLimits:
    """Tuning constants of the retry, search and diversification loops.

    The values are empirical; every one can be overridden with an
    ``AUTORIG_<NAME>`` environment variable.
    """

    max_attempts: int = 30
    max_budget_increases: int = 3
    max_cost_ratio: float = 1.2
    growth_factor: float = 1.05
    realloc_factor: float = 0.98
    realloc_offset: int = 500_000
    realloc_every: int = 5
    diversify_attempts: int = 30
    boost_with_preferred: float = 0.15
    boost_default: float = 0.10
    name_match_threshold: float = 0.6
    max_search_steps: int = 50_000

    @classmethod
    def from_env(cls) -> "ResolverLimits":
        base = cls()
        return cls(
            max_attempts=_env_int("AUTORIG_MAX_ATTEMPTS", base.max_attempts),
            max_budget_increases=_env_int("AUTORIG_MAX_BUDGET_INCREASES", base.max_budget_increases),
            max_cost_ratio=_env_float("AUTORIG_MAX_COST_RATIO", base.max_cost_ratio),
            growth_factor=_env_float("AUTORIG_GROWTH_FACTOR", base.growth_factor),
            realloc_factor=_env_float("AUTORIG_REALLOC_FACTOR", base.realloc_factor),
            realloc_offset=_env_int("AUTORIG_REALLOC_OFFSET", base.realloc_offset),
            realloc_every=max(1, _env_int("AUTORIG_REALLOC_EVERY", base.realloc_every)),
            diversify_attempts=_env_int("AUTORIG_DIVERSIFY_ATTEMPTS", base.diversify_attempts),
            boost_with_preferred=_env_float("AUTORIG_BOOST_WITH_PREFERRED", base.boost_with_preferred),
            boost_default=_env_float("AUTORIG_BOOST_DEFAULT", base.boost_default),
            name_match_threshold=_env_float("AUTORIG_NAME_MATCH_THRESHOLD", base.name_match_threshold),
            max_search_steps=_env_int("AUTORIG_MAX_SEARCH_STEPS", base.max_search_steps),
        )


@dataclass(frozen=True)
class Settings:
    graph_store: Literal["neo4j", "memory"] = "memory"
    catalog_path: Path = DEFAULT_CATALOG_PATH
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: str = ""
    neo4j_database: str = "neo4j"
    store_retries: int = 3
    intent_extractor: Literal["http", "llm"] = "http"
    spacy_api_url: str = "http://localhost:8000"
    extractor_timeout_seconds: float = 10.0
    llm_provider: Literal["zhipu", "openrouter", "openai"] = "openai"
    session_ttl_seconds: int = 300
    session_sweep_interval_seconds: int = 300
    request_timeout_seconds: float = 0.0
    log_level: str = "INFO"
    limits: ResolverLimits = field(default_factory=ResolverLimits)


def load_settings() -> Settings:
    graph_store = _env_str("GRAPH_STORE", "memory").lower()
    extractor = _env_str("INTENT_EXTRACTOR", "http").lower()
    provider = _env_str("LLM_PROVIDER", "openai").lower()
    catalog = _env_str("CATALOG_PATH", "")
    return Settings(
        graph_store="neo4j" if graph_store == "neo4j" else "memory",
        catalog_path=Path(catalog) if catalog else DEFAULT_CATALOG_PATH,
        neo4j_uri=_env_str("NEO4J_URI", "bolt://localhost:7687"),
        neo4j_user=_env_str("NEO4J_USER", "neo4j"),
        neo4j_password=_env_str("NEO4J_PASSWORD", ""),
        neo4j_database=_env_str("NEO4J_DATABASE", "neo4j"),
        store_retries=max(1, _env_int("NEO4J_QUERY_RETRIES", 3)),
        intent_extractor="llm" if extractor == "llm" else "http",
        spacy_api_url=_env_str("SPACY_API_URL", "http://localhost:8000"),
        extractor_timeout_seconds=_env_float("EXTRACTOR_TIMEOUT_SECONDS", 10.0),
        llm_provider=provider if provider in {"zhipu", "openrouter", "openai"} else "openai",
        session_ttl_seconds=_env_int("SESSION_TTL_SECONDS", 300),
        session_sweep_interval_seconds=_env_int("SESSION_SWEEP_INTERVAL_SECONDS", 300),
        request_timeout_seconds=_env_float("REQUEST_TIMEOUT_SECONDS", 0.0),
        log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        limits=ResolverLimits.from_env(),
    )


def configure_logging(level: str = "INFO") -> logging.Logger:
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level, logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    root_logger.addHandler(console_handler)

    logging.getLogger("neo4j").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    return root_logger
