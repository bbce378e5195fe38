"""
Neo4j compatibility graph store.

Parts are nodes labelled by category, compatibility facts are directed
``COMPATIBLE_WITH`` relationships between two named nodes.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional

from neo4j import AsyncGraphDatabase
from neo4j.exceptions import DriverError, Neo4jError, ServiceUnavailable, SessionExpired, TransientError

from ..errors import GraphStoreError
from ..schemas import Category

logger = logging.getLogger(__name__)

# The catalog graph predates the storage rename and still labels drives InternalHardDrive.
NODE_LABELS: Dict[Category, str] = {
    Category.CPU: "CPU",
    Category.CPU_COOLER: "CPUCooler",
    Category.MOTHERBOARD: "Motherboard",
    Category.GRAPHICS_CARD: "GraphicsCard",
    Category.RAM: "RAM",
    Category.INTERNAL_STORAGE: "InternalHardDrive",
    Category.CASE: "Case",
    Category.POWER_SUPPLY: "PowerSupply",
}

RELATIONSHIP = "COMPATIBLE_WITH"

_RETRYABLE = (ServiceUnavailable, SessionExpired, TransientError)
_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_LUCENE_SPECIAL = re.compile(r'([+\-&|!(){}\[\]^"~*?:\\/])')


def fulltext_index_name(category: Category) -> str:
    return f"{NODE_LABELS[category]}NameFulltextIndex"


def escape_lucene(text: str) -> str:
    return _LUCENE_SPECIAL.sub(r"\\\1", text)


class Neo4jGraphStore:
    def __init__(
        self,
        uri: str,
        user: str,
        password: str,
        *,
        database: str = "neo4j",
        retries: int = 3,
        retry_delay_seconds: float = 0.2,
        driver: Any = None,
    ):
        self.database = database
        self.retries = max(1, retries)
        self.retry_delay_seconds = retry_delay_seconds
        self.driver = driver or AsyncGraphDatabase.driver(uri, auth=(user, password))

    async def _run(self, query: str, **params: Any) -> List[Any]:
        last_error: Exception | None = None
        for attempt in range(1, self.retries + 1):
            try:
                result = await self.driver.execute_query(
                    query, parameters_=params, database_=self.database
                )
                return list(result.records)
            except _RETRYABLE as err:
                last_error = err
                logger.warning("[STORE] transient failure (attempt %d/%d): %s", attempt, self.retries, err)
                if attempt < self.retries:
                    await asyncio.sleep(self.retry_delay_seconds * attempt)
            except (Neo4jError, DriverError) as err:
                raise GraphStoreError(f"graph query failed: {err}") from err
        raise GraphStoreError(f"graph store unavailable after {self.retries} attempts") from last_error

    async def search_by_name(self, category: Category, text: str, min_score: float) -> Optional[dict]:
        records = await self._run(
            """
            CALL db.index.fulltext.queryNodes($index, $text)
            YIELD node, score
            WHERE score > $min_score AND node.price IS NOT NULL AND node.price > 0
            RETURN node
            ORDER BY score DESC
            LIMIT 1
            """,
            index=fulltext_index_name(category),
            text=escape_lucene(text),
            min_score=min_score,
        )
        return dict(records[0]["node"]) if records else None

    async def find_by_chipset(self, category: Category, chipset: str) -> Optional[dict]:
        label = NODE_LABELS[category]
        records = await self._run(
            f"""
            MATCH (node:{label} {{chipset: $chipset}})
            WHERE node.price IS NOT NULL AND node.price > 0
            RETURN node
            LIMIT 1
            """,
            chipset=chipset,
        )
        return dict(records[0]["node"]) if records else None

    async def find_within_price(
        self, category: Category, max_price: int, order_field: str, descending: bool
    ) -> List[dict]:
        if not _FIELD_RE.match(order_field):
            raise ValueError(f"invalid order field: {order_field!r}")
        label = NODE_LABELS[category]
        direction = "DESC" if descending else "ASC"
        records = await self._run(
            f"""
            MATCH (node:{label})
            WHERE node.price IS NOT NULL AND node.price <= $price
            RETURN node
            ORDER BY node.{order_field} {direction}
            """,
            price=max_price,
        )
        return [dict(record["node"]) for record in records]

    async def has_edge(
        self, src_category: Category, src_name: str, dst_category: Category, dst_name: str
    ) -> bool:
        records = await self._run(
            f"""
            MATCH (a:{NODE_LABELS[src_category]} {{name: $src}})
                  -[:{RELATIONSHIP}]->
                  (b:{NODE_LABELS[dst_category]} {{name: $dst}})
            RETURN a.name AS name
            LIMIT 1
            """,
            src=src_name,
            dst=dst_name,
        )
        return bool(records)

    async def close(self) -> None:
        await self.driver.close()
