"""兼容性图谱仓库抽象 - Compatibility graph store abstraction"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Set, Tuple

from ..schemas import Category, Part

_TOKEN_RE = re.compile(r"[0-9a-zA-ZÀ-ỹ]+")


class GraphStore(Protocol):
    async def search_by_name(self, category: Category, text: str, min_score: float) -> Optional[dict]: ...
    async def find_by_chipset(self, category: Category, chipset: str) -> Optional[dict]: ...
    async def find_within_price(
        self, category: Category, max_price: int, order_field: str, descending: bool
    ) -> List[dict]: ...
    async def has_edge(
        self, src_category: Category, src_name: str, dst_category: Category, dst_name: str
    ) -> bool: ...
    async def close(self) -> None: ...


def combine_low_high(low: int, high: int) -> int:
    """Rebuild a 64-bit integer the graph driver split into two 32-bit halves."""
    return high * 2**32 + low


def normalize_properties(properties: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in properties.items():
        if isinstance(value, dict) and "low" in value and "high" in value:
            out[key] = combine_low_high(int(value["low"]), int(value["high"]))
        else:
            out[key] = value
    return out


def to_part(category: Category, properties: Dict[str, Any]) -> Part:
    data = normalize_properties(properties)
    data["category"] = category
    return Part.model_validate(data)


def _tokens(value: str) -> Set[str]:
    return {t.lower() for t in _TOKEN_RE.findall(value or "")}


def name_relevance(query: str, name: str) -> float:
    query_tokens = _tokens(query)
    name_tokens = _tokens(name)
    if not query_tokens or not name_tokens:
        return 0.0
    return len(query_tokens & name_tokens) / len(query_tokens | name_tokens)


def _numeric(value: Any) -> float:
    if isinstance(value, dict) and "low" in value and "high" in value:
        return combine_low_high(int(value["low"]), int(value["high"]))
    if value is None:
        return 0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


class InMemoryGraphStore:
    """In-process graph store backed by plain dicts.

    Nodes are raw property dicts grouped by category; edges are directed
    ``(src_category, src_name, dst_category, dst_name)`` tuples.
    """

    def __init__(self, parts: Iterable[dict] = (), edges: Iterable[Sequence[str]] = ()):
        self._nodes: Dict[Category, List[dict]] = {c: [] for c in Category}
        self._edges: Set[Tuple[Category, str, Category, str]] = set()
        for item in parts:
            self.add_part(item)
        for edge in edges:
            self.add_edge(*edge)

    @classmethod
    def from_json(cls, path: Path) -> "InMemoryGraphStore":
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        return cls(raw.get("parts", []), raw.get("edges", []))

    def add_part(self, item: dict) -> None:
        data = dict(item)
        category = Category(data.pop("category"))
        self._nodes[category].append(data)

    def add_edge(self, src_category: str, src_name: str, dst_category: str, dst_name: str) -> None:
        self._edges.add((Category(src_category), src_name, Category(dst_category), dst_name))

    async def search_by_name(self, category: Category, text: str, min_score: float) -> Optional[dict]:
        best: Optional[dict] = None
        best_score = min_score
        for node in self._nodes[category]:
            if _numeric(node.get("price")) <= 0:
                continue
            score = name_relevance(text, str(node.get("name", "")))
            if score > best_score:
                best, best_score = node, score
        return dict(best) if best is not None else None

    async def find_by_chipset(self, category: Category, chipset: str) -> Optional[dict]:
        for node in self._nodes[category]:
            if node.get("chipset") == chipset and _numeric(node.get("price")) > 0:
                return dict(node)
        return None

    async def find_within_price(
        self, category: Category, max_price: int, order_field: str, descending: bool
    ) -> List[dict]:
        matches = [
            node
            for node in self._nodes[category]
            if node.get("price") is not None and _numeric(node["price"]) <= max_price
        ]
        matches.sort(key=lambda node: _numeric(node.get(order_field)), reverse=descending)
        return [dict(node) for node in matches]

    async def has_edge(
        self, src_category: Category, src_name: str, dst_category: Category, dst_name: str
    ) -> bool:
        return (src_category, src_name, dst_category, dst_name) in self._edges

    async def close(self) -> None:
        return None
