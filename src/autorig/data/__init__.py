"""Data 模块：兼容性图谱仓库"""

from .repository import (
    GraphStore,
    InMemoryGraphStore,
    combine_low_high,
    normalize_properties,
    to_part,
)

__all__ = [
    "GraphStore",
    "InMemoryGraphStore",
    "combine_low_high",
    "normalize_properties",
    "to_part",
]
