from __future__ import annotations

from enum import Enum
from typing import Dict, List, Literal, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Category(str, Enum):
    CPU = "CPU"
    CPU_COOLER = "CPUCooler"
    MOTHERBOARD = "Motherboard"
    GRAPHICS_CARD = "GraphicsCard"
    RAM = "RAM"
    INTERNAL_STORAGE = "InternalStorage"
    CASE = "Case"
    POWER_SUPPLY = "PowerSupply"


# 搜索顺序 - fixed evaluation order of the builder
BUILD_ORDER: Tuple[Category, ...] = (
    Category.CPU,
    Category.CPU_COOLER,
    Category.MOTHERBOARD,
    Category.GRAPHICS_CARD,
    Category.RAM,
    Category.INTERNAL_STORAGE,
    Category.CASE,
    Category.POWER_SUPPLY,
)

REQUIRED_CATEGORIES: frozenset = frozenset(BUILD_ORDER)


class Purpose(str, Enum):
    GAMING = "gaming"
    WORKSTATION = "workstation"


class Strategy(str, Enum):
    COST = "cost"
    PERFORMANCE = "performance"
    POPULARITY = "popularity"


# (graph property, descending)
SORT_OBJECTIVES: Dict[Strategy, Tuple[str, bool]] = {
    Strategy.COST: ("price", False),
    Strategy.PERFORMANCE: ("benchmarkScore", True),
    Strategy.POPULARITY: ("solds", True),
}


class Part(BaseModel):
    """A catalog node copied by value into pools and configurations."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    # 标识
    name: str
    category: Category
    price: int = Field(default=0, ge=0)

    # 性能 / 销量
    benchmark_score: float = Field(default=0, alias="benchmarkScore")
    solds: int = 0
    chipset: str = ""

    # 功耗
    tdp: int = Field(default=0, ge=0)
    wattage: int = Field(default=0, ge=0)

    # 内存
    memory_slots: int = Field(default=0, ge=0, alias="memorySlots")
    memory_max: int = Field(default=0, ge=0, alias="memoryMax")
    module_number: int = Field(default=0, ge=0, alias="moduleNumber")
    module_size: int = Field(default=0, ge=0, alias="moduleSize")

    # 显卡接口与主板插槽
    interface: str = ""
    slot_number: int = Field(default=1, ge=0, alias="slotNumber")
    pci_slots: Optional[int] = Field(default=None, alias="pciSlots")
    pcie_x1_slots: Optional[int] = Field(default=None, alias="pcieX1Slots")
    pcie_x4_slots: Optional[int] = Field(default=None, alias="pcieX4Slots")
    pcie_x8_slots: Optional[int] = Field(default=None, alias="pcieX8Slots")
    pcie_x16_slots: Optional[int] = Field(default=None, alias="pcieX16Slots")

    # 存储接口
    sata_6gbps: Optional[int] = Field(default=None, alias="sata6Gbps")
    msata_slots: Optional[int] = Field(default=None, alias="msataSlots")
    m2_slots: Tuple[str, ...] = Field(default=(), alias="m2Slots")
    form_factor: str = Field(default="", alias="formFactor")

    def memory_capacity(self) -> int:
        return self.module_number * self.module_size


class PartRef(BaseModel):
    name: str
    category: Category
    match_by: Literal["name", "chipset"] = "name"


class Intent(BaseModel):
    text: str = ""
    purpose: Purpose = Purpose.GAMING
    budget: int
    initial_budget: int
    preferred_parts: List[PartRef] = Field(default_factory=list)
    preferred_cost_deducted: bool = False

    def for_run(self) -> "Intent":
        """Working copy for one strategy run: original budget, deduction not yet applied."""
        return self.model_copy(
            update={"budget": self.initial_budget, "preferred_cost_deducted": False}
        )


PreferredParts = Dict[Category, List[Part]]
CandidatePool = Dict[Category, List[Part]]
BudgetAllocation = Dict[Category, int]


def _empty_slots() -> Dict[Category, Optional[Part]]:
    return {category: None for category in BUILD_ORDER}


class Configuration(BaseModel):
    parts: Dict[Category, Optional[Part]] = Field(default_factory=_empty_slots)
    # categories filled by the builder fallback without passing compatibility
    forced: Set[Category] = Field(default_factory=set)

    def get(self, category: Category) -> Optional[Part]:
        return self.parts.get(category)

    def assign(self, category: Category, part: Part, forced: bool = False) -> None:
        self.parts[category] = part
        if forced:
            self.forced.add(category)
        else:
            self.forced.discard(category)

    def unassign(self, category: Category) -> None:
        self.parts[category] = None
        self.forced.discard(category)

    def assigned(self) -> List[Tuple[Category, Part]]:
        return [(c, p) for c, p in self.parts.items() if p is not None]

    def missing(self) -> List[Category]:
        return [c for c in BUILD_ORDER if self.parts.get(c) is None]

    def is_complete(self) -> bool:
        return all(self.parts.get(c) is not None for c in REQUIRED_CATEGORIES)

    def is_verified(self) -> bool:
        return self.is_complete() and not self.forced

    def total_cost(self) -> int:
        return sum(part.price for _, part in self.assigned())

    def same_parts(self, other: "Configuration") -> bool:
        return all(self.parts.get(c) == other.parts.get(c) for c in BUILD_ORDER)

    def clone(self) -> "Configuration":
        return Configuration(parts=dict(self.parts), forced=set(self.forced))

    def as_dict(self) -> dict:
        return {
            "parts": {
                c.value: (p.model_dump(by_alias=True, mode="json") if p else None)
                for c, p in ((c, self.parts.get(c)) for c in BUILD_ORDER)
            },
            "complete": self.is_complete(),
            "verified": self.is_verified(),
            "missing": [c.value for c in self.missing()],
            "forced": [c.value for c in BUILD_ORDER if c in self.forced],
            "total_price": self.total_cost(),
        }


class AutoBuildRequest(BaseModel):
    user_input: str = Field(alias="userInput")
    user_id: Optional[str] = Field(default=None, alias="userId")

    model_config = ConfigDict(populate_by_name=True)
