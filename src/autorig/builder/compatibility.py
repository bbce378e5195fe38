"""兼容性检查模块 - dynamic physical constraints plus graph relationship lookups"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple, TYPE_CHECKING

from ..schemas import BUILD_ORDER, Category, Configuration, Part

if TYPE_CHECKING:
    from ..data.repository import GraphStore

logger = logging.getLogger(__name__)


# 图谱中存在 COMPATIBLE_WITH 边的类别对（有方向）
GRAPH_RELATIONSHIPS: FrozenSet[Tuple[Category, Category]] = frozenset(
    {
        (Category.CPU, Category.MOTHERBOARD),
        (Category.CPU, Category.CPU_COOLER),
        (Category.MOTHERBOARD, Category.CPU_COOLER),
        (Category.MOTHERBOARD, Category.RAM),
        (Category.MOTHERBOARD, Category.INTERNAL_STORAGE),
        (Category.MOTHERBOARD, Category.POWER_SUPPLY),
        (Category.MOTHERBOARD, Category.CASE),
        (Category.CASE, Category.POWER_SUPPLY),
        (Category.CASE, Category.GRAPHICS_CARD),
        (Category.POWER_SUPPLY, Category.GRAPHICS_CARD),
    }
)

INTERFACE_SLOT_FIELDS: Dict[str, str] = {
    "PCI": "pci_slots",
    "PCIe x1": "pcie_x1_slots",
    "PCIe x4": "pcie_x4_slots",
    "PCIe x8": "pcie_x8_slots",
    "PCIe x16": "pcie_x16_slots",
}

SATA_FORM_FACTORS = frozenset({"2.5", "3.5"})
MSATA_FORM_FACTOR = "mSATA"

PSU_HEADROOM = 1.25
MOTHERBOARD_DRAW_W = 80
COOLER_DRAW_W = 15
RAM_MODULE_DRAW_W = 5
SMALL_DRIVE_DRAW_W = 5
DRIVE_DRAW_W = 10

EdgeKey = FrozenSet[Tuple[Category, str]]


def parts_in(configuration: Configuration, category: Category, skip: Optional[Category] = None) -> List[Part]:
    if category == skip:
        return []
    part = configuration.get(category)
    return [part] if part is not None else []


def estimate_draw(configuration: Configuration) -> int:
    """估算整机功耗（不含余量）- Estimated system draw in watts, before headroom."""
    total = 0
    for cpu in parts_in(configuration, Category.CPU):
        total += cpu.tdp
    for gpu in parts_in(configuration, Category.GRAPHICS_CARD):
        total += gpu.tdp
    if configuration.get(Category.MOTHERBOARD) is not None:
        total += MOTHERBOARD_DRAW_W
    total += COOLER_DRAW_W * len(parts_in(configuration, Category.CPU_COOLER))
    for ram in parts_in(configuration, Category.RAM):
        total += RAM_MODULE_DRAW_W * ram.module_number
    for drive in parts_in(configuration, Category.INTERNAL_STORAGE):
        total += SMALL_DRIVE_DRAW_W if drive.form_factor == "2.5" else DRIVE_DRAW_W
    return total


def required_psu_wattage(configuration: Configuration) -> float:
    return estimate_draw(configuration) * PSU_HEADROOM


def ram_fits(motherboard: Part, rams: Sequence[Part]) -> bool:
    used_slots = sum(ram.module_number for ram in rams)
    used_capacity = sum(ram.memory_capacity() for ram in rams)
    return used_slots <= motherboard.memory_slots and used_capacity <= motherboard.memory_max


def graphics_cards_fit(motherboard: Part, gpus: Sequence[Part]) -> bool:
    used: Dict[str, int] = {}
    for gpu in gpus:
        field = INTERFACE_SLOT_FIELDS.get(gpu.interface)
        if field is None or getattr(motherboard, field) is None:
            return False
        used[field] = used.get(field, 0) + gpu.slot_number
    return all(count <= getattr(motherboard, field) for field, count in used.items())


def m2_assignable(slots: Sequence[str], form_factors: Sequence[str]) -> bool:
    """Each M.2 drive needs its own slot whose description contains the drive's format."""
    taken = [False] * len(slots)

    def place(index: int) -> bool:
        if index == len(form_factors):
            return True
        for slot_index, slot in enumerate(slots):
            if not taken[slot_index] and form_factors[index] in slot:
                taken[slot_index] = True
                if place(index + 1):
                    return True
                taken[slot_index] = False
        return False

    return place(0)


def drives_fit(motherboard: Part, drives: Sequence[Part]) -> bool:
    sata = sum(1 for d in drives if d.form_factor in SATA_FORM_FACTORS)
    msata = sum(1 for d in drives if d.form_factor == MSATA_FORM_FACTOR)
    m2 = [
        d.form_factor
        for d in drives
        if d.form_factor not in SATA_FORM_FACTORS and d.form_factor != MSATA_FORM_FACTOR
    ]
    return (
        sata <= (motherboard.sata_6gbps or 0)
        and msata <= (motherboard.msata_slots or 0)
        and m2_assignable(motherboard.m2_slots, m2)
    )


def expected_edge(a: Category, b: Category) -> Optional[Tuple[Category, Category]]:
    if (a, b) in GRAPH_RELATIONSHIPS:
        return a, b
    if (b, a) in GRAPH_RELATIONSHIPS:
        return b, a
    return None


class CompatibilityChecker:
    """
    兼容性检查器 - Compatibility Checker

    两轮检查都通过才算兼容：
    1. 动态检查：插槽、容量、功率余量，基于当前配置计算
    2. 图谱检查：按类别关系表查询 COMPATIBLE_WITH 边，结果进程级缓存

    The edge cache lives as long as the checker and is keyed by the
    unordered pair of parts, since compatibility facts never change.
    """

    def __init__(self, store: "GraphStore"):
        self.store = store
        self.total_wattage = 0
        self._edge_cache: Dict[EdgeKey, bool] = {}

    @property
    def cached_edges(self) -> int:
        return len(self._edge_cache)

    async def is_compatible(
        self,
        part: Part,
        category: Category,
        configuration: Configuration,
        skip_graph: bool = False,
    ) -> bool:
        self.total_wattage = estimate_draw(configuration)
        if not self.dynamic_check(part, category, configuration):
            return False
        if skip_graph:
            return True
        return await self.graph_check(part, category, configuration)

    def dynamic_check(self, part: Part, category: Category, configuration: Configuration) -> bool:
        match category:
            case Category.RAM:
                return self._check_ram(part, configuration)
            case Category.GRAPHICS_CARD:
                return self._check_graphics_card(part, configuration)
            case Category.MOTHERBOARD:
                return self._check_motherboard(part, configuration)
            case Category.INTERNAL_STORAGE:
                return self._check_internal_storage(part, configuration)
            case Category.POWER_SUPPLY:
                return self._check_power_supply(part)
            case _:
                return True

    def _check_ram(self, part: Part, configuration: Configuration) -> bool:
        motherboard = configuration.get(Category.MOTHERBOARD)
        if motherboard is None:
            return True
        return ram_fits(motherboard, parts_in(configuration, Category.RAM, skip=Category.RAM) + [part])

    def _check_graphics_card(self, part: Part, configuration: Configuration) -> bool:
        motherboard = configuration.get(Category.MOTHERBOARD)
        if motherboard is None:
            return True
        gpus = parts_in(configuration, Category.GRAPHICS_CARD, skip=Category.GRAPHICS_CARD)
        return graphics_cards_fit(motherboard, gpus + [part])

    def _check_motherboard(self, part: Part, configuration: Configuration) -> bool:
        return (
            ram_fits(part, parts_in(configuration, Category.RAM))
            and graphics_cards_fit(part, parts_in(configuration, Category.GRAPHICS_CARD))
            and drives_fit(part, parts_in(configuration, Category.INTERNAL_STORAGE))
        )

    def _check_internal_storage(self, part: Part, configuration: Configuration) -> bool:
        motherboard = configuration.get(Category.MOTHERBOARD)
        if motherboard is None:
            return True
        drives = parts_in(configuration, Category.INTERNAL_STORAGE, skip=Category.INTERNAL_STORAGE)
        return drives_fit(motherboard, drives + [part])

    def _check_power_supply(self, part: Part) -> bool:
        return part.wattage >= self.total_wattage * PSU_HEADROOM

    async def graph_check(self, part: Part, category: Category, configuration: Configuration) -> bool:
        for other_category in BUILD_ORDER:
            if other_category == category:
                continue
            other = configuration.get(other_category)
            if other is None:
                continue
            direction = expected_edge(other_category, category)
            if direction is None:
                continue

            key: EdgeKey = frozenset({(category, part.name), (other_category, other.name)})
            compatible = self._edge_cache.get(key)
            if compatible is None:
                src, dst = direction
                by_category = {category: part.name, other_category: other.name}
                compatible = await self.store.has_edge(src, by_category[src], dst, by_category[dst])
                self._edge_cache[key] = compatible
            if not compatible:
                logger.debug(
                    "[COMPAT] %s %r rejected by %s %r", category.value, part.name, other_category.value, other.name
                )
                return False
        return True
