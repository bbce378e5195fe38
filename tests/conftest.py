from pathlib import Path
from typing import List, Optional, Tuple

import pytest

from autorig.config import ResolverLimits, Settings
from autorig.data.repository import InMemoryGraphStore
from autorig.schemas import Category, Configuration, Part

ROOT = Path(__file__).resolve().parents[1]

RYZEN = "Ryzen 5 5600"
I5 = "Core i5-12400F"
AK400 = "Deepcool AK400"
B550 = "MSI B550M PRO-VDH"
B660 = "ASUS PRIME B660M-A"
RTX3060 = "RTX 3060 12GB"
FURY = "Kingston Fury 16GB (2x8)"
SSD = "Samsung 980 500GB"
CASE = "Xigmatek Gaming X"
PSU = "Cooler Master MWE 650"

PARTS = [
    {"category": "CPU", "name": RYZEN, "price": 3_000_000, "tdp": 65, "benchmarkScore": 21500, "solds": 320},
    {"category": "CPU", "name": I5, "price": 2_900_000, "tdp": 65, "benchmarkScore": 19500, "solds": 410},
    {"category": "CPUCooler", "name": AK400, "price": 700_000, "solds": 500},
    {
        "category": "Motherboard",
        "name": B550,
        "price": 2_000_000,
        "memorySlots": 4,
        "memoryMax": 128,
        "pcieX16Slots": 1,
        "sata6Gbps": 4,
        "m2Slots": ["M.2-2280 M-key"],
    },
    {
        "category": "Motherboard",
        "name": B660,
        "price": 2_100_000,
        "memorySlots": 4,
        "memoryMax": 128,
        "pcieX16Slots": 1,
        "sata6Gbps": 4,
        "m2Slots": ["M.2-2280 M-key", "M.2-2280 M-key"],
    },
    {
        "category": "GraphicsCard",
        "name": RTX3060,
        "price": 5_000_000,
        "tdp": 170,
        "chipset": "RTX 3060",
        "interface": "PCIe x16",
        "slotNumber": 1,
    },
    {"category": "RAM", "name": FURY, "price": 1_000_000, "moduleNumber": 2, "moduleSize": 8},
    {"category": "InternalStorage", "name": SSD, "price": 1_200_000, "formFactor": "M.2-2280"},
    {"category": "Case", "name": CASE, "price": 900_000},
    {"category": "PowerSupply", "name": PSU, "price": 1_500_000, "wattage": 650},
]

EDGES = [
    ("CPU", RYZEN, "Motherboard", B550),
    ("CPU", I5, "Motherboard", B660),
    ("CPU", RYZEN, "CPUCooler", AK400),
    ("CPU", I5, "CPUCooler", AK400),
    ("Motherboard", B550, "CPUCooler", AK400),
    ("Motherboard", B660, "CPUCooler", AK400),
    ("Motherboard", B550, "RAM", FURY),
    ("Motherboard", B660, "RAM", FURY),
    ("Motherboard", B550, "InternalStorage", SSD),
    ("Motherboard", B660, "InternalStorage", SSD),
    ("Motherboard", B550, "PowerSupply", PSU),
    ("Motherboard", B660, "PowerSupply", PSU),
    ("Motherboard", B550, "Case", CASE),
    ("Motherboard", B660, "Case", CASE),
    ("Case", CASE, "PowerSupply", PSU),
    ("Case", CASE, "GraphicsCard", RTX3060),
    ("PowerSupply", PSU, "GraphicsCard", RTX3060),
]


def make_part(category: Category, name: str, **props) -> Part:
    return Part.model_validate({"name": name, "category": category, **props})


def fixture_part(name: str) -> Part:
    for item in PARTS:
        if item["name"] == name:
            return Part.model_validate(item)
    raise KeyError(name)


def build_store(without: Tuple[str, ...] = ()) -> InMemoryGraphStore:
    return InMemoryGraphStore(
        [p for p in PARTS if p["category"] not in without],
        EDGES,
    )


class CountingStore(InMemoryGraphStore):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.edge_queries: List[Tuple[Category, str, Category, str]] = []
        self.range_queries: List[Tuple[Category, int, str]] = []
        self.name_queries: List[Tuple[Category, str]] = []

    async def has_edge(self, src_category, src_name, dst_category, dst_name):
        self.edge_queries.append((src_category, src_name, dst_category, dst_name))
        return await super().has_edge(src_category, src_name, dst_category, dst_name)

    async def find_within_price(self, category, max_price, order_field, descending):
        self.range_queries.append((category, max_price, order_field))
        return await super().find_within_price(category, max_price, order_field, descending)

    async def search_by_name(self, category, text, min_score):
        self.name_queries.append((category, text))
        return await super().search_by_name(category, text, min_score)


def counting_store(without: Tuple[str, ...] = ()) -> CountingStore:
    return CountingStore([p for p in PARTS if p["category"] not in without], EDGES)


class StaticExtractor:
    def __init__(self, entities):
        self.entities = list(entities)
        self.calls: List[str] = []
        self.closed = False

    async def extract(self, text):
        self.calls.append(text)
        return list(self.entities)

    async def aclose(self):
        self.closed = True


class RecordingChannel:
    def __init__(self):
        self.published: List[Tuple[Configuration, Optional[str]]] = []

    def publish(self, configuration, requester_id=None):
        self.published.append((configuration, requester_id))


GAMING_ENTITIES = [("chơi game", "PURPOSE"), ("20 triệu", "BUDGET"), (RYZEN, "CPU")]


@pytest.fixture
def store() -> InMemoryGraphStore:
    return build_store()


@pytest.fixture
def limits() -> ResolverLimits:
    return ResolverLimits()


@pytest.fixture
def settings() -> Settings:
    return Settings(request_timeout_seconds=0.0)
