"""
意图解析模块 - Intent Parsing Module

把实体抽取器返回的 (value, label) 列表转换为 Intent。
Turn the (value, label) pairs returned by an entity extractor into an Intent.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import ExtractionError
from ..schemas import Category, Intent, PartRef, Purpose

logger = logging.getLogger(__name__)

Entity = Tuple[str, str]

WORKSTATION_KEYWORDS = ("workstation", "đồ họa", "render", "làm việc", "văn phòng", "office")
MILLION_MARKERS = ("triệu", "trieu", "tr")

# 标签 -> (类别, 匹配方式)
PART_LABELS: Dict[str, Tuple[Category, str]] = {
    "CPU": (Category.CPU, "name"),
    "GPU": (Category.GRAPHICS_CARD, "name"),
    "GraphicsCard": (Category.GRAPHICS_CARD, "name"),
    "GPUChipset": (Category.GRAPHICS_CARD, "chipset"),
    "RAM": (Category.RAM, "name"),
    "Motherboard": (Category.MOTHERBOARD, "name"),
    "InternalStorage": (Category.INTERNAL_STORAGE, "name"),
    "InternalHardDrive": (Category.INTERNAL_STORAGE, "name"),
    "CPUCooler": (Category.CPU_COOLER, "name"),
    "PowerSupply": (Category.POWER_SUPPLY, "name"),
    "Case": (Category.CASE, "name"),
}


def parse_budget(value: str) -> Optional[int]:
    """
    解析预算字符串 - Parse a free-form budget string

    "20 triệu" -> 20_000_000, "15tr" -> 15_000_000, "18.000.000đ" -> 18_000_000
    Returns None when the string holds no digits.
    """
    digits = re.sub(r"\D", "", value)
    if not digits:
        return None
    budget = int(digits)
    lowered = value.lower()
    if any(marker in lowered for marker in MILLION_MARKERS):
        budget *= 1_000_000
    return budget


def parse_purpose(value: str) -> Purpose:
    lowered = value.lower()
    if any(keyword in lowered for keyword in WORKSTATION_KEYWORDS):
        return Purpose.WORKSTATION
    return Purpose.GAMING


def parse_intent(text: str, entities: Iterable[Entity]) -> Intent:
    purpose = Purpose.GAMING
    budget: Optional[int] = None
    preferred: List[PartRef] = []

    for value, label in entities:
        value = str(value).strip()
        if not value:
            continue
        if label == "PURPOSE":
            purpose = parse_purpose(value)
        elif label == "BUDGET":
            parsed = parse_budget(value)
            if parsed is not None:
                budget = parsed
        elif label in PART_LABELS:
            category, match_by = PART_LABELS[label]
            preferred.append(PartRef(name=value, category=category, match_by=match_by))
        else:
            logger.debug("[INTENT] ignoring entity %r with label %s", value, label)

    if budget is None:
        raise ExtractionError(f"no budget found in input: {text!r}")

    logger.info(
        "[INTENT] purpose=%s budget=%d preferred=%s",
        purpose.value,
        budget,
        [f"{ref.category.value}:{ref.name}" for ref in preferred],
    )
    return Intent(
        text=text,
        purpose=purpose,
        budget=budget,
        initial_budget=budget,
        preferred_parts=preferred,
    )
