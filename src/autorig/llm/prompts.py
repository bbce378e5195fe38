"""LLM Prompt 模板定义"""

# 实体抽取 Prompt
ENTITY_EXTRACTION_PROMPT = """You extract PC build entities from a customer's message (often Vietnamese).
Return every entity you find as a (value, label) pair. Copy the value exactly as written.

Labels:
- PURPOSE: what the machine is for, e.g. "chơi game", "gaming", "đồ họa", "văn phòng", "render"
- BUDGET: the amount with its unit, e.g. "20 triệu", "15tr", "18.000.000đ"
- CPU: a processor model, e.g. "Ryzen 5 5600", "Core i5-12400F"
- GPU: a full graphics card name, e.g. "ASUS Dual RTX 3060 12GB"
- GPUChipset: a bare graphics chipset, e.g. "RTX 4060", "RX 7600"
- RAM, Motherboard, InternalStorage, CPUCooler, PowerSupply, Case: a named product of that kind

Rules:
- Do not invent entities; an empty list is a valid answer.
- At most one PURPOSE and one BUDGET.
- Output only the structured result, no markdown."""
