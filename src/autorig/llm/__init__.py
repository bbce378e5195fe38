"""LLM 模块：模型构建与提示词"""

from .providers import build_llm
from .prompts import ENTITY_EXTRACTION_PROMPT

__all__ = [
    "build_llm",
    "ENTITY_EXTRACTION_PROMPT",
]
