"""Intent 模块：实体抽取与意图解析"""

from .extractors import HttpIntentExtractor, IntentExtractor, LLMIntentExtractor
from .parse import PART_LABELS, parse_budget, parse_intent, parse_purpose

__all__ = [
    "HttpIntentExtractor",
    "IntentExtractor",
    "LLMIntentExtractor",
    "PART_LABELS",
    "parse_budget",
    "parse_intent",
    "parse_purpose",
]
