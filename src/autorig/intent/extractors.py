"""Entity extractors: the NER HTTP service and an LLM fallback."""

from __future__ import annotations

import logging
import time
from typing import List, Literal, Optional, Protocol, Tuple

import httpx
from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, Field

from ..errors import ExtractionError
from ..llm.prompts import ENTITY_EXTRACTION_PROMPT
from ..llm.providers import build_llm

logger = logging.getLogger(__name__)

EntityLabel = Literal[
    "PURPOSE",
    "BUDGET",
    "CPU",
    "GPU",
    "GPUChipset",
    "RAM",
    "Motherboard",
    "InternalStorage",
    "CPUCooler",
    "PowerSupply",
    "Case",
]


class IntentExtractor(Protocol):
    async def extract(self, text: str) -> List[Tuple[str, str]]: ...

    async def aclose(self) -> None: ...


class HttpIntentExtractor:
    """Client for the spaCy entity service: ``POST {base_url}/extract``."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={"Content-Type": "application/json"},
        )

    async def extract(self, text: str) -> List[Tuple[str, str]]:
        url = f"{self.base_url}/extract"
        start = time.time()
        try:
            response = await self.client.post(url, json={"text": text})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise ExtractionError(f"HTTP {e.response.status_code}: {e.response.text}") from e
        except httpx.RequestError as e:
            raise ExtractionError(f"Request failed: {e}") from e
        except ValueError as e:
            raise ExtractionError(f"Malformed extractor response: {e}") from e
        logger.debug("[PERF] extractor responded in %.3fs", time.time() - start)

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            raise ExtractionError("Malformed extractor response: missing 'data' list")
        entities: List[Tuple[str, str]] = []
        for item in data:
            if not isinstance(item, (list, tuple)) or len(item) != 2:
                raise ExtractionError(f"Malformed entity in extractor response: {item!r}")
            entities.append((str(item[0]), str(item[1])))
        return entities

    async def aclose(self) -> None:
        await self.client.aclose()


class ExtractedEntity(BaseModel):
    value: str = Field(description="文本原文片段 / the span as written by the user")
    label: EntityLabel


class ExtractedEntities(BaseModel):
    entities: List[ExtractedEntity] = Field(default_factory=list)


class LLMIntentExtractor:
    """
    LLM 实体抽取器 - LLM Entity Extractor

    用结构化输出让模型返回与 NER 服务相同的 (value, label) 列表。
    Asks a chat model for the same (value, label) list the NER service returns.
    """

    def __init__(self, provider: Literal["zhipu", "openrouter", "openai"] = "openai", llm=None):
        self.provider = provider
        self.llm = llm if llm is not None else build_llm(provider, temperature=0.0)
        self.prompt = ChatPromptTemplate.from_messages(
            [
                ("system", ENTITY_EXTRACTION_PROMPT),
                ("human", "{text}"),
            ]
        )

    async def extract(self, text: str) -> List[Tuple[str, str]]:
        if self.llm is None:
            raise ExtractionError(f"LLM provider {self.provider!r} is not configured")
        structured = self.llm.with_structured_output(ExtractedEntities)
        start = time.time()
        try:
            result = await (self.prompt | structured).ainvoke({"text": text})
        except Exception as e:
            raise ExtractionError(f"LLM extraction failed: {e}") from e
        logger.debug("[PERF] LLM extraction took %.3fs", time.time() - start)
        if result is None:
            raise ExtractionError("LLM returned no entities")
        return [(entity.value, entity.label) for entity in result.entities]

    async def aclose(self) -> None:
        return None
