import asyncio
import json

import httpx
import pytest
from langchain_core.runnables import RunnableLambda

from autorig.errors import ExtractionError
from autorig.intent import HttpIntentExtractor, LLMIntentExtractor, parse_budget, parse_intent, parse_purpose
from autorig.intent.extractors import ExtractedEntities, ExtractedEntity
from autorig.schemas import Category, Purpose


@pytest.mark.parametrize(
    "value, expected",
    [
        ("20 triệu", 20_000_000),
        ("15tr", 15_000_000),
        ("25 trieu", 25_000_000),
        ("18.000.000đ", 18_000_000),
        ("12,500,000 VND", 12_500_000),
        ("khoảng", None),
    ],
)
def test_parse_budget(value, expected):
    assert parse_budget(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("chơi game", Purpose.GAMING),
        ("gaming", Purpose.GAMING),
        ("làm đồ họa", Purpose.WORKSTATION),
        ("Văn phòng", Purpose.WORKSTATION),
        ("render 3D", Purpose.WORKSTATION),
        ("streaming", Purpose.GAMING),
    ],
)
def test_parse_purpose(value, expected):
    assert parse_purpose(value) == expected


def test_parse_intent_maps_labels():
    intent = parse_intent(
        "pc đồ họa 30 triệu ryzen 7 rtx 4060",
        [
            ("đồ họa", "PURPOSE"),
            ("30 triệu", "BUDGET"),
            ("Ryzen 7 5700X", "CPU"),
            ("RTX 4060", "GPUChipset"),
            ("ASUS Dual RTX 3060", "GPU"),
            ("Samsung 980", "InternalHardDrive"),
            ("blue", "COLOR"),
        ],
    )
    assert intent.purpose == Purpose.WORKSTATION
    assert intent.budget == intent.initial_budget == 30_000_000
    refs = [(ref.category, ref.name, ref.match_by) for ref in intent.preferred_parts]
    assert refs == [
        (Category.CPU, "Ryzen 7 5700X", "name"),
        (Category.GRAPHICS_CARD, "RTX 4060", "chipset"),
        (Category.GRAPHICS_CARD, "ASUS Dual RTX 3060", "name"),
        (Category.INTERNAL_STORAGE, "Samsung 980", "name"),
    ]


def test_missing_budget_is_an_extraction_error():
    with pytest.raises(ExtractionError):
        parse_intent("pc gaming", [("gaming", "PURPOSE")])
    with pytest.raises(ExtractionError):
        parse_intent("pc gaming", [("nhiều tiền", "BUDGET")])


def test_for_run_restores_budget():
    intent = parse_intent("x", [("20tr", "BUDGET")])
    intent.budget = 1
    intent.preferred_cost_deducted = True
    run = intent.for_run()
    assert run.budget == 20_000_000
    assert not run.preferred_cost_deducted
    assert intent.budget == 1


def _http_extractor(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpIntentExtractor("http://ner.local/", client=client)


def test_http_extractor_posts_text_and_reads_data():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": [["20 triệu", "BUDGET"], ["Ryzen 5 5600", "CPU"]]})

    entities = asyncio.run(_http_extractor(handler).extract("pc 20 triệu"))
    assert seen == {"url": "http://ner.local/extract", "body": {"text": "pc 20 triệu"}}
    assert entities == [("20 triệu", "BUDGET"), ("Ryzen 5 5600", "CPU")]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, json={"entities": []}),
        httpx.Response(200, json={"data": [["only-one"]]}),
        httpx.Response(200, text="not json"),
    ],
)
def test_http_extractor_failures(response):
    with pytest.raises(ExtractionError):
        asyncio.run(_http_extractor(lambda request: response).extract("x"))


def test_http_extractor_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ExtractionError):
        asyncio.run(_http_extractor(handler).extract("x"))


class FakeLLM:
    def __init__(self, result):
        self.result = result
        self.schema = None

    def with_structured_output(self, schema):
        self.schema = schema

        async def respond(_):
            return self.result

        return RunnableLambda(respond)


def test_llm_extractor_returns_label_pairs():
    llm = FakeLLM(
        ExtractedEntities(
            entities=[
                ExtractedEntity(value="20 triệu", label="BUDGET"),
                ExtractedEntity(value="RTX 4060", label="GPUChipset"),
            ]
        )
    )
    extractor = LLMIntentExtractor(llm=llm)
    assert asyncio.run(extractor.extract("pc 20 triệu rtx 4060")) == [
        ("20 triệu", "BUDGET"),
        ("RTX 4060", "GPUChipset"),
    ]
    assert llm.schema is ExtractedEntities


def test_llm_extractor_without_provider_fails(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ExtractionError):
        asyncio.run(LLMIntentExtractor("openai").extract("x"))


def test_build_llm_routes_provider_endpoints(monkeypatch):
    from autorig import llm

    monkeypatch.delenv("ZHIPU_API_KEY", raising=False)
    assert llm.build_llm("zhipu", 0.0) is None

    monkeypatch.setenv("ZHIPU_API_KEY", "test-key")
    monkeypatch.setenv("ZHIPU_MODEL", "glm-test")
    monkeypatch.delenv("ZHIPU_BASE_URL", raising=False)
    model = llm.build_llm("zhipu", 0.0)
    assert model.model_name == "glm-test"
    assert "bigmodel.cn" in str(model.openai_api_base)
    assert llm.__all__ == ["build_llm", "ENTITY_EXTRACTION_PROMPT"]
