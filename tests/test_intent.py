import pytest

from dealflow.schemas.evaluation import IntentKind
from dealflow.services.intent import IntentClassifier


@pytest.mark.parametrize(
    "reply, kind, query",
    [
        ('{"intent": "investment_query", "query": "Is solar risky?"}', IntentKind.INVESTMENT_QUERY, "Is solar risky?"),
        ('```json\n{"intent": "search_query", "query": "BTC price"}\n```', IntentKind.SEARCH_QUERY, "BTC price"),
        ('{"intent": "general_info"}', IntentKind.GENERAL_INFO, "@dao_bot hello"),
    ],
)
async def test_structured_reply_is_parsed(generator, reply, kind, query):
    generator.replies["intent"] = reply

    intent = await IntentClassifier(generator).classify("@dao_bot hello")

    assert intent.kind == kind
    assert intent.query == query


@pytest.mark.parametrize(
    "reply",
    [
        "not json at all",
        '{"intent": "world_domination", "query": "x"}',
        '["investment_query"]',
        '{"intent": "general_info", "query": 42}',
    ],
)
async def test_malformed_reply_falls_back_to_other(generator, reply):
    generator.replies["intent"] = reply

    intent = await IntentClassifier(generator).classify("@dao_bot what now")

    assert intent.kind == IntentKind.OTHER
    assert intent.query == "@dao_bot what now"


async def test_generation_failure_falls_back_to_other(generator):
    generator.failing.add("intent")

    intent = await IntentClassifier(generator).classify("@dao_bot hi")

    assert intent.kind == IntentKind.OTHER
    assert intent.query == "@dao_bot hi"
