"""Tests for the AI analyzer wrapper."""
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from conftest import ai_payload
from app.schemas.analysis import ContentType, RiskCategory
from app.schemas.errors import ProviderError
from app.schemas.openai import OpenAIError, OpenAIErrorType
from app.services.tos_analyzer import TosAnalyzer, build_analysis_prompt, parse_json_response


def completion(content, tokens=640, model="gpt-4o-mini-2024-07-18"):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=tokens),
        model=model,
    )


def analyzer_returning(result=None, error=None):
    service = SimpleNamespace(create_chat_completion=AsyncMock(return_value=result, side_effect=error))
    return TosAnalyzer(openai_service=service, model="gpt-4o-mini")


def test_prompt_lists_every_category_key():
    prompt = build_analysis_prompt("Some terms", ContentType.PRIVACY_POLICY)

    assert "Analyze the following privacy policy" in prompt
    for category in RiskCategory:
        assert f"(key: {category.value})" in prompt
    assert prompt.index("Some terms") < prompt.index("Respond in JSON format")


def test_parse_json_strips_code_fences():
    assert parse_json_response('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_json_response('```\n{"a": 1}\n```') == {"a": 1}


def test_parse_json_rejects_non_objects():
    with pytest.raises(ValueError):
        parse_json_response("[1, 2]")
    with pytest.raises(ValueError):
        parse_json_response("")
    with pytest.raises(json.JSONDecodeError):
        parse_json_response("not json")


@pytest.mark.asyncio
async def test_analyze_returns_payload_and_telemetry():
    analyzer = analyzer_returning(completion(json.dumps(ai_payload())))

    output = await analyzer.analyze("Some terms", ContentType.TERMS_OF_SERVICE)

    assert output.payload["overall_risk_score"] == 72
    assert output.tokens_used == 640
    assert output.model == "gpt-4o-mini-2024-07-18"
    kwargs = analyzer.openai_service.create_chat_completion.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["model"] == "gpt-4o-mini"
    assert [m["role"] for m in kwargs["messages"]] == ["system", "user"]


@pytest.mark.asyncio
async def test_malformed_reply_is_a_provider_error():
    analyzer = analyzer_returning(completion("I cannot help with that"))
    with pytest.raises(ProviderError):
        await analyzer.analyze("Some terms", ContentType.TERMS_OF_SERVICE)


@pytest.mark.asyncio
async def test_api_failure_is_a_provider_error():
    analyzer = analyzer_returning(error=OpenAIError("down", OpenAIErrorType.SERVER_ERROR))
    with pytest.raises(ProviderError) as exc_info:
        await analyzer.analyze("Some terms", ContentType.TERMS_OF_SERVICE)
    assert isinstance(exc_info.value.cause, OpenAIError)
