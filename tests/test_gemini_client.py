import pytest
from unittest.mock import AsyncMock, MagicMock

from trekking_search.core.errors import ServiceUnavailableError
from trekking_search.nlp.gemini_client import GeminiClient, is_model_unavailable


def fake_genai(*outcomes):
    """A genai.Client stand-in whose generate_content yields the given outcomes in order."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        side_effect=[o if isinstance(o, Exception) else MagicMock(text=o) for o in outcomes]
    )
    return client


def called_models(client):
    return [c.kwargs["model"] for c in client.aio.models.generate_content.call_args_list]


def test_model_list_starts_with_primary_without_duplicates():
    gemini = GeminiClient(
        api_key="k", model="gemini-2.5-pro", fallback_models=["gemini-2.5-flash", "gemini-2.5-pro"]
    )

    assert gemini.models_to_try == ["gemini-2.5-pro", "gemini-2.5-flash"]


def test_not_found_detection():
    assert is_model_unavailable(Exception("404 models/gemini-x is not found for API version v1beta"))
    assert is_model_unavailable(Exception("Model is not supported for generateContent"))
    assert not is_model_unavailable(Exception("500 Internal error"))


@pytest.mark.asyncio
async def test_falls_back_when_model_is_missing():
    client = fake_genai(Exception("404 models/gemini-old is not found"), '{"ok": true}')
    gemini = GeminiClient(
        api_key="k", model="gemini-old", fallback_models=["gemini-2.5-flash"], client=client
    )

    text = await gemini.generate("prompt", json_output=True)

    assert text == '{"ok": true}'
    assert called_models(client) == ["gemini-old", "gemini-2.5-flash"]
    config = client.aio.models.generate_content.call_args.kwargs["config"]
    assert config.response_mime_type == "application/json"


@pytest.mark.asyncio
async def test_thinking_budget_is_only_sent_when_given():
    client = fake_genai("Short answer.", "Another answer.")
    gemini = GeminiClient(api_key="k", model="gemini-2.5-flash", fallback_models=[], client=client)

    await gemini.generate("prompt", max_output_tokens=200, thinking_budget=0)
    await gemini.generate("prompt")

    first, second = [c.kwargs["config"] for c in client.aio.models.generate_content.call_args_list]
    assert first.thinking_config.thinking_budget == 0
    assert first.max_output_tokens == 200
    assert second.thinking_config is None


@pytest.mark.asyncio
async def test_other_errors_are_terminal():
    client = fake_genai(Exception("429 RESOURCE_EXHAUSTED"), "never reached")
    gemini = GeminiClient(
        api_key="k", model="gemini-2.5-flash", fallback_models=["gemini-2.5-pro"], client=client
    )

    with pytest.raises(Exception, match="RESOURCE_EXHAUSTED"):
        await gemini.generate("prompt")

    assert called_models(client) == ["gemini-2.5-flash"]


@pytest.mark.asyncio
async def test_last_missing_model_raises():
    client = fake_genai(Exception("model a not found"), Exception("model b not found"))
    gemini = GeminiClient(api_key="k", model="a", fallback_models=["b"], client=client)

    with pytest.raises(Exception, match="model b not found"):
        await gemini.generate("prompt")


@pytest.mark.asyncio
async def test_unconfigured_client_is_unavailable():
    gemini = GeminiClient(api_key="")

    assert not gemini.is_available()
    with pytest.raises(ServiceUnavailableError):
        await gemini.generate("prompt")
