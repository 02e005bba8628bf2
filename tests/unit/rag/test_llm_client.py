"""Tests for the LiteLLM client wrapper."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from repodigest.rag.llm_client import complete, embed, validate_api_key


# ------------------------------------------------------------------
# validate_api_key
# ------------------------------------------------------------------

def test_validate_api_key_gemini_missing(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="GEMINI_API_KEY"):
        validate_api_key("gemini/gemini-1.5-flash")


def test_validate_api_key_passes_if_set(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    validate_api_key("gemini/text-embedding-004")


def test_validate_api_key_ollama_no_key_required():
    validate_api_key("ollama/llama3")


def test_validate_api_key_bare_model_treated_as_openai(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="OPENAI_API_KEY"):
        validate_api_key("gpt-4o-mini")


# ------------------------------------------------------------------
# complete / embed
# ------------------------------------------------------------------

@pytest.mark.asyncio
async def test_complete_forwards_settings():
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = "answer"
    with patch(
        "repodigest.rag.llm_client.litellm.acompletion", new=AsyncMock(return_value=response)
    ) as mock_call:
        text = await complete(
            "gemini/gemini-1.5-flash",
            [{"role": "user", "content": "hi"}],
            max_tokens=42,
            num_retries=2,
            timeout=5.0,
        )
    assert text == "answer"
    kwargs = mock_call.call_args.kwargs
    assert kwargs["max_tokens"] == 42
    assert kwargs["num_retries"] == 2
    assert kwargs["timeout"] == 5.0
    assert kwargs["temperature"] == 0.0


@pytest.mark.asyncio
async def test_complete_none_content_is_empty_string():
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = None
    with patch("repodigest.rag.llm_client.litellm.acompletion", new=AsyncMock(return_value=response)):
        assert await complete("m/x", []) == ""


@pytest.mark.asyncio
async def test_complete_propagates_errors():
    with patch(
        "repodigest.rag.llm_client.litellm.acompletion",
        new=AsyncMock(side_effect=RuntimeError("rate limited")),
    ):
        with pytest.raises(RuntimeError):
            await complete("m/x", [])


@pytest.mark.asyncio
async def test_embed_returns_list():
    response = MagicMock()
    response.data = [{"embedding": (0.25, 0.75)}]
    with patch(
        "repodigest.rag.llm_client.litellm.aembedding", new=AsyncMock(return_value=response)
    ) as mock_call:
        vector = await embed("gemini/text-embedding-004", "hello")
    assert vector == [0.25, 0.75]
    assert mock_call.call_args.kwargs["input"] == ["hello"]
