"""Tests for the LiteLLM client wrapper."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from draftsmith.llm.client import (
    api_key_env,
    complete,
    generate_image,
    provider_of,
    stream_json,
    stream_text,
    validate_api_key,
)


def _chunk(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


# ------------------------------------------------------------------
# validate_api_key
# ------------------------------------------------------------------


def test_validate_api_key_raises_if_missing(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="OPENAI_API_KEY"):
        validate_api_key("openai/gpt-4o")


def test_validate_api_key_passes_if_set(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")
    validate_api_key("openai/gpt-4o")  # should not raise


def test_validate_api_key_anthropic(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="ANTHROPIC_API_KEY"):
        validate_api_key("anthropic/claude-3-5-sonnet-20241022")


def test_validate_api_key_ollama_no_key_required():
    validate_api_key("ollama/llama2")


def test_validate_api_key_unprefixed_model_is_openai(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="OPENAI_API_KEY"):
        validate_api_key("gpt-4o")


def test_unknown_provider_uses_conventional_env_name(monkeypatch):
    monkeypatch.delenv("DEEPSEEK_API_KEY", raising=False)
    assert api_key_env("deepseek") == "DEEPSEEK_API_KEY"
    with pytest.raises(EnvironmentError, match="DEEPSEEK_API_KEY"):
        validate_api_key("deepseek/deepseek-chat")


def test_provider_of():
    assert provider_of("Anthropic/claude") == "anthropic"
    assert provider_of("gpt-4o") == "openai"


# ------------------------------------------------------------------
# complete()
# ------------------------------------------------------------------


def test_complete_returns_content():
    mock_response = MagicMock()
    mock_response.choices[0].message.content = "Hello, world!"
    with patch("draftsmith.llm.client.litellm.completion", return_value=mock_response) as mock:
        result = complete("openai/gpt-4o", [{"role": "user", "content": "hi"}], num_retries=2)

    assert result == "Hello, world!"
    assert mock.call_args.kwargs["num_retries"] == 2


def test_complete_none_content_is_empty_string():
    mock_response = MagicMock()
    mock_response.choices[0].message.content = None
    with patch("draftsmith.llm.client.litellm.completion", return_value=mock_response):
        assert complete("openai/gpt-4o", []) == ""


# ------------------------------------------------------------------
# stream_text() / stream_json()
# ------------------------------------------------------------------


def test_stream_text_yields_non_empty_deltas_in_order():
    chunks = [_chunk("Hel"), _chunk(None), SimpleNamespace(choices=[]), _chunk("lo")]
    with patch("draftsmith.llm.client.litellm.completion", return_value=iter(chunks)) as mock:
        out = list(stream_text("openai/gpt-4o", [{"role": "user", "content": "x"}]))

    assert out == ["Hel", "lo"]
    assert mock.call_args.kwargs["stream"] is True
    assert "response_format" not in mock.call_args.kwargs


def test_stream_text_json_mode_requests_json_object():
    with patch("draftsmith.llm.client.litellm.completion", return_value=iter([])) as mock:
        list(stream_text("openai/gpt-4o", [], json_mode=True))
    assert mock.call_args.kwargs["response_format"] == {"type": "json_object"}


def test_stream_json_yields_growing_objects():
    pieces = ['{"type": "ba', 'r", "data": [', '{"m": 1}', "]}"]
    with patch("draftsmith.llm.client.litellm.completion", return_value=iter(map(_chunk, pieces))):
        out = list(stream_json("openai/gpt-4o", []))

    assert out[-1] == {"type": "bar", "data": [{"m": 1}]}
    assert all(isinstance(o, dict) for o in out)
    # Consecutive snapshots differ.
    assert all(a != b for a, b in zip(out, out[1:]))


def test_stream_json_yields_raw_text_when_never_json():
    pieces = ["month,sales\n", "Jan,1\n"]
    with patch("draftsmith.llm.client.litellm.completion", return_value=iter(map(_chunk, pieces))):
        out = list(stream_json("openai/gpt-4o", []))
    assert out == ["month,sales\nJan,1\n"]


def test_stream_text_propagates_mid_stream_error():
    def broken():
        yield _chunk("ok")
        raise ConnectionError("reset")

    with patch("draftsmith.llm.client.litellm.completion", return_value=broken()):
        gen = stream_text("openai/gpt-4o", [])
        assert next(gen) == "ok"
        with pytest.raises(ConnectionError):
            next(gen)


# ------------------------------------------------------------------
# generate_image()
# ------------------------------------------------------------------


def test_generate_image_returns_b64():
    response = SimpleNamespace(data=[SimpleNamespace(b64_json="aGVsbG8=")])
    with patch("draftsmith.llm.client.litellm.image_generation", return_value=response) as mock:
        assert generate_image("openai/dall-e-3", "a cat") == "aGVsbG8="
    assert mock.call_args.kwargs["response_format"] == "b64_json"


def test_generate_image_accepts_dict_items():
    response = SimpleNamespace(data=[{"b64_json": "aGk="}])
    with patch("draftsmith.llm.client.litellm.image_generation", return_value=response):
        assert generate_image("openai/dall-e-3", "a dog") == "aGk="


def test_generate_image_without_payload_raises():
    response = SimpleNamespace(data=[SimpleNamespace(b64_json=None)])
    with patch("draftsmith.llm.client.litellm.image_generation", return_value=response):
        with pytest.raises(ValueError, match="no base64"):
            generate_image("openai/dall-e-3", "a bird")
