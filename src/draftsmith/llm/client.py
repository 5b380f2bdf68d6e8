"""LiteLLM client wrapper: API key validation, completion, streaming, images.

All model calls made by artifact handlers and the suggestion generator route
through this module. LiteLLM's built-in retry covers transient errors on
connection setup (num_retries, exponential backoff); failures after the stream
has started surface to the caller as exceptions from the iterator.
"""

from __future__ import annotations

import os
from collections.abc import Iterator

import litellm

from draftsmith.llm.partial_json import parse_partial

# Keep LiteLLM quiet; draftsmith loggers carry what matters.
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]


# Env var per provider; None means the provider runs locally without a key.
_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "google": "GOOGLE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "xai": "XAI_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,
    "ollama_chat": None,
}


def provider_of(model: str) -> str:
    """Return the provider prefix of a 'provider/model' string ('openai' if none)."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def api_key_env(provider: str) -> str | None:
    """Env var holding the API key for *provider* (None when no key is needed)."""
    return _PROVIDER_ENV.get(provider, f"{provider.upper()}_API_KEY")


def validate_api_key(model: str) -> None:
    """Fail fast when the key for *model*'s provider is not exported.

    Raises:
        EnvironmentError: Naming the variable to set.
    """
    provider = provider_of(model)
    env_var = api_key_env(provider)

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


def complete(
    model: str,
    messages: list[dict],
    max_tokens: int = 2048,
    temperature: float = 0.0,
    num_retries: int = 3,
) -> str:
    """One blocking completion; returns the reply text ("" when the model sent none).

    LiteLLM retries connection failures *num_retries* times before raising.
    """
    response = litellm.completion(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
        num_retries=num_retries,
    )
    return response.choices[0].message.content or ""


def stream_text(
    model: str,
    messages: list[dict],
    max_tokens: int = 4096,
    temperature: float = 0.0,
    num_retries: int = 3,
    json_mode: bool = False,
) -> Iterator[str]:
    """Stream a completion, yielding each non-empty text delta in order.

    Args:
        json_mode: Ask the provider for a JSON object response.
    """
    kwargs: dict = {}
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}
    response = litellm.completion(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
        num_retries=num_retries,
        stream=True,
        **kwargs,
    )
    for chunk in response:
        if not chunk.choices:
            continue
        delta = chunk.choices[0].delta.content
        if delta:
            yield delta


def stream_json(
    model: str,
    messages: list[dict],
    max_tokens: int = 4096,
    temperature: float = 0.0,
    num_retries: int = 3,
) -> Iterator[dict | str]:
    """Stream a JSON-mode completion as a sequence of growing partial objects.

    Yields a new dict each time the parsed prefix changes. If the finished
    text never parses as a JSON object, the raw text is yielded last so the
    caller can see (and reject) what the model actually produced.
    """
    buffer = ""
    last: dict | None = None
    for delta in stream_text(
        model,
        messages,
        max_tokens=max_tokens,
        temperature=temperature,
        num_retries=num_retries,
        json_mode=True,
    ):
        buffer += delta
        parsed = parse_partial(buffer)
        if isinstance(parsed, dict) and parsed != last:
            last = parsed
            yield parsed
    if last is None and buffer.strip():
        yield buffer


def generate_image(model: str, prompt: str, size: str = "1024x1024", num_retries: int = 3) -> str:
    """Generate one image and return it base64-encoded.

    Raises:
        ValueError: If the provider returned no base64 payload.
    """
    response = litellm.image_generation(
        model=model,
        prompt=prompt,
        size=size,
        response_format="b64_json",
        num_retries=num_retries,
    )
    item = response.data[0]
    b64 = item.get("b64_json") if isinstance(item, dict) else getattr(item, "b64_json", None)
    if not b64:
        raise ValueError(f"Image model '{model}' returned no base64 data")
    return b64
