"""LiteLLM access and streamed-JSON parsing."""
