"""Draftsmith: streamed, validated, versioned LLM artifact generation."""

__version__ = "0.1.0"
