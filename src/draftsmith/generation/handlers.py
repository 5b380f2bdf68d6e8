"""Per-kind handler contract and registry.

A handler turns a create or update request into a stream of ContentEvents.
Kinds are added by registering a handler, never by branching on the kind in
shared pipeline code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from typing import ClassVar

from draftsmith.db.models import ArtifactKind
from draftsmith.errors import UnknownKindError
from draftsmith.generation import prompts
from draftsmith.generation.events import ContentEvent
from draftsmith.llm.client import validate_api_key
from draftsmith.schemas.base import ContentSchema


class ArtifactHandler(ABC):
    """Contract implemented once per artifact kind."""

    kind: ClassVar[ArtifactKind]

    def preflight(self) -> None:
        """Fail fast before any stream starts (e.g. missing API key)."""

    @abstractmethod
    def on_create(self, title: str, *, strict: bool = False) -> Iterable[ContentEvent]:
        """Stream new content for *title*.

        Args:
            strict: True on the retry attempt; restate the required output shape.
        """

    @abstractmethod
    def on_update(
        self, current_content: str, description: str, *, strict: bool = False
    ) -> Iterable[ContentEvent]:
        """Stream revised content from *current_content* and a change *description*."""

    def metadata(self, content: str) -> dict:
        """Kind-specific metadata stored alongside accepted *content*."""
        return {}


class HandlerRegistry:
    """Maps artifact kinds to their handlers."""

    def __init__(self, handlers: Iterable[ArtifactHandler] = ()) -> None:
        self._handlers: dict[ArtifactKind, ArtifactHandler] = {}
        for handler in handlers:
            self.register(handler)

    def register(self, handler: ArtifactHandler) -> None:
        self._handlers[handler.kind] = handler

    def get(self, kind: ArtifactKind | str) -> ArtifactHandler:
        try:
            return self._handlers[ArtifactKind(kind)]
        except (KeyError, ValueError):
            raise UnknownKindError(str(getattr(kind, "value", kind))) from None

    def kinds(self) -> list[ArtifactKind]:
        return list(self._handlers)

    def __contains__(self, kind: object) -> bool:
        try:
            return ArtifactKind(kind) in self._handlers
        except ValueError:
            return False


@dataclass(frozen=True)
class Invocation:
    """Instruction for one model call: system prompt plus user prompt."""

    system: str
    prompt: str

    def stricter(self, shape_hint: str) -> Invocation:
        return replace(
            self,
            system=prompts.strict_system(self.system, shape_hint),
            prompt=prompts.strict_prompt(self.prompt, shape_hint),
        )

    def messages(self) -> list[dict]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.prompt},
        ]


@dataclass
class ModelSettings:
    model: str = "openai/gpt-4o"
    max_tokens: int = 4_096
    temperature: float = 0.0
    num_retries: int = 3


class LLMHandler(ArtifactHandler):
    """Handler backed by a LiteLLM model.

    Subclasses supply the invocations and how an invocation becomes payloads;
    this class applies the stricter retry instruction and wraps payloads as
    events.
    """

    def __init__(self, schema: ContentSchema, settings: ModelSettings | None = None) -> None:
        if schema.kind is not self.kind:
            raise ValueError(f"{type(self).__name__} needs a {self.kind.value} schema, got {schema.kind.value}")
        self.schema = schema
        self.settings = settings or ModelSettings()

    def preflight(self) -> None:
        validate_api_key(self.settings.model)

    @abstractmethod
    def create_invocation(self, title: str) -> Invocation: ...

    @abstractmethod
    def update_invocation(self, current_content: str, description: str) -> Invocation: ...

    @abstractmethod
    def produce(self, invocation: Invocation) -> Iterable[str | dict]:
        """Yield raw payloads (fragments or snapshots) for *invocation*."""

    def on_create(self, title: str, *, strict: bool = False) -> Iterator[ContentEvent]:
        return self._events(self.create_invocation(title), strict)

    def on_update(
        self, current_content: str, description: str, *, strict: bool = False
    ) -> Iterator[ContentEvent]:
        return self._events(self.update_invocation(current_content, description), strict)

    def _events(self, invocation: Invocation, strict: bool) -> Iterator[ContentEvent]:
        if strict:
            invocation = invocation.stricter(self.schema.shape_hint)
        for payload in self.produce(invocation):
            yield ContentEvent.partial(payload)
        yield ContentEvent.done()
