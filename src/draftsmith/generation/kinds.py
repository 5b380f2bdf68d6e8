"""LiteLLM-backed handlers for the built-in artifact kinds."""

from __future__ import annotations

from collections.abc import Iterable

from draftsmith.config import DraftsmithConfig
from draftsmith.db.models import ArtifactKind
from draftsmith.generation import prompts
from draftsmith.generation.handlers import HandlerRegistry, Invocation, LLMHandler, ModelSettings
from draftsmith.llm.client import generate_image, stream_json, stream_text
from draftsmith.schemas.base import ContentSchema, SchemaRegistry


class _JsonStreamHandler(LLMHandler):
    """Streams a JSON-mode completion as growing partial objects."""

    def produce(self, invocation: Invocation) -> Iterable[str | dict]:
        return stream_json(
            self.settings.model,
            invocation.messages(),
            max_tokens=self.settings.max_tokens,
            temperature=self.settings.temperature,
            num_retries=self.settings.num_retries,
        )


class TextHandler(LLMHandler):
    kind = ArtifactKind.TEXT

    def create_invocation(self, title: str) -> Invocation:
        return Invocation(system=prompts.TEXT_PROMPT, prompt=title)

    def update_invocation(self, current_content: str, description: str) -> Invocation:
        return Invocation(system=prompts.update_prompt("text", current_content), prompt=description)

    def produce(self, invocation: Invocation) -> Iterable[str | dict]:
        return stream_text(
            self.settings.model,
            invocation.messages(),
            max_tokens=self.settings.max_tokens,
            temperature=self.settings.temperature,
            num_retries=self.settings.num_retries,
        )


class CodeHandler(_JsonStreamHandler):
    kind = ArtifactKind.CODE

    def __init__(
        self,
        schema: ContentSchema,
        settings: ModelSettings | None = None,
        language: str = "python",
    ) -> None:
        super().__init__(schema, settings)
        self.language = language

    def create_invocation(self, title: str) -> Invocation:
        return Invocation(system=prompts.CODE_PROMPT.format(language=self.language), prompt=title)

    def update_invocation(self, current_content: str, description: str) -> Invocation:
        return Invocation(
            system=prompts.update_prompt("code", current_content)
            + '\nRespond with a JSON object {"code": "<source>"}.',
            prompt=description,
        )

    def metadata(self, content: str) -> dict:
        return {"language": self.language}


class SheetHandler(_JsonStreamHandler):
    kind = ArtifactKind.SHEET

    def create_invocation(self, title: str) -> Invocation:
        return Invocation(system=prompts.SHEET_PROMPT, prompt=title)

    def update_invocation(self, current_content: str, description: str) -> Invocation:
        return Invocation(
            system=prompts.update_prompt("sheet", current_content)
            + '\nRespond with a JSON object {"csv": "<csv text>"}.',
            prompt=description,
        )


class ChartHandler(_JsonStreamHandler):
    kind = ArtifactKind.CHART

    def create_invocation(self, title: str) -> Invocation:
        return Invocation(system=prompts.CHART_PROMPT, prompt=title)

    def update_invocation(self, current_content: str, description: str) -> Invocation:
        return Invocation(
            system=prompts.update_prompt("chart", current_content, prompts.CHART_PROMPT),
            prompt=description,
        )


class SlideHandler(_JsonStreamHandler):
    kind = ArtifactKind.SLIDE

    def create_invocation(self, title: str) -> Invocation:
        return Invocation(system=prompts.SLIDE_PROMPT, prompt=title)

    def update_invocation(self, current_content: str, description: str) -> Invocation:
        return Invocation(
            system=prompts.update_prompt("slide", current_content, prompts.SLIDE_PROMPT),
            prompt=description,
        )


class ImageHandler(LLMHandler):
    """Single-shot image generation; the whole image arrives as one partial.

    Updates regenerate from the change description; the prior image is not
    sent to the model.
    """

    kind = ArtifactKind.IMAGE

    def __init__(
        self, schema: ContentSchema, settings: ModelSettings | None = None, size: str = "1024x1024"
    ) -> None:
        super().__init__(schema, settings)
        self.size = size

    def create_invocation(self, title: str) -> Invocation:
        return Invocation(system="", prompt=title)

    def update_invocation(self, current_content: str, description: str) -> Invocation:
        return Invocation(system="", prompt=description)

    def _events(self, invocation: Invocation, strict: bool):
        # The output shape is fixed by the API; a retry is a plain re-run.
        return super()._events(invocation, False)

    def produce(self, invocation: Invocation) -> Iterable[str | dict]:
        yield generate_image(
            self.settings.model,
            invocation.prompt,
            size=self.size,
            num_retries=self.settings.num_retries,
        )

    def metadata(self, content: str) -> dict:
        return {"encoding": "base64", "format": "png"}


def default_handlers(cfg: DraftsmithConfig, schemas: SchemaRegistry) -> HandlerRegistry:
    """One LiteLLM handler per built-in kind, configured from *cfg*."""
    g = cfg.generation
    text_settings = ModelSettings(
        model=g.model,
        max_tokens=g.max_tokens,
        temperature=g.temperature,
        num_retries=g.num_retries,
    )
    image_settings = ModelSettings(model=g.image_model, num_retries=g.num_retries)

    return HandlerRegistry(
        [
            TextHandler(schemas.get(ArtifactKind.TEXT), text_settings),
            CodeHandler(schemas.get(ArtifactKind.CODE), text_settings, language=cfg.code.language),
            SheetHandler(schemas.get(ArtifactKind.SHEET), text_settings),
            ChartHandler(schemas.get(ArtifactKind.CHART), text_settings),
            SlideHandler(schemas.get(ArtifactKind.SLIDE), text_settings),
            ImageHandler(schemas.get(ArtifactKind.IMAGE), image_settings),
        ]
    )
