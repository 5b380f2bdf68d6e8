"""Generation pipeline: handlers, stream consumer, retry controller, dispatcher."""

from draftsmith.generation.dispatcher import (
    DeltaChannel,
    GenerationDispatcher,
    GenerationHandle,
    GenerationResult,
    Mode,
    ResultStatus,
    SaveRequest,
)
from draftsmith.generation.events import ContentEvent, Delta, EventType
from draftsmith.generation.handlers import ArtifactHandler, HandlerRegistry

__all__ = [
    "ArtifactHandler",
    "ContentEvent",
    "Delta",
    "DeltaChannel",
    "EventType",
    "GenerationDispatcher",
    "GenerationHandle",
    "GenerationResult",
    "HandlerRegistry",
    "Mode",
    "ResultStatus",
    "SaveRequest",
]
