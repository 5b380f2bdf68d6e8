"""Retry controller: at most two generation attempts per save request.

    ATTEMPT_1 --valid--> ACCEPT
    ATTEMPT_1 --invalid / empty / stream error--> ATTEMPT_2
    ATTEMPT_2 --valid--> ACCEPT
    ATTEMPT_2 --invalid--> FALLBACK
    FALLBACK  --prior version valid (update only)--> ACCEPT(prior, unchanged)
    FALLBACK  --otherwise--> REJECT

Attempt 2 is the same invocation with ``strict=True``: the handler restates
the required output shape in its instruction. Nothing else changes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from draftsmith.errors import DraftsmithError, SupersededError, TransportError
from draftsmith.generation.events import ContentEvent
from draftsmith.generation.stream import StreamConsumer
from draftsmith.schemas.base import ContentSchema

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2

# strict → event stream for one attempt
Invoke = Callable[[bool], Iterable[ContentEvent]]
# (attempt number, candidate, fragment) → None
DeltaCallback = Callable[[int, str, str], None]


class Decision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


@dataclass
class Attempt:
    """One pass of stream consumption plus validation."""

    number: int
    candidate: str = ""
    valid: bool = False
    reason: str | None = None
    error: DraftsmithError | None = None
    partials: int = 0
    forwarded: int = 0


@dataclass
class Outcome:
    decision: Decision
    content: str | None = None
    attempts: list[Attempt] = field(default_factory=list)
    reason: str | None = None
    used_fallback: bool = False

    @property
    def accepted(self) -> bool:
        return self.decision is Decision.ACCEPT

    @property
    def provisional(self) -> str:
        """Last non-empty candidate seen across attempts (shown, never saved, on reject)."""
        for attempt in reversed(self.attempts):
            if attempt.candidate:
                return attempt.candidate
        return ""


class RetryController:
    """Bounded accept/retry/reject state machine for one save request.

    Args:
        schema: Content schema used to validate each attempt at ``done``.
        timeout: Per-event stream timeout handed to each StreamConsumer.
        cancelled: Supersession flag shared with the dispatcher.
    """

    def __init__(
        self,
        schema: ContentSchema,
        *,
        timeout: float | None = 60.0,
        cancelled: threading.Event | None = None,
    ) -> None:
        self._schema = schema
        self._timeout = timeout
        self._cancelled = cancelled or threading.Event()

    def run(
        self,
        invoke: Invoke,
        on_delta: DeltaCallback | None = None,
        *,
        fallback: str | None = None,
    ) -> Outcome:
        """Drive up to two attempts and decide.

        Args:
            invoke: Starts one attempt's stream; called with ``strict=False``
                then, if needed, ``strict=True``.
            on_delta: Receives every forwarded partial of every attempt.
            fallback: Current persisted content (update requests only); accepted
                unchanged if both attempts fail and it is itself valid.

        Raises:
            SupersededError: If a newer request cancelled this one.
        """
        attempts: list[Attempt] = []
        for number in range(1, MAX_ATTEMPTS + 1):
            attempt = self._attempt(number, invoke, on_delta)
            attempts.append(attempt)
            if attempt.valid:
                return Outcome(Decision.ACCEPT, attempt.candidate, attempts)
            if number < MAX_ATTEMPTS:
                logger.warning(
                    "Attempt %d for %s rejected (%s); retrying with stricter instruction",
                    number,
                    self._schema.kind.value,
                    attempt.reason,
                )

        reason = attempts[-1].reason
        if fallback is not None:
            if self._schema.validate(fallback).valid:
                logger.warning(
                    "Both attempts for %s failed (%s); keeping prior content",
                    self._schema.kind.value,
                    reason,
                )
                return Outcome(
                    Decision.ACCEPT, fallback, attempts, reason=reason, used_fallback=True
                )

        logger.warning("Rejected %s after %d attempts: %s", self._schema.kind.value, len(attempts), reason)
        return Outcome(Decision.REJECT, None, attempts, reason=reason)

    def _attempt(self, number: int, invoke: Invoke, on_delta: DeltaCallback | None) -> Attempt:
        attempt = Attempt(number=number)
        if self._cancelled.is_set():
            raise SupersededError("superseded by a newer request")

        def forward(candidate: str, fragment: str) -> None:
            if on_delta is not None:
                on_delta(number, candidate, fragment)

        try:
            events = invoke(number > 1)
        except SupersededError:
            raise
        except Exception as exc:  # provider refused to start the stream
            attempt.error = TransportError(f"{type(exc).__name__}: {exc}")
            attempt.reason = str(attempt.error)
            return attempt

        consumer = StreamConsumer(
            events,
            self._schema,
            timeout=self._timeout,
            cancelled=self._cancelled,
            on_partial=forward,
        )
        result = consumer.drain()
        attempt.candidate = result.candidate
        attempt.partials = result.partials
        attempt.forwarded = result.forwarded

        if result.error is not None:
            attempt.error = TransportError(result.error)
            attempt.reason = f"stream failed: {result.error}"
            return attempt

        validation = self._schema.validate(result.candidate)
        attempt.valid = validation.valid
        if not validation.valid:
            attempt.error = validation.to_error(self._schema.kind)
            attempt.reason = validation.reason
        return attempt
