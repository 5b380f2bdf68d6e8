"""Stream consumer: drains one attempt's generator stream front to back.

The generator is iterated on a daemon worker thread that feeds a queue, so the
consumer can enforce a maximum wait between events and notice supersession
while the generator is blocked. Abandoned workers stop at their next event.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from draftsmith.errors import SupersededError
from draftsmith.generation.events import ContentEvent, EventType
from draftsmith.schemas.base import ContentSchema, StreamStyle

logger = logging.getLogger(__name__)

_END = object()
_POLL_SECONDS = 0.05

# (candidate, fragment) → None
PartialCallback = Callable[[str, str], None]


@dataclass
class StreamResult:
    candidate: str
    completed: bool  # ended with done or natural close, not error/timeout
    error: str | None = None
    partials: int = 0
    forwarded: int = 0


class StreamConsumer:
    """Normalize a stream of ContentEvents into the latest full candidate.

    Cumulative partials (objects, snapshots) replace the candidate; incremental
    partials (text fragments) are appended, as declared by the schema. A
    partial is forwarded to *on_partial* only if it passes the schema's cheap
    precheck. One instance per attempt; it cannot be iterated twice.

    Args:
        events: The generator stream for this attempt.
        schema: Content schema of the artifact kind.
        timeout: Maximum seconds to wait for the next event (None: wait forever).
        cancelled: Set by the dispatcher when a newer request supersedes this one.
        on_partial: Live delta callback.
    """

    def __init__(
        self,
        events: Iterable[ContentEvent],
        schema: ContentSchema,
        *,
        timeout: float | None = 60.0,
        cancelled: threading.Event | None = None,
        on_partial: PartialCallback | None = None,
    ) -> None:
        self._events = events
        self._schema = schema
        self._timeout = timeout
        self._cancelled = cancelled or threading.Event()
        self._on_partial = on_partial
        self._queue: queue.Queue = queue.Queue()
        self._stop = threading.Event()
        self._started = False

        self.candidate = ""
        self.partials = 0
        self.forwarded = 0

    def __iter__(self) -> Iterator[tuple[EventType, str]]:
        """Yield ``(event_type, candidate_or_message)`` until the stream ends.

        Raises:
            SupersededError: If *cancelled* is set mid-stream.
        """
        if self._started:
            raise RuntimeError("StreamConsumer can only be drained once")
        self._started = True

        worker = threading.Thread(target=self._pump, name="draftsmith-stream", daemon=True)
        worker.start()
        try:
            while True:
                item = self._next_item()
                if item is _END:
                    # Producer closed without an explicit done.
                    yield EventType.DONE, self.candidate
                    return
                if item.type is EventType.ERROR:
                    yield EventType.ERROR, str(item.payload) or "stream error"
                    return
                if item.type is EventType.DONE:
                    if item.payload:
                        self.candidate = self._schema.serialize(item.payload)
                    yield EventType.DONE, self.candidate
                    return
                self._accept_partial(item.payload)
                yield EventType.PARTIAL, self.candidate
        except _Timeout:
            yield EventType.ERROR, f"no stream event within {self._timeout:g}s"
        finally:
            self._stop.set()

    def drain(self) -> StreamResult:
        """Consume the whole stream and summarize it."""
        completed = False
        error = None
        for event_type, value in self:
            if event_type is EventType.DONE:
                completed = True
            elif event_type is EventType.ERROR:
                error = value
        return StreamResult(
            candidate=self.candidate,
            completed=completed,
            error=error,
            partials=self.partials,
            forwarded=self.forwarded,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _accept_partial(self, payload: str | dict) -> None:
        self.partials += 1
        fragment = self._schema.serialize(payload)
        if isinstance(payload, dict) or self._schema.stream_style is StreamStyle.CUMULATIVE:
            self.candidate = fragment
            shape = payload
        else:
            self.candidate += fragment
            shape = self.candidate
        if self._on_partial is not None and self._schema.precheck(shape):
            self.forwarded += 1
            self._on_partial(self.candidate, fragment)

    def _next_item(self):
        deadline = None if self._timeout is None else time.monotonic() + self._timeout
        while True:
            if self._cancelled.is_set():
                raise SupersededError("superseded by a newer request")
            wait = _POLL_SECONDS
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise _Timeout()
                wait = min(wait, remaining)
            try:
                return self._queue.get(timeout=wait)
            except queue.Empty:
                continue

    def _pump(self) -> None:
        try:
            for event in self._events:
                if self._stop.is_set():
                    return
                self._queue.put(event)
        except Exception as exc:  # provider/transport failure inside the generator
            logger.debug("Generator stream raised", exc_info=True)
            self._queue.put(ContentEvent.error(f"{type(exc).__name__}: {exc}"))
        finally:
            self._queue.put(_END)


class _Timeout(Exception):
    pass
