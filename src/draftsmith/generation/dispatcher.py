"""Generation dispatcher: kind → handler → stream → validate/retry → persist.

``generate()`` returns immediately with a live delta channel and a future for
the final result. Each request runs as one sequential pipeline on a worker
thread. A new request for an artifact id supersedes any request still running
for that id: its stream is abandoned and nothing is saved for it.
"""

from __future__ import annotations

import logging
import queue
import threading
import uuid
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from draftsmith.db.models import ArtifactKind, ArtifactVersion
from draftsmith.db.store import ArtifactStore
from draftsmith.errors import (
    PersistenceError,
    SupersededError,
    UnknownKindError,
    VersionNotFoundError,
)
from draftsmith.generation.events import Delta
from draftsmith.generation.handlers import ArtifactHandler, HandlerRegistry
from draftsmith.generation.retry import RetryController
from draftsmith.schemas.base import ContentSchema, SchemaRegistry

logger = logging.getLogger(__name__)

_CLOSED = object()


class Mode(str, Enum):
    CREATE = "create"
    UPDATE = "update"


class ResultStatus(str, Enum):
    ACCEPTED = "accepted"  # validated and saved as a new version
    REJECTED = "rejected"  # both attempts failed; nothing saved
    SUPERSEDED = "superseded"  # cancelled by a newer request; nothing saved
    NOT_SAVED = "not_saved"  # validated but the store write failed


@dataclass
class SaveRequest:
    """Input for one generation.

    Attributes:
        artifact_id: Stable artifact id (new for create).
        user_id: Owning user; every operation is scoped to it.
        title: Title (create) or new title (update; empty keeps the base title).
        description: Change description (update only).
        base_created_at: Version being edited (update only; default latest).
            Editing a non-latest version truncates newer versions on save.
    """

    artifact_id: str
    user_id: str
    title: str = ""
    description: str = ""
    base_created_at: datetime | None = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass
class GenerationResult:
    status: ResultStatus
    request_id: str
    artifact_id: str
    kind: ArtifactKind
    title: str
    user_id: str
    version: ArtifactVersion | None = None
    content: str = ""  # saved content, or last provisional content when not saved
    reason: str | None = None
    attempts: int = 0
    metadata: dict = field(default_factory=dict)
    truncate_after: datetime | None = None

    @property
    def ok(self) -> bool:
        return self.status is ResultStatus.ACCEPTED


class DeltaChannel:
    """Ordered, closable channel of live deltas for a single reader."""

    def __init__(self) -> None:
        self._queue: queue.Queue = queue.Queue()
        self._closed = threading.Event()

    def put(self, delta: Delta) -> None:
        if not self._closed.is_set():
            self._queue.put(delta)

    def close(self) -> None:
        if not self._closed.is_set():
            self._closed.set()
            self._queue.put(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def __iter__(self) -> Iterator[Delta]:
        """Block for deltas until the request finishes."""
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item


@dataclass
class GenerationHandle:
    deltas: DeltaChannel
    result: Future
    request_id: str
    _cancel: threading.Event

    def cancel(self) -> None:
        """Abandon the request; it resolves SUPERSEDED and saves nothing."""
        self._cancel.set()


@dataclass
class _Plan:
    kind: ArtifactKind
    mode: Mode
    request: SaveRequest
    handler: ArtifactHandler
    schema: ContentSchema
    title: str
    base: ArtifactVersion | None = None
    latest: ArtifactVersion | None = None
    truncate_after: datetime | None = None


class GenerationDispatcher:
    """Wires handlers, schemas, the retry controller and the store.

    Args:
        handlers: Registered kind handlers.
        schemas: Content schemas used for validation.
        store: Versioned artifact store.
        timeout: Maximum seconds between stream events.
        max_workers: Concurrent requests (distinct artifacts run in parallel).
    """

    def __init__(
        self,
        handlers: HandlerRegistry,
        schemas: SchemaRegistry,
        store: ArtifactStore,
        *,
        timeout: float | None = 60.0,
        max_workers: int = 4,
    ) -> None:
        self._handlers = handlers
        self._schemas = schemas
        self._store = store
        self._timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="draftsmith-gen")
        self._inflight: dict[str, tuple[str, threading.Event]] = {}
        self._inflight_guard = threading.Lock()

    def generate(
        self, kind: ArtifactKind | str, mode: Mode | str, request: SaveRequest
    ) -> GenerationHandle:
        """Start a generation and return its live channel and result future.

        Raises:
            UnknownKindError: No handler or schema for *kind* (not retried).
            VersionNotFoundError: Update of a missing artifact or version.
            EnvironmentError: Handler preflight failed (e.g. missing API key).
        """
        plan = self._plan(kind, Mode(mode), request)
        plan.handler.preflight()

        cancel = threading.Event()
        with self._inflight_guard:
            previous = self._inflight.get(request.artifact_id)
            if previous is not None:
                logger.warning(
                    "Request %s superseded by %s for %s",
                    previous[0],
                    request.request_id,
                    request.artifact_id,
                )
                previous[1].set()
            self._inflight[request.artifact_id] = (request.request_id, cancel)

        channel = DeltaChannel()
        future = self._executor.submit(self._run, plan, channel, cancel)
        return GenerationHandle(channel, future, request.request_id, cancel)

    def retry_save(self, result: GenerationResult) -> GenerationResult:
        """Persist a NOT_SAVED result's validated content without regenerating."""
        if result.status is not ResultStatus.NOT_SAVED:
            raise ValueError(f"Only not_saved results can be re-saved, got {result.status.value}")
        return self._persist(
            result.kind,
            result.request_id,
            result.artifact_id,
            result.title,
            result.user_id,
            result.content,
            result.metadata,
            result.truncate_after,
            result.attempts,
        )

    def shutdown(self, wait: bool = True) -> None:
        with self._inflight_guard:
            for _, cancel in self._inflight.values():
                cancel.set()
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> GenerationDispatcher:
        return self

    def __exit__(self, *args: object) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _plan(self, kind: ArtifactKind | str, mode: Mode, request: SaveRequest) -> _Plan:
        try:
            kind = ArtifactKind(kind)
        except ValueError:
            raise UnknownKindError(str(kind)) from None
        handler = self._handlers.get(kind)
        schema = self._schemas.get(kind)
        plan = _Plan(kind, mode, request, handler, schema, title=request.title)

        if mode is Mode.UPDATE:
            latest = self._store.latest_version(request.artifact_id)
            if latest is None:
                raise VersionNotFoundError(f"Artifact '{request.artifact_id}' has no versions")
            if latest.kind is not kind:
                raise ValueError(
                    f"Artifact '{request.artifact_id}' is a {latest.kind.value}, not a {kind.value}"
                )
            base = latest
            if request.base_created_at is not None:
                base = self._store.get_version(request.artifact_id, request.base_created_at)
                if base is None:
                    raise VersionNotFoundError(
                        f"No version of '{request.artifact_id}' at {request.base_created_at.isoformat()}"
                    )
            plan.base = base
            plan.latest = latest
            plan.title = request.title or base.title
            if base.created_at != latest.created_at:
                plan.truncate_after = base.created_at
        return plan

    def _run(self, plan: _Plan, channel: DeltaChannel, cancel: threading.Event) -> GenerationResult:
        request = plan.request
        delta_type = f"{plan.kind.value}-delta"

        def on_delta(attempt: int, content: str, fragment: str) -> None:
            channel.put(Delta(delta_type, content, fragment, attempt, request.request_id))

        if plan.mode is Mode.CREATE:
            def invoke(strict: bool):
                return plan.handler.on_create(plan.title, strict=strict)
            fallback = None
        else:
            base = plan.base

            def invoke(strict: bool):
                return plan.handler.on_update(base.content, request.description, strict=strict)
            # Fallback keeps what is current now, never the fork base.
            fallback = plan.latest.content

        try:
            controller = RetryController(plan.schema, timeout=self._timeout, cancelled=cancel)
            outcome = controller.run(invoke, on_delta, fallback=fallback)
            if not outcome.accepted:
                return self._result(
                    plan,
                    ResultStatus.REJECTED,
                    content=outcome.provisional,
                    reason=outcome.reason,
                    attempts=len(outcome.attempts),
                )
            truncate_after = plan.truncate_after
            if outcome.used_fallback:
                metadata = plan.latest.metadata_dict
                truncate_after = None
                on_delta(len(outcome.attempts), outcome.content, outcome.content)
            else:
                metadata = plan.handler.metadata(outcome.content)
            return self._persist(
                plan.kind,
                request.request_id,
                request.artifact_id,
                plan.title,
                request.user_id,
                outcome.content,
                metadata,
                truncate_after,
                len(outcome.attempts),
                cancel=cancel,
            )
        except SupersededError as exc:
            logger.info("Request %s for %s abandoned: %s", request.request_id, request.artifact_id, exc)
            return self._result(plan, ResultStatus.SUPERSEDED, reason=str(exc))
        finally:
            channel.close()
            with self._inflight_guard:
                current = self._inflight.get(request.artifact_id)
                if current is not None and current[0] == request.request_id:
                    del self._inflight[request.artifact_id]

    def _persist(
        self,
        kind: ArtifactKind,
        request_id: str,
        artifact_id: str,
        title: str,
        user_id: str,
        content: str,
        metadata: dict,
        truncate_after: datetime | None,
        attempts: int,
        cancel: threading.Event | None = None,
    ) -> GenerationResult:
        result = GenerationResult(
            status=ResultStatus.ACCEPTED,
            request_id=request_id,
            artifact_id=artifact_id,
            kind=kind,
            title=title,
            user_id=user_id,
            content=content,
            attempts=attempts,
            metadata=metadata,
            truncate_after=truncate_after,
        )
        # Holding the id lock makes the supersession check and the append one step.
        with self._store.lock_for(artifact_id):
            if cancel is not None and cancel.is_set():
                result.status = ResultStatus.SUPERSEDED
                result.reason = "superseded by a newer request"
                return result
            try:
                result.version = self._store.append(
                    artifact_id,
                    title,
                    kind,
                    content,
                    user_id,
                    metadata=metadata,
                    truncate_after=truncate_after,
                )
            except PersistenceError as exc:
                logger.warning("Generated content for %s not saved: %s", artifact_id, exc)
                result.status = ResultStatus.NOT_SAVED
                result.reason = str(exc)
        return result

    @staticmethod
    def _result(
        plan: _Plan,
        status: ResultStatus,
        *,
        content: str = "",
        reason: str | None = None,
        attempts: int = 0,
    ) -> GenerationResult:
        return GenerationResult(
            status=status,
            request_id=plan.request.request_id,
            artifact_id=plan.request.artifact_id,
            kind=plan.kind,
            title=plan.title,
            user_id=plan.request.user_id,
            content=content,
            reason=reason,
            attempts=attempts,
            truncate_after=plan.truncate_after,
        )
