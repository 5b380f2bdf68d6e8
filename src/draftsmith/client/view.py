"""One open artifact: reconciler state wired to the store, dispatcher and autosave."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from draftsmith.client.autosave import DebouncedSaver
from draftsmith.client.reconciler import Direction, VersionReconciler
from draftsmith.db.models import ArtifactKind, ArtifactVersion
from draftsmith.db.store import ArtifactStore
from draftsmith.generation.dispatcher import (
    GenerationDispatcher,
    GenerationHandle,
    GenerationResult,
    Mode,
    SaveRequest,
)
from draftsmith.generation.events import Delta

logger = logging.getLogger(__name__)


class ArtifactView:
    """Drives generation and manual edits for a single artifact id.

    Args:
        store: Versioned artifact store.
        dispatcher: Generation dispatcher.
        artifact_id: Artifact being viewed.
        user_id: Owning user.
        kind: Artifact kind.
        debounce_seconds: Quiet period before manual edits are saved.
        timer_factory: Passed to DebouncedSaver.
    """

    def __init__(
        self,
        store: ArtifactStore,
        dispatcher: GenerationDispatcher,
        artifact_id: str,
        *,
        user_id: str,
        kind: ArtifactKind | str,
        debounce_seconds: float = 2.0,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.artifact_id = artifact_id
        self.user_id = user_id
        self.kind = ArtifactKind(kind)
        self.state = VersionReconciler()
        self._lock = threading.RLock()
        self._saver = DebouncedSaver(self._save_manual, debounce_seconds, timer_factory=timer_factory)
        self.refresh()

    def refresh(self) -> None:
        """Reload the version list from the store."""
        with self._lock:
            self.state.load(self.store.list_versions(self.artifact_id))

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def request(self, mode: Mode | str, *, title: str = "", description: str = "") -> GenerationHandle:
        """Start a generation based on the version currently displayed."""
        self._saver.flush()
        mode = Mode(mode)
        with self._lock:
            base = self.state.current_version if mode is Mode.UPDATE else None
            save_request = SaveRequest(
                artifact_id=self.artifact_id,
                user_id=self.user_id,
                title=title,
                description=description,
                base_created_at=base.created_at if base is not None else None,
            )
            handle = self.dispatcher.generate(self.kind, mode, save_request)
            self.state.begin(handle.request_id)
        return handle

    def follow(
        self, handle: GenerationHandle, on_delta: Callable[[Delta], None] | None = None
    ) -> GenerationResult:
        """Apply *handle*'s deltas as they arrive, then settle its result."""
        for delta in handle.deltas:
            with self._lock:
                applied = self.state.apply_delta(delta)
            if applied and on_delta is not None:
                on_delta(delta)
        result = handle.result.result()
        with self._lock:
            self.state.apply_result(result, self.store.list_versions(self.artifact_id))
        return result

    def generate(
        self,
        mode: Mode | str,
        *,
        title: str = "",
        description: str = "",
        on_delta: Callable[[Delta], None] | None = None,
    ) -> GenerationResult:
        return self.follow(self.request(mode, title=title, description=description), on_delta)

    # ------------------------------------------------------------------
    # Manual edits and navigation
    # ------------------------------------------------------------------

    def edit(self, content: str) -> None:
        """Record a manual edit; saved after the debounce period."""
        with self._lock:
            self.state.provisional = content
            self.state.is_authoritative = False
        self._saver.schedule(content)

    def navigate(self, direction: Direction | str) -> bool:
        self._saver.flush()
        with self._lock:
            return self.state.navigate(direction)

    def flush(self) -> bool:
        return self._saver.flush()

    def close(self) -> None:
        """Save pending edits and stop the timer."""
        self._saver.flush()

    def _save_manual(self, content: str) -> ArtifactVersion | None:
        with self._lock:
            base = self.state.current_version
            if base is None:
                logger.warning("Manual edit of %s dropped: no saved version to edit", self.artifact_id)
                self.state.provisional = None
                self.state.is_authoritative = True
                return None
            if content == base.content:
                self.state.provisional = None
                self.state.is_authoritative = True
                return None
            truncate_after = None if self.state.is_current_version else base.created_at
            version = self.store.append(
                self.artifact_id,
                base.title,
                base.kind,
                content,
                self.user_id,
                metadata=base.metadata_dict,
                truncate_after=truncate_after,
            )
            self.state.provisional = None
            self.state.is_authoritative = True
            self.refresh()
            return version
