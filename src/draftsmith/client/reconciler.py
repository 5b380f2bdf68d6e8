"""Client-side view state for one open artifact.

Two explicit states drive what is displayed:

    IDLE      --begin / first delta of a new request--> STREAMING
    STREAMING --delta (same request)-->                  STREAMING (provisional updated)
    STREAMING --result-->                                IDLE

Live deltas are optimistic: they are shown immediately but never treated as
saved. Only an accepted result reloads the version list, which then becomes the
single source of truth.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

from draftsmith.db.models import ArtifactVersion
from draftsmith.generation.dispatcher import GenerationResult, ResultStatus
from draftsmith.generation.events import Delta

logger = logging.getLogger(__name__)

# Settled request ids remembered so their late deltas and results are ignored.
_FINISHED_LIMIT = 64


class Status(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"


class Direction(str, Enum):
    PREV = "prev"
    NEXT = "next"
    LATEST = "latest"


class VersionReconciler:
    """Reconciles live deltas with the authoritative version list.

    Attributes:
        versions: Persisted versions in ascending ``created_at`` order.
        current_version_index: Index into *versions* being viewed (-1 if none).
        status: IDLE or STREAMING.
        provisional: Content from deltas (or a rejected request) not yet saved.
        is_authoritative: False while the display shows provisional content.
        is_visible: Whether the artifact panel is open.
        last_error: Reason of the last rejected or unsaved request.
    """

    def __init__(self, versions: Iterable[ArtifactVersion] = ()) -> None:
        self.versions: list[ArtifactVersion] = []
        self.current_version_index = -1
        self.status = Status.IDLE
        self.provisional: str | None = None
        self.is_authoritative = True
        self.is_visible = False
        self.last_error: str | None = None
        self._request_id: str | None = None
        self._finished: dict[str, None] = {}
        self.load(versions)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def load(self, versions: Iterable[ArtifactVersion]) -> None:
        """Replace the version list and snap to the latest version."""
        self.versions = sorted(versions, key=lambda v: v.created_at)
        self.current_version_index = len(self.versions) - 1

    def begin(self, request_id: str) -> None:
        """Enter STREAMING for *request_id*; any older request is ignored from now on."""
        if self._request_id is not None and self._request_id != request_id:
            self._retire(self._request_id)
        self._request_id = request_id
        self.status = Status.STREAMING
        self.provisional = None
        self.is_authoritative = True
        self.last_error = None

    def apply_delta(self, delta: Delta) -> bool:
        """Show *delta* if it belongs to the active request.

        Returns:
            True if the delta was applied.
        """
        if delta.request_id in self._finished:
            return False
        if self.status is Status.IDLE:
            self.begin(delta.request_id)
        elif delta.request_id != self._request_id:
            logger.debug("Ignoring delta from stale request %s", delta.request_id)
            return False
        self.provisional = delta.content
        self.is_authoritative = False
        return True

    def apply_result(
        self, result: GenerationResult, versions: Iterable[ArtifactVersion] | None = None
    ) -> None:
        """Settle the request that produced *result*.

        Args:
            versions: The reloaded version list; required to show an accepted save.
        """
        if result.request_id in self._finished:
            logger.debug("Ignoring result of settled request %s", result.request_id)
            return
        self._retire(result.request_id)
        if self._request_id is not None and result.request_id != self._request_id:
            return
        self._request_id = None
        self.status = Status.IDLE

        if result.status is ResultStatus.ACCEPTED:
            if versions is not None:
                self.load(versions)
            else:
                self.current_version_index = len(self.versions) - 1
            self.provisional = None
            self.is_authoritative = True
            self.last_error = None
        elif result.status is ResultStatus.SUPERSEDED:
            self.provisional = None
            self.is_authoritative = True
        else:
            # Rejected or unsaved: back to the latest saved version with the
            # streamed content kept on top, clearly unsaved.
            if versions is not None:
                self.load(versions)
            else:
                self.current_version_index = len(self.versions) - 1
            self.provisional = result.content or self.provisional
            self.is_authoritative = self.provisional is None
            self.last_error = result.reason

    def _retire(self, request_id: str) -> None:
        self._finished[request_id] = None
        while len(self._finished) > _FINISHED_LIMIT:
            del self._finished[next(iter(self._finished))]

    def navigate(self, direction: Direction | str) -> bool:
        """Move through saved versions. Ignored while streaming.

        Returns:
            True if the index changed.
        """
        if self.status is Status.STREAMING or not self.versions:
            return False
        direction = Direction(direction)
        last = len(self.versions) - 1
        if direction is Direction.PREV:
            target = max(self.current_version_index - 1, 0)
        elif direction is Direction.NEXT:
            target = min(self.current_version_index + 1, last)
        else:
            target = last

        changed = target != self.current_version_index or self.provisional is not None
        self.current_version_index = target
        self.provisional = None
        self.is_authoritative = True
        return changed

    def set_visible(self, visible: bool) -> None:
        self.is_visible = visible

    def toggle_visible(self) -> bool:
        self.is_visible = not self.is_visible
        return self.is_visible

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def active_request(self) -> str | None:
        return self._request_id

    @property
    def current_version(self) -> ArtifactVersion | None:
        if 0 <= self.current_version_index < len(self.versions):
            return self.versions[self.current_version_index]
        return None

    @property
    def is_showing_provisional(self) -> bool:
        return self.provisional is not None

    @property
    def displayed_content(self) -> str:
        if self.provisional is not None:
            return self.provisional
        version = self.current_version
        return version.content if version is not None else ""

    @property
    def is_current_version(self) -> bool:
        """True while streaming or when the latest saved version is shown."""
        if self.status is Status.STREAMING:
            return True
        return self.current_version_index == len(self.versions) - 1

    @property
    def display_index(self) -> int:
        """Index shown to the user; one past the last version for provisional content."""
        if self.provisional is not None:
            return len(self.versions)
        return self.current_version_index
