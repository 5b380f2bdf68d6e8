"""Debounced saving of manual edits."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class DebouncedSaver:
    """Coalesce rapid edits into one save after a quiet period.

    Every ``schedule()`` restarts the timer; only the last content is saved.

    Args:
        save: Called with the content once the quiet period elapses.
        delay: Quiet period in seconds.
        timer_factory: ``threading.Timer``-compatible factory (injectable for tests).
    """

    def __init__(
        self,
        save: Callable[[str], object],
        delay: float = 2.0,
        *,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self._save = save
        self._delay = delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._pending: str | None = None
        self._generation = 0

    @property
    def pending(self) -> str | None:
        return self._pending

    def schedule(self, content: str) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = content
            self._generation += 1
            self._timer = self._timer_factory(self._delay, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> bool:
        """Save pending content now. Returns True if anything was saved."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            content, self._pending = self._pending, None
        if content is None:
            return False
        self._save(content)
        return True

    def cancel(self) -> None:
        """Drop pending content without saving."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return  # superseded by a later edit
        try:
            self.flush()
        except Exception:  # timer thread: nobody else can see the failure
            logger.exception("Debounced save failed")
