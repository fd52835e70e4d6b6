from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from varianceqa.analysis.controller import FormController

logger = logging.getLogger(__name__)

DEFAULT_SESSION_IDLE_TTL_S = 3600.0


class InMemorySessionStore:
    """Page sessions live only as long as the process; nothing is persisted.

    Sessions untouched for longer than ``idle_ttl_s`` are evicted and closed,
    so tabs that vanish without sending DELETE do not accumulate.
    """

    def __init__(
        self,
        idle_ttl_s: float = DEFAULT_SESSION_IDLE_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.idle_ttl_s = idle_ttl_s
        self._clock = clock
        self._sessions: Dict[str, Tuple["FormController", float]] = {}
        self._lock = threading.Lock()

    def _expired(self, controller: "FormController", touched_at: float, now: float) -> bool:
        # A running cycle keeps its session alive.
        return now - touched_at > self.idle_ttl_s and not controller.state.busy

    def _sweep_locked(self, now: float) -> List["FormController"]:
        evicted = []
        for session_id, (controller, touched_at) in list(self._sessions.items()):
            if self._expired(controller, touched_at, now):
                del self._sessions[session_id]
                evicted.append(controller)
        return evicted

    def _close_evicted(self, evicted: List["FormController"]) -> None:
        for controller in evicted:
            logger.info("Evicting idle page session (session_id=%s)", controller.state.session_id)
            controller.close()

    def add(self, controller: "FormController") -> None:
        with self._lock:
            now = self._clock()
            evicted = self._sweep_locked(now)
            self._sessions[controller.state.session_id] = (controller, now)
        self._close_evicted(evicted)

    def get(self, session_id: str) -> Optional["FormController"]:
        evicted: List["FormController"] = []
        with self._lock:
            now = self._clock()
            entry = self._sessions.get(session_id)
            if entry is None:
                return None
            controller, touched_at = entry
            if self._expired(controller, touched_at, now):
                del self._sessions[session_id]
                evicted.append(controller)
                controller = None
            else:
                self._sessions[session_id] = (controller, now)
        self._close_evicted(evicted)
        return controller

    def pop(self, session_id: str) -> Optional["FormController"]:
        with self._lock:
            entry = self._sessions.pop(session_id, None)
        return entry[0] if entry else None

    def sweep(self) -> int:
        with self._lock:
            evicted = self._sweep_locked(self._clock())
        self._close_evicted(evicted)
        return len(evicted)

    def close_all(self) -> None:
        with self._lock:
            sessions = [controller for controller, _ in self._sessions.values()]
            self._sessions.clear()
        for controller in sessions:
            controller.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
