from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol

from .config import DEFAULT_HISTORY_DELAY_SECONDS

logger = logging.getLogger(__name__)

PENDING_STATUS = "pending"

HistoryEntries = List[Dict[str, Any]]
RefreshCallback = Callable[[int, HistoryEntries], None]


class Cancellable(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], Cancellable]


def timer_scheduler(delay: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


@dataclass
class HistoryBoard:
    """Latest call history per deployment, replaced wholesale on refresh."""

    entries: Dict[int, HistoryEntries] = field(default_factory=dict)
    updated_at: Dict[int, float] = field(default_factory=dict)
    _changed: threading.Condition = field(default_factory=threading.Condition, repr=False)

    def replace(self, deployment_id: int, entries: HistoryEntries) -> None:
        with self._changed:
            self.entries[deployment_id] = list(entries)
            self.updated_at[deployment_id] = time.time()
            self._changed.notify_all()

    def get(self, deployment_id: int) -> HistoryEntries:
        with self._changed:
            return list(self.entries.get(deployment_id, []))

    def wait_for_update(self, deployment_id: int, since: float, timeout: float) -> bool:
        """Block until ``deployment_id`` was refreshed after ``since``."""
        deadline = time.monotonic() + timeout
        with self._changed:
            while self.updated_at.get(deployment_id, 0.0) <= since:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._changed.wait(remaining)
        return True


def entry_status(entries: HistoryEntries, history_id: Optional[int]) -> Optional[str]:
    if history_id is None:
        return None
    for entry in entries:
        if isinstance(entry, dict) and entry.get("id") == history_id:
            status = entry.get("status")
            return str(status).lower() if status is not None else None
    return None


class HistoryReconciler:
    """
    Refresh a deployment's call history after a write was accepted.

    The first refresh fires ``delay`` seconds after ``schedule_refresh``. With
    ``poll_timeout > 0`` the reconciler keeps polling every ``poll_interval``
    while the written entry is still pending, until ``poll_timeout`` elapses.
    Failures are logged and dropped; the displayed history simply stays stale.
    """

    def __init__(
        self,
        client: Any,
        on_refresh: RefreshCallback,
        delay: float = DEFAULT_HISTORY_DELAY_SECONDS,
        poll_interval: float = 2.0,
        poll_timeout: float = 0.0,
        scheduler: Optional[Scheduler] = None,
        is_alive: Optional[Callable[[], bool]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.on_refresh = on_refresh
        self.delay = max(0.0, float(delay))
        self.poll_interval = max(0.0, float(poll_interval))
        self.poll_timeout = max(0.0, float(poll_timeout))
        self._scheduler = scheduler or timer_scheduler
        self._is_alive = is_alive
        self._clock = clock
        self._lock = threading.RLock()
        self._pending: List[Cancellable] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def schedule_refresh(self, deployment_id: int, history_id: Optional[int] = None) -> None:
        started = self._clock()
        self._schedule(self.delay, deployment_id, history_id, started)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            pending, self._pending = self._pending, []
        for handle in pending:
            handle.cancel()

    def _schedule(self, delay: float, deployment_id: int, history_id: Optional[int], started: float) -> None:
        with self._lock:
            if self._closed:
                return
            holder: List[Cancellable] = []
            fired = False

            def fire() -> None:
                nonlocal fired
                with self._lock:
                    fired = True
                    if holder and holder[0] in self._pending:
                        self._pending.remove(holder[0])
                self._refresh(deployment_id, history_id, started)

            handle = self._scheduler(delay, fire)
            holder.append(handle)
            # A scheduler may run the callback before returning its handle.
            if not fired:
                self._pending.append(handle)
        logger.debug("History refresh for deployment %s scheduled in %.1fs", deployment_id, delay)

    def _alive(self) -> bool:
        if self._closed:
            return False
        return self._is_alive is None or bool(self._is_alive())

    def _refresh(self, deployment_id: int, history_id: Optional[int], started: float) -> None:
        if not self._alive():
            logger.debug("Dropping history refresh for deployment %s: owner gone", deployment_id)
            return
        try:
            entries = self.client.list_history(deployment_id)
            if not self._alive():
                return
            self.on_refresh(deployment_id, list(entries or []))
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("History refresh for deployment %s failed: %s", deployment_id, exc)
            return

        if self.poll_timeout <= 0 or entry_status(entries or [], history_id) != PENDING_STATUS:
            return
        if self._clock() - started + self.poll_interval > self.poll_timeout:
            logger.debug("Stopped polling history %s of deployment %s: timeout", history_id, deployment_id)
            return
        self._schedule(self.poll_interval, deployment_id, history_id, started)
