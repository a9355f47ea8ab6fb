"""
Pull replication of the shared store into process memory.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from meterwatch.domain import Snapshot
from meterwatch.errors import TransientIOError
from meterwatch.services.persistence import SqlPersistenceAdapter
from meterwatch.services.session import SessionContext

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Snapshot], None]

FAILURE_LOG_INTERVAL = 300
STOP_JOIN_TIMEOUT = 5


class SyncHandle:
    """Returned by ``SyncEngine.start``; ``stop()`` may be called any number of times."""

    def __init__(self, engine: "SyncEngine"):
        self._engine = engine

    def stop(self) -> None:
        self._engine.stop()


class SyncEngine:
    """
    Polls the adapter on a fixed interval and keeps the latest snapshot.

    Fetches are single-flight: a tick (or a manual refresh) that arrives
    while another fetch is outstanding is skipped. A failed fetch keeps
    the previous snapshot and is retried on the next tick.
    """

    def __init__(
        self,
        adapter: SqlPersistenceAdapter,
        session: Optional[SessionContext] = None,
        interval: float = 5.0,
    ):
        self._adapter = adapter
        self._session = session or SessionContext()
        self._interval = interval

        self._fetch_lock = threading.Lock()
        # Held while publishing; stop() takes it so no callback can run after stop() returns.
        self._emit_lock = threading.RLock()
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._cancelled = False

        self._on_snapshot: Optional[SnapshotCallback] = None
        self._snapshot: Optional[Snapshot] = None
        self._last_success = 0.0
        self._last_error: Optional[str] = None
        self._last_error_log = 0.0
        self._skipped_ticks = 0

    @property
    def session(self) -> SessionContext:
        return self._session

    @property
    def snapshot(self) -> Optional[Snapshot]:
        with self._emit_lock:
            return self._snapshot

    def current_snapshot(self) -> Snapshot:
        """
        Latest snapshot, or TransientIOError if no fetch has succeeded yet.
        """
        snapshot = self.snapshot
        if snapshot is None:
            raise TransientIOError("Shared store has not been synchronized yet")
        return snapshot

    def is_running(self) -> bool:
        with self._state_lock:
            return self._thread is not None and self._thread.is_alive()

    def start(self, on_snapshot: Optional[SnapshotCallback] = None) -> SyncHandle:
        """
        Fetch immediately, then keep fetching every ``interval`` seconds
        until stopped.
        """
        with self._state_lock:
            if self._thread is not None and self._thread.is_alive():
                raise RuntimeError("SyncEngine is already running")
            with self._emit_lock:
                self._cancelled = False
                self._on_snapshot = on_snapshot
            # Each run gets its own event so a thread left over from a
            # previous run is never woken back up by a restart.
            stop_event = threading.Event()
            self._stop_event = stop_event
            thread = threading.Thread(
                target=self._poll_loop, args=(stop_event,), name="sync-poll", daemon=True
            )
            self._thread = thread

        self.refresh_now()
        with self._state_lock:
            # The first callback may already have stopped the engine.
            if self._thread is thread:
                thread.start()
        return SyncHandle(self)

    def stop(self) -> None:
        """
        Stop polling. Safe to call repeatedly; after it returns the snapshot
        callback is never invoked again.
        """
        with self._emit_lock:
            self._cancelled = True
            self._on_snapshot = None
        with self._state_lock:
            self._stop_event.set()
            thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread() and thread.is_alive():
            thread.join(timeout=STOP_JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning("SyncEngine: poll thread still busy after stop, it will exit once its fetch returns")

    def refresh_now(self) -> bool:
        """
        Run one fetch-and-reconcile cycle on the calling thread.

        Returns False when skipped (a fetch is already in flight, or the
        engine was stopped) or when the fetch failed.
        """
        if not self._fetch_lock.acquire(blocking=False):
            with self._state_lock:
                self._skipped_ticks += 1
            logger.debug("SyncEngine: fetch already in flight, skipping tick")
            return False
        try:
            return self._fetch_and_publish()
        finally:
            self._fetch_lock.release()

    def status(self) -> dict:
        with self._state_lock:
            running = self._thread is not None and self._thread.is_alive()
            skipped = self._skipped_ticks
        with self._emit_lock:
            snapshot = self._snapshot
            return {
                "running": running,
                "interval": self._interval,
                "lastSuccess": self._last_success or None,
                "lastError": self._last_error,
                "skippedTicks": skipped,
                "users": len(snapshot.users) if snapshot else 0,
                "industries": len(snapshot.industries) if snapshot else 0,
                "readings": len(snapshot.readings) if snapshot else 0,
            }

    # Internal helpers -------------------------------------------------

    def _poll_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval):
            self.refresh_now()

    def _fetch_and_publish(self) -> bool:
        try:
            snapshot = self._adapter.fetch_snapshot()
        except Exception as exc:
            self._record_failure(exc)
            return False

        with self._emit_lock:
            if self._cancelled:
                return False

            previous_id = self._session.user_id
            active = self._session.reconcile(snapshot.users)
            if previous_id and active is None:
                logger.info(f"SyncEngine: user '{previous_id}' no longer exists, signing out")
            snapshot = snapshot.with_active_user(active)

            self._snapshot = snapshot
            self._last_success = time.time()
            self._last_error = None

            callback = self._on_snapshot
            if callback is not None:
                try:
                    callback(snapshot)
                except Exception as exc:
                    logger.error(f"SyncEngine: snapshot callback failed: {exc}", exc_info=True)
        return True

    def _record_failure(self, exc: Exception) -> None:
        self._last_error = str(exc)
        # Don't spam logs on every failure - only log if it's been a while
        now = time.time()
        if now - self._last_error_log > FAILURE_LOG_INTERVAL:
            logger.warning(f"SyncEngine: fetch failed, keeping previous snapshot -> {exc}")
            self._last_error_log = now
        else:
            logger.debug(f"SyncEngine: fetch failed again -> {exc}")
