from __future__ import annotations

import logging
import threading
from typing import Callable

from .state import SyncGuards

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 30.0


class BoardSyncScheduler:
    """Re-runs ``refresh`` every ``interval_s`` seconds on a daemon thread.

    Each tick reads one ``SyncGuards`` snapshot and skips the refresh while a
    modal is open or a load is already in flight. Manual reloads after a
    mutation do not go through the scheduler.
    """

    def __init__(
        self,
        refresh: Callable[[], object],
        guards: Callable[[], SyncGuards],
        interval_s: float = DEFAULT_INTERVAL_S,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self._refresh = refresh
        self._guards = guards
        self._interval_s = interval_s
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> bool:
        """Run one scheduled refresh if the guards allow it."""
        guards = self._guards()
        if not guards.may_refresh:
            logger.debug("Board refresh skipped (loading=%s, modal_open=%s)", guards.loading, guards.modal_open)
            return False
        try:
            self._refresh()
        except Exception:
            logger.exception("Scheduled board refresh failed")
            return False
        return True

    def _run(self) -> None:
        while not self._stop.wait(self._interval_s):
            self.tick()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="board-sync", daemon=True)
        self._thread.start()
        logger.info("Board sync started, every %ss", self._interval_s)

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def __enter__(self) -> "BoardSyncScheduler":
        self.start()
        return self

    def __exit__(self, *_args) -> None:
        self.stop()
