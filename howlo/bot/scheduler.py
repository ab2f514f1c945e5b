"""
howlo.bot.scheduler — Period transition poller
===============================================

A daemon thread that calls a check function every
``transition_interval_seconds``.  The first call happens immediately on
start, so a restart on a boundary day still announces.  ``stop`` wakes
the thread at once instead of waiting out the interval.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime

logger = logging.getLogger(__name__)


class TransitionScheduler:
    def __init__(
        self,
        check: Callable[[datetime], object],
        interval_seconds: float = 300,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.check = check
        self.interval_seconds = interval_seconds
        self.clock = clock
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> None:
        try:
            self.check(self.clock())
        except Exception:
            logger.exception("Period transition check failed")

    def _loop(self) -> None:
        logger.info("Transition scheduler started (every %ss)", self.interval_seconds)
        self.run_once()
        while not self._stop.wait(self.interval_seconds):
            self.run_once()
        logger.info("Transition scheduler stopped")

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, name="howlo-transitions", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
