"""One-second countdown ticker used while a timed session is running."""

from __future__ import annotations

import logging
from threading import Event, Thread
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class SessionTicker(Protocol):
    def start(self, callback: Callable[[], None], interval_seconds: float) -> None: ...

    def stop(self) -> None: ...


class IntervalTicker:
    """Calls ``callback`` every ``interval_seconds`` from a daemon thread until stopped.

    ``stop`` only signals the thread and never joins it, so it is safe to call
    from inside the callback itself (the final tick submits the session and
    stops its own timer).
    """

    def __init__(self, name: str = "QuizSessionTimer") -> None:
        self._name = name
        self._stop_event = Event()
        self._thread: Thread | None = None

    def start(self, callback: Callable[[], None], interval_seconds: float) -> None:
        if self._thread is not None:
            raise RuntimeError("Ticker already started.")

        def run() -> None:
            while not self._stop_event.wait(interval_seconds):
                try:
                    callback()
                except Exception:
                    logger.exception("Session timer callback failed")
                    return

        self._thread = Thread(target=run, name=self._name, daemon=True)
        self._thread.start()
        logger.debug("%s started with a %.1fs interval", self._name, interval_seconds)

    def stop(self) -> None:
        self._stop_event.set()
        logger.debug("%s stopped", self._name)
