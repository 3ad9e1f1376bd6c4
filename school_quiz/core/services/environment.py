"""Host environment seen by a running quiz session.

A browser client reports page visibility and window focus changes to the
server, which feeds them into the session's ``BrowserEnvironment``. Test
harnesses use the same class and call ``emit`` directly.
"""

from __future__ import annotations

from enum import Enum
import logging
from threading import Lock
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class EnvironmentSignal(str, Enum):
    HIDDEN = "hidden"
    VISIBLE = "visible"
    BLUR = "blur"
    FOCUS = "focus"


SignalListener = Callable[[EnvironmentSignal], None]


class EnvironmentUnavailableError(RuntimeError):
    """Raised when the environment cannot grant a presentation request such as full-screen."""


class PresentationEnvironment(Protocol):
    def add_listener(self, listener: SignalListener) -> None: ...

    def remove_listener(self, listener: SignalListener) -> None: ...

    def request_fullscreen(self) -> None: ...

    def exit_fullscreen(self) -> None: ...


class BrowserEnvironment:
    """Signal hub for one remote browser tab."""

    def __init__(self, fullscreen_supported: bool = True) -> None:
        self._listeners: list[SignalListener] = []
        self._lock = Lock()
        self._fullscreen_supported = fullscreen_supported
        self.fullscreen_requested: bool = False

    def add_listener(self, listener: SignalListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: SignalListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def emit(self, signal: EnvironmentSignal) -> None:
        """Deliver ``signal`` to the registered listeners; without listeners it is dropped."""
        with self._lock:
            listeners = list(self._listeners)
        if not listeners:
            logger.debug("Dropping %s signal: no session is listening", signal.value)
        for listener in listeners:
            listener(signal)

    def request_fullscreen(self) -> None:
        if not self._fullscreen_supported:
            raise EnvironmentUnavailableError("Full-screen mode is not available in this browser.")
        self.fullscreen_requested = True

    def exit_fullscreen(self) -> None:
        self.fullscreen_requested = False
