"""Detects a student leaving the quiz page while a session is running."""

from __future__ import annotations

import logging
from typing import Callable

from school_quiz.core.services.environment import EnvironmentSignal, PresentationEnvironment

logger = logging.getLogger(__name__)


class IntegrityMonitor:
    """Reports one violation each time the student goes from present to away.

    The student is away while the page is hidden or the window has lost focus.
    Switching tabs usually produces both signals, so both conditions share one
    away state and a violation is reported only on the transition into it.
    """

    def __init__(self, environment: PresentationEnvironment, on_violation: Callable[[], None]) -> None:
        self._environment = environment
        self._on_violation = on_violation
        self._active: bool = False
        self._hidden: bool = False
        self._blurred: bool = False

    def is_active(self) -> bool:
        return self._active

    def enter_running(self) -> None:
        if self._active:
            return
        self._hidden = False
        self._blurred = False
        self._environment.add_listener(self._handle_signal)
        self._active = True
        logger.debug("Integrity observers registered")

    def exit_running(self) -> None:
        if not self._active:
            return
        self._active = False
        self._environment.remove_listener(self._handle_signal)
        logger.debug("Integrity observers released")

    def _is_away(self) -> bool:
        return self._hidden or self._blurred

    def _handle_signal(self, signal: EnvironmentSignal) -> None:
        if not self._active:
            return
        was_away = self._is_away()
        if signal is EnvironmentSignal.HIDDEN:
            self._hidden = True
        elif signal is EnvironmentSignal.VISIBLE:
            self._hidden = False
        elif signal is EnvironmentSignal.BLUR:
            self._blurred = True
        elif signal is EnvironmentSignal.FOCUS:
            self._blurred = False

        if self._is_away() and not was_away:
            logger.info("Integrity violation detected (%s)", signal.value)
            self._on_violation()
