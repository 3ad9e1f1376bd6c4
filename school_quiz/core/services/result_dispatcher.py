"""Fire-and-forget hand-off of finished sessions to the result store."""

from __future__ import annotations

import logging
from threading import Thread

from school_quiz.core.models import QuizResult, QuizSubmission
from school_quiz.core.services.notifications import OperatorNotifications
from school_quiz.core.services.result_store import ResultStore

logger = logging.getLogger(__name__)


class ResultDispatcher:
    """Appends submissions to the store at most once and never raises to the session.

    A failed append is logged and posted to the operator notifications. It is
    not retried and the session stays finished.
    """

    def __init__(
        self,
        store: ResultStore,
        notifications: OperatorNotifications,
        background: bool = False,
    ) -> None:
        self._store = store
        self._notifications = notifications
        self._background = background

    def dispatch(self, submission: QuizSubmission) -> None:
        if self._background:
            thread = Thread(target=self._persist, args=(submission,), name="ResultDispatch", daemon=True)
            thread.start()
        else:
            self._persist(submission)

    def _persist(self, submission: QuizSubmission) -> QuizResult | None:
        try:
            result = self._store.append_result(submission)
        except Exception as exc:
            # Any store or transport failure; the session is already finished.
            logger.exception(
                "Could not save result of %s (%s) for %r",
                submission.student_name,
                submission.student_nis,
                submission.quiz_title,
            )
            self._notifications.report(
                "submission",
                f"Result of {submission.student_name} ({submission.student_nis}) for "
                f"'{submission.quiz_title}' was not saved: {exc}",
            )
            return None
        logger.info(
            "Saved result %s: %s scored %d on %r",
            result.id,
            submission.student_nis,
            submission.score,
            submission.quiz_title,
        )
        return result
