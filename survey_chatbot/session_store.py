import datetime
import logging
import threading
from typing import Callable, Dict, Optional

from survey_chatbot.session_data import SurveySession


class ThreadSafeSessionStore:
    """A thread-safe store of live survey sessions, one per respondent."""

    def __init__(self, max_sessions: Optional[int] = None):
        """Create a new :class:`ThreadSafeSessionStore`.

        Args:
            max_sessions: Optional maximum number of *concurrent* live
                sessions allowed.  :pydata:`None` (default) means unlimited.
        """
        self._sessions: Dict[str, SurveySession] = {}
        self._lock = threading.Lock()
        # None == unlimited
        self._max_sessions = max_sessions if (max_sessions or 0) > 0 else None
        self._logger = logging.getLogger(__name__)

    def add_session(self, user_id: str, session: SurveySession) -> Optional[SurveySession]:
        """Store *session* as the live session of *user_id*.

        A respondent restarting a survey replaces their previous session,
        which is returned so the caller can dispose of it.

        Raises ValueError if the store is full.
        """
        with self._lock:
            replaced = self._sessions.get(user_id)
            # Check global limit first so we fail fast under high load.
            if (
                replaced is None
                and self._max_sessions is not None
                and len(self._sessions) >= self._max_sessions
            ):
                raise ValueError(
                    "Maximum concurrent session limit reached. "
                    "Try again later or finish existing surveys."
                )
            self._sessions[user_id] = session

        if replaced is not None:
            self._logger.info(
                "survey_replaced",
                extra={"user_id": user_id, "session_id": replaced.session_id},
            )
        return replaced

    def get_session(self, user_id: str) -> Optional[SurveySession]:
        """Retrieves the live session of *user_id*. Returns None if not found."""
        with self._lock:
            session = self._sessions.get(user_id)
            if session:
                session.last_accessed_at = datetime.datetime.now(datetime.timezone.utc)
            return session

    def modify_session(
        self,
        user_id: str,
        modifier: Callable[[SurveySession], None],
    ) -> SurveySession:
        """Atomically apply *modifier* to the session inside the lock.

        The *modifier* callback receives the current :class:`SurveySession`
        and may mutate it in-place. Exceptions raised by *modifier*
        propagate unchanged.

        Returns:
            The modified :class:`SurveySession` instance for convenience.

        Raises:
            ValueError: If *user_id* has no live session.
        """
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                raise ValueError(f"No live survey session for user {user_id}.")

            modifier(session)
            session.last_accessed_at = datetime.datetime.now(datetime.timezone.utc)
            return session

    def remove_session(
        self, user_id: str, session_id: Optional[str] = None
    ) -> Optional[SurveySession]:
        """Remove the live session of *user_id* and return it.

        When *session_id* is given the session is only removed if it is still
        that session, so a stale expiry timer cannot drop a newer survey.
        """
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                return None
            if session_id is not None and session.session_id != session_id:
                return None
            return self._sessions.pop(user_id)

    def get_all_sessions(self) -> Dict[str, SurveySession]:
        """Returns a shallow copy of all live sessions keyed by user id."""
        with self._lock:
            return dict(self._sessions)

    def count(self) -> int:
        """Returns the number of live sessions."""
        with self._lock:
            return len(self._sessions)

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------

    def submit_answer(self, user_id: str, text: str) -> SurveySession:
        """Record *text* on the user's live session atomically.

        Raises
        ------
        ValueError
            If the user has no live session.
        ValidationError
            If *text* is blank (session unchanged).
        """

        def _apply(session: SurveySession) -> None:  # noqa: WPS430 – local helper
            node_id = session.current_node_id
            session.submit_answer(text)
            self._logger.info(
                "answer_recorded",
                extra={"session_id": session.session_id, "node_id": node_id},
            )
            if session.is_complete:
                self._logger.info(
                    "survey_done", extra={"session_id": session.session_id}
                )

        return self.modify_session(user_id, _apply)
