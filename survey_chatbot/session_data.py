import datetime
import math
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from survey_chatbot.categories import Category, parse_category, resolve_category
from survey_chatbot.exceptions import (
    InvalidStateError,
    QuestionNotFoundError,
    ValidationError,
)
from survey_chatbot.questions import (
    START_NODE_ID,
    TOTAL_QUESTIONS,
    QuestionNode,
    build_graph,
)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(slots=True)
class SubmissionRecord:
    """Finished (or abandoned) survey as handed to the submission store.

    ``submission_id`` and ``created_at`` are assigned by the store and stay
    *None* until the record has been created there.
    """

    category: Category
    answers: Dict[str, str]
    completed: bool
    elapsed_seconds: Optional[int] = None
    submission_id: Optional[str] = None
    created_at: Optional[datetime.datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return the stored wire form (keys as used by the survey backend)."""
        payload: Dict[str, Any] = {
            "user_type": self.category.value,
            "responses": dict(self.answers),
            "completed": self.completed,
            "completion_time": self.elapsed_seconds,
        }
        if self.submission_id is not None:
            payload["id"] = self.submission_id
        if self.created_at is not None:
            payload["created_date"] = self.created_at.isoformat()
        return payload

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SubmissionRecord":
        """Build a record from its stored wire form.

        Raises ValueError for an unknown ``user_type`` so stray records never
        count towards a category.
        """
        category = parse_category(payload.get("user_type"))
        if category is None:
            raise ValueError(f"Unknown user_type: {payload.get('user_type')!r}")
        created_raw = payload.get("created_date")
        if isinstance(created_raw, str):
            # fromisoformat only accepts a trailing "Z" from Python 3.11 on.
            if created_raw.endswith("Z"):
                created_raw = created_raw[:-1] + "+00:00"
            created_at = datetime.datetime.fromisoformat(created_raw)
        else:
            created_at = created_raw
        elapsed = payload.get("completion_time")
        return cls(
            category=category,
            answers={str(k): str(v) for k, v in (payload.get("responses") or {}).items()},
            completed=bool(payload.get("completed", False)),
            elapsed_seconds=int(elapsed) if elapsed is not None else None,
            submission_id=payload.get("id"),
            created_at=created_at,
        )


class SurveySession:
    """A single respondent's walk through a category's question graph.

    A session starts at ``q1`` and records exactly one answer per visited
    question, in visiting order. Each answer is fed to the current node's
    transition to pick the next question. Once the last question has been
    answered the session is complete and :py:meth:`finalize` produces the
    :class:`SubmissionRecord` for the submission store.

    Sessions are driven by one respondent at a time; they hold no locks.
    """

    def __init__(
        self,
        category: Union[Category, str, None],
        *,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,  # Respondent key used by the chat front end
        graph: Optional[Dict[str, QuestionNode]] = None,
    ):
        self.session_id: str = session_id or str(uuid.uuid4())
        self.category: Category = resolve_category(category)
        self.user_id: Optional[str] = user_id
        self.graph: Dict[str, QuestionNode] = (
            graph if graph is not None else build_graph(self.category)
        )
        self.current_node_id: Optional[str] = START_NODE_ID
        # dict keeps first-insertion order even when a key is overwritten
        self.answers: Dict[str, str] = {}
        self.started_at: datetime.datetime = _utcnow()
        self.last_accessed_at: datetime.datetime = self.started_at

    @classmethod
    def start(
        cls, category: Union[Category, str, None], *, user_id: Optional[str] = None
    ) -> "SurveySession":
        """Create a session positioned at the category's first question."""
        return cls(category, user_id=user_id)

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    @property
    def is_complete(self) -> bool:  # noqa: D401 – property
        """*True* once the terminal node has been passed."""
        return self.current_node_id is None

    def current_prompt(self) -> QuestionNode:
        """Return the question awaiting an answer.

        Raises
        ------
        QuestionNotFoundError
            If the session is already complete.
        """
        if self.current_node_id is None:
            raise QuestionNotFoundError(
                f"Session {self.session_id} is complete; no current question."
            )
        return self.graph[self.current_node_id]

    def submit_answer(self, text: str) -> Optional[QuestionNode]:
        """Record *text* for the current question and advance.

        Returns the next question, or *None* when the survey is finished.

        Raises
        ------
        ValidationError
            If *text* is empty or whitespace only. The session is unchanged.
        InvalidStateError
            If the session is already complete.
        """
        if text is None or not text.strip():
            raise ValidationError("Answer must not be empty.")
        if self.current_node_id is None:
            raise InvalidStateError(
                f"Session {self.session_id} is complete; answers are closed."
            )

        node = self.graph[self.current_node_id]
        self.answers[node.id] = text
        self.current_node_id = node.next_id(text)
        self.last_accessed_at = _utcnow()

        if self.current_node_id is None:
            return None
        return self.graph[self.current_node_id]

    def progress(self) -> Tuple[int, int]:
        """Return ``(answered, total)``. *total* is always ten."""
        return len(self.answers), TOTAL_QUESTIONS

    @property
    def question_number(self) -> int:
        """1-based number of the question currently on screen."""
        return min(len(self.answers) + 1, TOTAL_QUESTIONS)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def elapsed_seconds(self, now: Optional[datetime.datetime] = None) -> int:
        """Whole seconds since the session started (never negative)."""
        delta = ((now or _utcnow()) - self.started_at).total_seconds()
        return max(0, math.floor(delta))

    def finalize(self, now: Optional[datetime.datetime] = None) -> SubmissionRecord:
        """Return the completed :class:`SubmissionRecord`.

        Raises
        ------
        InvalidStateError
            If the survey has not reached its last question yet.
        """
        if not self.is_complete:
            answered, total = self.progress()
            raise InvalidStateError(
                f"Session {self.session_id} cannot be finalized at "
                f"{answered}/{total} answers."
            )
        return SubmissionRecord(
            category=self.category,
            answers=dict(self.answers),
            completed=True,
            elapsed_seconds=self.elapsed_seconds(now),
        )

    def abandon(self, now: Optional[datetime.datetime] = None) -> SubmissionRecord:
        """Snapshot an unfinished session as an incomplete record."""
        if self.is_complete:
            return self.finalize(now)
        return SubmissionRecord(
            category=self.category,
            answers=dict(self.answers),
            completed=False,
            elapsed_seconds=self.elapsed_seconds(now),
        )

    def __repr__(self) -> str:
        answered, total = self.progress()
        parts = [
            f"session_id='{self.session_id}'",
            f"category='{self.category.value}'",
            f"current_node_id={self.current_node_id!r}",
            f"progress={answered}/{total}",
            f"started_at='{self.started_at.isoformat()}'",
            f"is_complete={self.is_complete}",
        ]
        if self.user_id:
            parts.append(f"user_id='{self.user_id}'")
        return f"SurveySession({', '.join(parts)})"
