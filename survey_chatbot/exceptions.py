"""Project-wide custom exception types."""


class SurveyError(RuntimeError):
    """Base class for all survey engine errors."""


class ValidationError(SurveyError, ValueError):
    """Raised when a respondent submits an empty or whitespace-only answer."""

    def __init__(self, message: str) -> None:  # noqa: D401 – simple constructor
        super().__init__(message)


class InvalidStateError(SurveyError):
    """Raised when a session operation is called in the wrong lifecycle state.

    Examples are finalizing an unfinished session or answering after the
    last question. These are programming-contract violations in the calling
    layer, not user-facing errors.
    """


class QuestionNotFoundError(InvalidStateError, LookupError):
    """Raised when the current question is requested after the terminal node."""


class GraphError(SurveyError):
    """Raised when a question graph is malformed."""


class SubmissionError(SurveyError):
    """Raised when the submission store fails to create or list records."""
