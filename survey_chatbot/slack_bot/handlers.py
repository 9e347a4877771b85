import json
import logging
from typing import Any, Callable, Dict, Optional

from slack_bolt import Ack
from slack_sdk.errors import SlackApiError
from slack_sdk.web import WebClient

from survey_chatbot.categories import Category, parse_category
from survey_chatbot.exceptions import SubmissionError, ValidationError
from survey_chatbot.session_data import SubmissionRecord, SurveySession
from survey_chatbot.session_store import ThreadSafeSessionStore
from survey_chatbot.slack_bot.views import build_completion_message, post_question
from survey_chatbot.submission_store import SubmissionStore, submit_record

logger = logging.getLogger(__name__)

SessionHook = Callable[[SurveySession], None]


def start_survey(
    client: WebClient,
    user_id: str,
    category: Category,
    session_store: ThreadSafeSessionStore,
    *,
    on_started: Optional[SessionHook] = None,
    on_closed: Optional[SessionHook] = None,
) -> SurveySession:
    """Create a session for *user_id*, store it and DM the first question.

    A previous live session of the same user is replaced and passed to
    *on_closed*. Raises ValueError if the session store is full.
    """
    session = SurveySession.start(category, user_id=user_id)
    replaced = session_store.add_session(user_id, session)
    if replaced is not None and on_closed is not None:
        on_closed(replaced)

    logger.info(
        "survey_started",
        extra={
            "session_id": session.session_id,
            "user_id": user_id,
            "category": session.category.value,
        },
    )
    if on_started is not None:
        on_started(session)

    post_question(client, user_id, session)
    return session


# ------------------------------------------------------------------
# Interaction handler: category button click
# ------------------------------------------------------------------


def handle_category_button_click(  # noqa: WPS211 – acceptable arg count for handler
    ack: Ack,
    body: Dict[str, Any],
    client: WebClient,
    logger: logging.Logger,
    session_store: ThreadSafeSessionStore,
    *,
    on_started: Optional[SessionHook] = None,
    on_closed: Optional[SessionHook] = None,
) -> None:
    """Handle a click on one of the ``<Category> Survey`` buttons.

    The button ``value`` carries ``{"category": ...}``. Unknown or missing
    categories are rejected here rather than silently defaulted.
    """

    ack()  # acknowledge action early to avoid client timeouts

    try:
        user_id = body["user"]["id"]
        action = body.get("actions", [{}])[0]
        try:
            payload = json.loads(action.get("value", "{}"))
        except ValueError:
            payload = {}
        category = parse_category(payload.get("category"))

        if category is None:
            logger.warning("Survey button click without valid category – body=%s", body)
            client.chat_postMessage(
                channel=user_id,
                text="Sorry, this survey button is mis-configured.",
            )
            return

        try:
            start_survey(
                client,
                user_id,
                category,
                session_store,
                on_started=on_started,
                on_closed=on_closed,
            )
        except ValueError as exc:
            logger.warning("Could not start survey for %s: %s", user_id, exc)
            client.chat_postMessage(
                channel=user_id,
                text="Too many surveys are running right now. Please try again in a few minutes.",
            )

    except Exception as exc:  # pragma: no cover – catch-all to protect app thread
        logger.error("Error handling survey button click: %s", exc, exc_info=True)


# ------------------------------------------------------------------
# Message handler: answers typed in the DM
# ------------------------------------------------------------------


def _is_answer_event(event: Dict[str, Any]) -> bool:
    """Only plain human messages in a DM count as answers."""
    if event.get("bot_id") or event.get("subtype"):
        return False
    return event.get("channel_type") == "im"


def _finish_survey(
    client: WebClient,
    user_id: str,
    session: SurveySession,
    session_store: ThreadSafeSessionStore,
    submission_store: SubmissionStore,
    on_closed: Optional[SessionHook],
) -> Optional[SubmissionRecord]:
    """Finalize *session*, hand the record to the store and thank the user.

    On a store failure the completed session stays live, so any further
    message from the user retries the submission.
    """
    record = session.finalize()
    try:
        stored = submit_record(submission_store, record)
    except SubmissionError:
        client.chat_postMessage(
            channel=user_id,
            text=(
                "Sorry, I couldn't save your survey just now. "
                "Send me any message to try again."
            ),
        )
        return None

    session_store.remove_session(user_id, session.session_id)
    if on_closed is not None:
        on_closed(session)
    client.chat_postMessage(channel=user_id, text=build_completion_message(session.category))
    return stored


def handle_answer_message(  # noqa: WPS211 – acceptable arg count for handler
    event: Dict[str, Any],
    client: WebClient,
    logger: logging.Logger,
    session_store: ThreadSafeSessionStore,
    submission_store: SubmissionStore,
    *,
    on_answered: Optional[SessionHook] = None,
    on_closed: Optional[SessionHook] = None,
) -> None:
    """Treat a DM from a respondent with a live session as their next answer.

    *on_answered* runs after every accepted answer, before the survey is
    finished or the next question is posted.
    """

    if not _is_answer_event(event):
        return

    user_id = event.get("user")
    text = event.get("text") or ""

    try:
        session = session_store.get_session(user_id)
        if session is None:
            logger.debug("Ignoring DM from %s without a live survey", user_id)
            return

        if session.is_complete:
            # Previous submission failed; retry it.
            _finish_survey(client, user_id, session, session_store, submission_store, on_closed)
            return

        try:
            session = session_store.submit_answer(user_id, text)
        except ValidationError:
            client.chat_postMessage(
                channel=user_id,
                text="Please type an answer before moving on.",
            )
            return
        except ValueError:
            # Session expired between lookup and submit.
            logger.warning(f"Survey session for '{user_id}' vanished while answering.")
            return

        if on_answered is not None:
            on_answered(session)

        if session.is_complete:
            _finish_survey(client, user_id, session, session_store, submission_store, on_closed)
        else:
            post_question(client, user_id, session)

    except SlackApiError as e:
        logger.error(
            f"Slack API error while handling answer from '{user_id}': "
            f"{e.response.get('error')}"
        )
    except Exception as e:
        logger.error(
            f"Error processing survey answer from '{user_id}': {e}",
            exc_info=True,
        )
