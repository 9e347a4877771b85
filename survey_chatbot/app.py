import atexit
import logging
import os
import re
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv
from slack_bolt import Ack, App, Respond
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from survey_chatbot.categories import Category, parse_category, plural_label
from survey_chatbot.exceptions import SubmissionError
from survey_chatbot.reporting import config as report_config
from survey_chatbot.reporting.aggregator import aggregate, filter_records
from survey_chatbot.reporting.render import post_report_to_slack
from survey_chatbot.session_data import SurveySession
from survey_chatbot.session_store import ThreadSafeSessionStore
from survey_chatbot.slack_bot.handlers import (
    handle_answer_message,
    handle_category_button_click,
    start_survey,
)
from survey_chatbot.slack_bot.views import (
    START_SURVEY_ACTION_PREFIX,
    build_category_picker,
)
from survey_chatbot.submission_store import (
    NEWEST_FIRST,
    ThreadSafeSubmissionStore,
    fetch_records,
    submit_record,
)

from .scheduler import Scheduler

# Load environment variables from .env file
load_dotenv()

SURVEY_COMMAND = os.getenv("SURVEY_COMMAND", "/survey")
SURVEY_REPORT_COMMAND = os.getenv("SURVEY_REPORT_COMMAND", "/survey-report")

# Set up logging
logging_level = os.environ.get("SLACK_LOG_LEVEL", "INFO")
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", level=logging_level
)
logger = logging.getLogger(__name__)

# Determine if token verification should be disabled (useful for CI/test mode)
_token_verification_enabled_env = os.getenv(
    "SLACK_BOLT_TOKEN_VERIFICATION_ENABLED", "true"
).lower()
# Treat any value other than explicit "false" (case-insensitive) as truthy
_token_verification_enabled = _token_verification_enabled_env != "false"

app = App(
    token=os.environ.get("SLACK_BOT_TOKEN"),
    process_before_response=True,
    token_verification_enabled=_token_verification_enabled,
)


def _get_positive_int_from_env(name: str, default: Optional[int]) -> Optional[int]:  # noqa: WPS430
    raw_val = os.getenv(name)
    if not raw_val:
        return default
    try:
        parsed = int(raw_val)
    except ValueError:
        logger.warning("Invalid %s value '%s'; must be integer.", name, raw_val)
        return default
    if parsed <= 0:
        logger.warning("Ignoring %s=%s (must be positive int)", name, raw_val)
        return default
    return parsed


def _get_max_sessions_from_env() -> Optional[int]:
    return _get_positive_int_from_env("MAX_CONCURRENT_SESSIONS", None)


def _get_idle_minutes_from_env() -> int:
    return _get_positive_int_from_env("SURVEY_IDLE_MINUTES", 30)


# Live surveys, one per respondent, with optional global limit
session_store = ThreadSafeSessionStore(max_sessions=_get_max_sessions_from_env())

# Finished (and abandoned) survey records
submission_store = ThreadSafeSubmissionStore()

# Initialize a single thread pool for the application
executor = ThreadPoolExecutor(max_workers=10)

# Shared scheduler for non-blocking timers (idle session expiry)
scheduler = Scheduler(executor)

# session_id -> scheduler task id of its pending expiry
_expiry_tasks: Dict[str, int] = {}
_expiry_lock = threading.Lock()


# ------------------------------------------------------------------
# Expiry hooks
# ------------------------------------------------------------------


def _expire_survey_session(user_id: str, session_id: str, client: WebClient):
    """Callback run by Scheduler when a survey has been idle too long."""
    with _expiry_lock:
        _expiry_tasks.pop(session_id, None)
    try:
        session = session_store.remove_session(user_id, session_id)
        if session is None:
            logger.debug("Expiry callback: session %s already closed", session_id)
            return

        record = session.abandon()
        has_answers = bool(record.answers)
        if has_answers:
            try:
                submit_record(submission_store, record)
            except SubmissionError:
                logger.error(
                    "Partial answers of expired session %s were not stored", session_id
                )

        # Notify the respondent that the survey closed (best-effort)
        try:
            note_extra = " Your answers so far have been saved." if has_answers else ""
            client.chat_postMessage(
                channel=user_id,
                text=(
                    "Your survey was closed after "
                    f"{_get_idle_minutes_from_env()} minutes without a reply.{note_extra} "
                    f"Run `{SURVEY_COMMAND}` to start again."
                ),
            )
        except SlackApiError as exc:
            logger.warning(
                "Failed to send expiry DM for session %s: %s",
                session_id,
                exc.response.get("error"),
            )

        logger.info(
            "Session %s expired and removed after idle limit. answers=%d",
            session_id,
            len(record.answers),
        )
    except Exception:  # pragma: no cover – ensure scheduler thread survives
        logger.exception("Error expiring session %s", session_id)


def _schedule_expiry(session: SurveySession, client: WebClient) -> None:
    delay_seconds = _get_idle_minutes_from_env() * 60
    task_id = scheduler.schedule(
        delay_seconds,
        _expire_survey_session,
        session.user_id,
        session.session_id,
        client,
    )
    with _expiry_lock:
        _expiry_tasks[session.session_id] = task_id


def _cancel_expiry(session: SurveySession) -> None:
    with _expiry_lock:
        task_id = _expiry_tasks.pop(session.session_id, None)
    if task_id is not None:
        scheduler.cancel(task_id)


def _restart_expiry(session: SurveySession, client: WebClient) -> None:
    """Push the idle deadline of *session* back after an accepted answer."""
    _cancel_expiry(session)
    _schedule_expiry(session, client)


def shutdown_executor():
    """Gracefully shut down scheduler and thread pool executor."""
    logger.info("Shutting down scheduler and thread pool executor...")
    # Stop scheduler first so it doesn't submit new tasks while executor is shutting down
    try:
        scheduler.shutdown()
    except Exception:  # pragma: no cover – ensure shutdown continues
        logger.exception("Error shutting down scheduler")

    executor.shutdown(wait=True)
    logger.info("Scheduler and thread pool executor shut down gracefully.")


# Register the shutdown function to be called on exit
atexit.register(shutdown_executor)


# Log all incoming messages to help with debugging
@app.middleware
def log_request(logger, body, next):
    logger.debug(f"Received event: {body}")
    return next()


def _help_text() -> str:
    """Return a help message describing bot purpose and usage."""

    categories = "|".join(c.value for c in Category)
    return (
        "*Survey-Bot – Ten Questions, Branching on Your Answers*\n\n"
        "Each survey asks ten questions in a DM. Whether the next question digs "
        "into what went well or what went wrong depends on how your last answer reads.\n\n"
        "*Core commands*\n"
        "• `@survey-bot help` — show this message.\n"
        f"• `{SURVEY_COMMAND} [{categories}]` — start a survey (pick a group if omitted).\n"
        f"• `{SURVEY_REPORT_COMMAND} [{categories}|all] [from YYYY-MM-DD] [to YYYY-MM-DD]` "
        "— post response analytics to this channel.\n\n"
        "**Examples:**\n"
        f"• `{SURVEY_COMMAND} customer` — start the customer survey.\n"
        f"• `{SURVEY_REPORT_COMMAND} employee from 2024-01-01` — employee responses since New Year.\n"
    )


@app.event("app_mention")
def handle_app_mention(event, say, logger: logging.Logger):
    """Respond to `@survey-bot help`; other mentions are ignored."""
    text = event.get("text", "").lower()
    if "help" in text:
        say(_help_text())
    else:
        logger.debug("Ignoring mention without help: %s", text)


# ------------------------------------------------------------------
# Thread helper utilities
# ------------------------------------------------------------------


def _log_future_exception(fut: Future) -> None:  # noqa: WPS430 – small util
    """Logs any exception raised by a completed *Future*."""
    exc = fut.exception()
    if exc is not None:
        logger.exception("Background task raised an exception: %s", exc, exc_info=exc)


def submit_background(func, /, *args, **kwargs) -> Future:  # noqa: WPS110
    """Submit *func* to the shared thread pool with automatic error logging."""

    fut = executor.submit(func, *args, **kwargs)
    fut.add_done_callback(_log_future_exception)
    return fut


# ------------------------------------------------------------------
# /survey
# ------------------------------------------------------------------


def process_survey_request(
    command: Dict[str, Any],
    client: WebClient,
    logger: logging.Logger,
    respond: Respond,
):
    """Start a survey, or offer the category picker, for the invoking user."""
    try:
        user_id = command["user_id"]
        command_text = (command.get("text") or "").strip()
        logger.info(
            f"Processing {SURVEY_COMMAND} from user '{user_id}' with text: '{command_text}'",
        )

        if not command_text:
            client.chat_postMessage(
                channel=user_id,
                text="Pick a survey to start.",
                blocks=build_category_picker(),
            )
            respond("I've sent you a DM to pick your survey.")
            return

        category = parse_category(command_text)
        if category is None:
            respond(
                f"I don't know a '{command_text}' survey. "
                f"Choose one of: {', '.join(c.value for c in Category)}."
            )
            client.chat_postMessage(
                channel=user_id,
                text="Pick a survey to start.",
                blocks=build_category_picker(),
            )
            return

        try:
            start_survey(
                client,
                user_id,
                category,
                session_store,
                on_started=lambda s: _schedule_expiry(s, client),
                on_closed=_cancel_expiry,
            )
        except ValueError as exc:
            logger.warning(f"Could not start survey for '{user_id}': {exc}")
            respond("Too many surveys are running right now. Please try again in a few minutes.")
            return

        respond(f"Your {category.value} survey is waiting in your DMs.")

    except Exception as e:
        logger.error(
            f"Error processing {SURVEY_COMMAND} request for user '{command.get('user_id', 'unknown')}': {e}",
            exc_info=True,
        )
        respond(
            "Sorry, an unexpected error occurred while processing your request. Please try again."
        )


@app.command(SURVEY_COMMAND)
def handle_survey_command(
    ack: Ack,
    command: Dict[str, Any],
    client: WebClient,
    logger: logging.Logger,
    respond: Respond,
):
    """Handles the survey slash command."""
    ack()
    try:
        submit_background(
            process_survey_request,
            command=command,
            client=client,
            logger=logger,
            respond=respond,
        )
        logger.info(
            f"Submitted {SURVEY_COMMAND} request for user '{command['user_id']}' to thread pool."
        )
    except Exception as e:
        logger.error(
            f"Error submitting {SURVEY_COMMAND} for user '{command['user_id']}' to thread pool: {e}",
            exc_info=True,
        )
        respond("Sorry, there was an issue submitting your request. Please try again.")


# ------------------------------------------------------------------
# /survey-report
# ------------------------------------------------------------------

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_report_args(text: str) -> Tuple[Optional[Category], Optional[str], Optional[str]]:
    """Parse ``[category|all] [from DATE] [to DATE]``.

    A bare first date is the start, a bare second date the end.
    Raises ValueError for anything else.
    """
    category: Optional[Category] = None
    start: Optional[str] = None
    end: Optional[str] = None
    pending_kw: Optional[str] = None

    for token in text.split():
        lowered = token.lower()
        if lowered in ("from", "to"):
            pending_kw = lowered
            continue
        if _DATE_RE.match(token):
            if pending_kw == "to" or (pending_kw is None and start is not None):
                end = token
            else:
                start = token
            pending_kw = None
            continue
        if pending_kw is not None:
            raise ValueError(f"Expected a YYYY-MM-DD date after '{pending_kw}', got '{token}'.")
        if lowered == "all":
            continue
        parsed = parse_category(token)
        if parsed is None:
            raise ValueError(f"Unknown survey group '{token}'.")
        category = parsed

    if pending_kw is not None:
        raise ValueError(f"Missing date after '{pending_kw}'.")
    return category, start, end


def process_survey_report_request(
    command: Dict[str, Any],
    client: WebClient,
    logger: logging.Logger,
    respond: Respond,
):
    """Aggregate stored submissions and post the report to the invoking channel."""
    try:
        user_id = command["user_id"]
        channel_id = command.get("channel_id") or user_id
        command_text = command.get("text") or ""

        try:
            scope, start, end = parse_report_args(command_text)
        except ValueError as exc:
            respond(f"{exc} Usage: `{SURVEY_REPORT_COMMAND} [group|all] [from YYYY-MM-DD] [to YYYY-MM-DD]`")
            return

        try:
            records = fetch_records(
                submission_store,
                order_by=NEWEST_FIRST,
                limit=report_config.REPORT_LIST_LIMIT,
            )
            records = filter_records(records, category=scope, start_date=start, end_date=end)
        except SubmissionError:
            respond("Sorry, I couldn't load survey responses right now. Please try again later.")
            return
        except ValueError as exc:
            respond(f"Invalid date: {exc}")
            return

        stats = aggregate(records)
        post_report_to_slack(
            stats=stats,
            records=records,
            client=client,
            channel=channel_id,
            scope=scope,
        )
        logger.info(
            "Posted survey report for '%s' to %s (%d records)",
            plural_label(scope) if scope is not None else "all",
            channel_id,
            stats.total,
        )

    except SlackApiError as e:
        logger.error(
            f"Slack API error posting survey report: {e.response.get('error')}",
            exc_info=True,
        )
        respond("I couldn't post the report here. Is the bot a member of this channel?")
    except Exception as e:
        logger.error(
            f"Error processing {SURVEY_REPORT_COMMAND} request for user '{command.get('user_id', 'unknown')}': {e}",
            exc_info=True,
        )
        respond(
            "Sorry, an unexpected error occurred while building the report. Please try again."
        )


@app.command(SURVEY_REPORT_COMMAND)
def handle_survey_report_command(
    ack: Ack,
    command: Dict[str, Any],
    client: WebClient,
    logger: logging.Logger,
    respond: Respond,
):
    """Handles the survey report slash command."""
    ack()
    try:
        submit_background(
            process_survey_report_request,
            command=command,
            client=client,
            logger=logger,
            respond=respond,
        )
    except Exception as e:
        logger.error(
            f"Error submitting {SURVEY_REPORT_COMMAND} for user '{command['user_id']}' to thread pool: {e}",
            exc_info=True,
        )
        respond("Sorry, there was an issue submitting your request. Please try again.")


# Error handler
@app.error
def custom_error_handler(error, body, logger):
    logger.exception(f"Error handling request: {error}")
    logger.debug(f"Request body: {body}")


# Register action handler for the "<Category> Survey" buttons
@app.action(re.compile(rf"^{START_SURVEY_ACTION_PREFIX}.+"))
def category_button_click_wrapper(
    ack, body, client, logger
):  # noqa: WPS110 – slack signature
    handle_category_button_click(
        ack=ack,
        body=body,
        client=client,
        logger=logger,
        session_store=session_store,
        on_started=lambda s: _schedule_expiry(s, client),
        on_closed=_cancel_expiry,
    )


# Register message handler for answers typed in the DM
@app.event("message")
def answer_message_wrapper(event, client, logger):
    handle_answer_message(
        event=event,
        client=client,
        logger=logger,
        session_store=session_store,
        submission_store=submission_store,
        on_answered=lambda s: _restart_expiry(s, client),
        on_closed=_cancel_expiry,
    )


# NOTE: Runtime startup lives in survey_chatbot/main.py to keep this module import-safe and testable.
