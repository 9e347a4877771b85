import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from slack_sdk.errors import SlackApiError
from slack_sdk.models.blocks import (
    ActionsBlock,
    ButtonElement,
    ContextBlock,
    SectionBlock,
)
from slack_sdk.web import WebClient

from survey_chatbot.categories import Category, label
from survey_chatbot.questions import AnswerKind, QuestionNode
from survey_chatbot.session_data import SurveySession

logger = logging.getLogger(__name__)

START_SURVEY_ACTION_PREFIX = "start_survey_"

_PROGRESS_WIDTH = 10


def progress_bar(answered: int, total: int) -> str:
    """Return a fixed-width text progress bar, e.g. ``▰▰▰▱▱▱▱▱▱▱``."""
    filled = min(_PROGRESS_WIDTH, round(_PROGRESS_WIDTH * answered / total)) if total else 0
    return "▰" * filled + "▱" * (_PROGRESS_WIDTH - filled)


def build_category_picker() -> List[dict]:
    """Return Block Kit blocks letting the respondent pick a survey category."""
    buttons = [
        ButtonElement(
            text={"type": "plain_text", "text": f"{label(category)} Survey"},
            action_id=f"{START_SURVEY_ACTION_PREFIX}{category.value}",
            value=json.dumps({"category": category.value}),
            style="primary" if category is Category.EMPLOYEE else None,
        )
        for category in Category
    ]
    intro_text = (
        "*Hi, from `survey-bot`* :wave:\n\n"
        "Ten quick questions; the next one depends on your last answer.\n"
        "Who are you answering as?"
    )
    blocks = [
        SectionBlock(text={"type": "mrkdwn", "text": intro_text}),
        ActionsBlock(elements=buttons),
    ]
    return [block.to_dict() for block in blocks]


def _answer_hint(node: QuestionNode) -> str:
    if node.answer_kind is AnswerKind.SHORT:
        return "Reply with a short answer or a rating from 1 to 10."
    return "Reply in your own words. Take as much space as you need."


def build_question_message(session: SurveySession) -> Tuple[str, List[dict]]:
    """Return ``(fallback_text, blocks)`` for the session's current question.

    Raises :class:`survey_chatbot.exceptions.QuestionNotFoundError` if the
    session is already complete.
    """
    node = session.current_prompt()
    answered, total = session.progress()
    number = session.question_number
    header = (
        f"*{label(session.category)} Survey* · Question {number} of {total}  "
        f"{progress_bar(answered, total)}"
    )
    blocks = [
        ContextBlock(elements=[{"type": "mrkdwn", "text": header}]),
        SectionBlock(text={"type": "mrkdwn", "text": f"*{node.prompt}*"}),
        ContextBlock(elements=[{"type": "mrkdwn", "text": _answer_hint(node)}]),
    ]
    return f"Question {number} of {total}: {node.prompt}", [b.to_dict() for b in blocks]


def build_completion_message(category: Category) -> str:
    return (
        f":white_check_mark: *Thank you!* Your {label(category)} survey has been "
        "submitted successfully. Your feedback helps us improve our products "
        "and services."
    )


def post_question(client: WebClient, channel: str, session: SurveySession) -> Optional[Dict[str, Any]]:
    """DM the session's current question to *channel*.

    Slack API failures are logged and swallowed; the respondent can resend
    their answer or restart with the command.
    """
    text, blocks = build_question_message(session)
    try:
        resp = client.chat_postMessage(channel=channel, text=text, blocks=blocks)
        logger.info(
            "question_posted",
            extra={
                "session_id": session.session_id,
                "node_id": session.current_node_id,
            },
        )
        return resp
    except SlackApiError as e:
        logger.error(
            f"Error posting question {session.current_node_id} for session "
            f"{session.session_id}: {e.response.get('error')}"
        )
    return None
