"""Render analytics reports using Jinja2 templates."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

from jinja2 import Environment, FileSystemLoader

from survey_chatbot.categories import Category, plural_label
from survey_chatbot.reporting import config
from survey_chatbot.reporting.context import build_report_context
from survey_chatbot.reporting.models import AggregateStats
from survey_chatbot.session_data import SubmissionRecord

logger = logging.getLogger(__name__)

_TEMPLATE_DIR = Path(__file__).parent / "templates"

# Markdown/slack templates don’t need HTML escaping – it breaks apostrophes etc.
_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_report(
    stats: AggregateStats,
    records: Sequence[SubmissionRecord],
    *,
    scope: Optional[Category] = None,
) -> str:
    """Render a Slack-friendly markdown report from *stats*."""

    context = build_report_context(stats, records, scope=scope)
    template = _env.get_template("report.md.j2")
    return template.render(**context.to_dict())


def post_report_to_slack(
    *,
    stats: AggregateStats,
    records: Sequence[SubmissionRecord],
    client,
    channel: str,
    scope: Optional[Category] = None,
):
    """Send the analytics report to Slack *channel* using *client* (WebClient)."""

    # ------------------------------------------------------------------
    # 1. Post parent message
    # ------------------------------------------------------------------

    title_part = plural_label(scope) if scope is not None else "all respondents"
    parent_resp = client.chat_postMessage(
        channel=channel,
        text=f"*Survey Analytics for {title_part}* ({stats.total} responses)",
    )

    parent_ts = parent_resp["ts"]
    report_text = render_report(stats, records, scope=scope)
    report_len = len(report_text)
    logger.debug(
        "Report generated for scope=%s channel=%s len=%d",
        title_part,
        channel,
        report_len,
    )

    # ------------------------------------------------------------------
    # 2. Post threaded report (message or file)
    # ------------------------------------------------------------------

    if report_len < config.MAX_MESSAGE_CHARS:
        client.chat_postMessage(
            channel=channel,
            text=report_text,
            thread_ts=parent_ts,
        )
    else:
        logger.debug(
            "Uploading report as file (len=%d >= %d) via files_upload_v2",
            report_len,
            config.MAX_MESSAGE_CHARS,
        )
        client.files_upload_v2(
            channel=channel,
            title="Survey Analytics Report",
            content=report_text,
            filename="survey_report.md",
            thread_ts=parent_ts,
        )
