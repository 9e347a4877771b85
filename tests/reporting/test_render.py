"""Unit tests for report rendering and Slack posting helpers."""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from survey_chatbot.categories import Category
from survey_chatbot.reporting import config
from survey_chatbot.reporting.aggregator import aggregate
from survey_chatbot.reporting.render import post_report_to_slack, render_report


@pytest.fixture(autouse=True)
def no_ai(monkeypatch):
    monkeypatch.setattr(config, "AI_INSIGHTS_ENABLED", False)


@pytest.fixture()
def records(make_record):
    return [
        make_record(Category.EMPLOYEE, {"q1": "8", "q2_positive": "great"}, elapsed=120),
        make_record(Category.CUSTOMER, {"q1": "9", "q7": "10"}, elapsed=650),
        make_record(Category.CUSTOMER, {"q1": "2", "q2_negative": "bad"}, completed=False),
    ]


def test_render_report_basic(records):
    out = render_report(aggregate(records), records)

    assert "All respondents" in out
    assert "3 total, 2 completed (67%)" in out
    assert "• Customers: 2" in out
    assert "• Positive: 4" in out
    assert "quality 9 / recommend 10" in out
    assert "*Most Active Group*" in out
    assert "😊" in out and "🙁" in out
    assert "*Themes*" not in out


def test_render_report_empty():
    out = render_report(aggregate([]), [])
    assert "No Data Yet" in out
    assert "*Recent responses*" not in out


def test_render_report_includes_ai_sections(records):
    with patch(
        "survey_chatbot.reporting.context._ai_insights",
        return_value=(["onboarding"], "People like it."),
    ):
        out = render_report(aggregate(records), records, scope=Category.CUSTOMER)

    assert "Customers" in out
    assert "• onboarding" in out
    assert "People like it." in out


def test_post_report_short_message(records):
    stats = aggregate(records)
    with patch("survey_chatbot.reporting.render.render_report", return_value="short") as render_mp:
        client = MagicMock()
        client.chat_postMessage.return_value = {"ts": "111.222"}
        post_report_to_slack(stats=stats, records=records, client=client, channel="C123")

    render_mp.assert_called_once()
    assert client.chat_postMessage.call_count == 2
    parent_call, thread_call = client.chat_postMessage.call_args_list
    assert parent_call.kwargs["text"] == "*Survey Analytics for all respondents* (3 responses)"
    assert thread_call.kwargs == {"channel": "C123", "text": "short", "thread_ts": "111.222"}
    client.files_upload_v2.assert_not_called()


def test_post_report_long_upload(records):
    long_text = "x" * 3000
    stats = aggregate(records)
    with patch("survey_chatbot.reporting.render.render_report", return_value=long_text):
        client = MagicMock()
        client.chat_postMessage.return_value = {"ts": "999.000"}
        post_report_to_slack(
            stats=stats,
            records=records,
            client=client,
            channel="C999",
            scope=Category.EMPLOYEE,
        )

    client.chat_postMessage.assert_called_once_with(
        channel="C999",
        text="*Survey Analytics for Employees* (3 responses)",
    )
    client.files_upload_v2.assert_called_once_with(
        channel="C999",
        title="Survey Analytics Report",
        content=long_text,
        filename="survey_report.md",
        thread_ts="999.000",
    )
