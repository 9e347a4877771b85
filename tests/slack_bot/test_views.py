import json
import unittest
from unittest.mock import Mock

from slack_sdk.errors import SlackApiError

from survey_chatbot.categories import Category
from survey_chatbot.exceptions import QuestionNotFoundError
from survey_chatbot.session_data import SurveySession
from survey_chatbot.slack_bot.views import (
    START_SURVEY_ACTION_PREFIX,
    build_category_picker,
    build_completion_message,
    build_question_message,
    post_question,
    progress_bar,
)


class TestViews(unittest.TestCase):
    def test_category_picker_structure(self):
        blocks = build_category_picker()

        self.assertEqual([b["type"] for b in blocks], ["section", "actions"])
        buttons = blocks[1]["elements"]
        self.assertEqual(
            [b["action_id"] for b in buttons],
            [f"{START_SURVEY_ACTION_PREFIX}{c.value}" for c in Category],
        )
        self.assertEqual(
            [json.loads(b["value"]) for b in buttons],
            [{"category": "employee"}, {"category": "stakeholder"}, {"category": "customer"}],
        )
        self.assertEqual(buttons[0]["text"]["text"], "Employee Survey")
        self.assertEqual(buttons[0]["style"], "primary")
        self.assertNotIn("style", buttons[1])

    def test_progress_bar(self):
        self.assertEqual(progress_bar(0, 10), "▱" * 10)
        self.assertEqual(progress_bar(3, 10), "▰▰▰▱▱▱▱▱▱▱")
        self.assertEqual(progress_bar(10, 10), "▰" * 10)
        self.assertEqual(progress_bar(5, 0), "▱" * 10)

    def test_first_question_message(self):
        session = SurveySession.start(Category.CUSTOMER)
        text, blocks = build_question_message(session)

        self.assertEqual(
            text, "Question 1 of 10: How satisfied are you with your purchase? (1-10)"
        )
        header = blocks[0]["elements"][0]["text"]
        self.assertIn("Customer Survey", header)
        self.assertIn("Question 1 of 10", header)
        self.assertEqual(
            blocks[1]["text"]["text"], "*How satisfied are you with your purchase? (1-10)*"
        )
        self.assertIn("rating from 1 to 10", blocks[2]["elements"][0]["text"])

    def test_follow_up_question_message(self):
        session = SurveySession.start(Category.CUSTOMER)
        session.submit_answer("3")
        text, blocks = build_question_message(session)

        self.assertTrue(text.startswith("Question 2 of 10: We apologize"))
        self.assertIn("▰▱▱▱▱▱▱▱▱▱", blocks[0]["elements"][0]["text"])
        self.assertIn("own words", blocks[2]["elements"][0]["text"])

    def test_question_message_after_completion_raises(self):
        session = SurveySession.start(Category.EMPLOYEE)
        while not session.is_complete:
            session.submit_answer("8")
        with self.assertRaises(QuestionNotFoundError):
            build_question_message(session)

    def test_completion_message(self):
        msg = build_completion_message(Category.STAKEHOLDER)
        self.assertIn("Thank you!", msg)
        self.assertIn("Stakeholder survey", msg)

    def test_post_question_success(self):
        client = Mock()
        client.chat_postMessage.return_value = {"ok": True, "ts": "1.2"}
        session = SurveySession.start(Category.EMPLOYEE)

        resp = post_question(client, "U1", session)

        self.assertEqual(resp["ts"], "1.2")
        kwargs = client.chat_postMessage.call_args.kwargs
        self.assertEqual(kwargs["channel"], "U1")
        self.assertTrue(kwargs["text"].startswith("Question 1 of 10"))
        self.assertEqual(len(kwargs["blocks"]), 3)

    def test_post_question_slack_error(self):
        client = Mock()
        client.chat_postMessage.side_effect = SlackApiError(
            "failed", {"ok": False, "error": "channel_not_found"}
        )
        session = SurveySession.start(Category.EMPLOYEE)

        with self.assertLogs("survey_chatbot.slack_bot.views", level="ERROR") as logs:
            resp = post_question(client, "U1", session)

        self.assertIsNone(resp)
        self.assertIn("channel_not_found", logs.output[0])


if __name__ == "__main__":
    unittest.main()
