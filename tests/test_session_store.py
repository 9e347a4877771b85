import datetime
import threading
import time
import unittest

from survey_chatbot.categories import Category
from survey_chatbot.exceptions import ValidationError
from survey_chatbot.session_data import SurveySession
from survey_chatbot.session_store import ThreadSafeSessionStore


class TestThreadSafeSessionStore(unittest.TestCase):
    def setUp(self):
        self.store = ThreadSafeSessionStore()
        self.session1 = SurveySession.start(Category.EMPLOYEE, user_id="u1")
        self.session2 = SurveySession.start(Category.CUSTOMER, user_id="u2")

    def test_add_and_get_session(self):
        self.assertIsNone(self.store.add_session("u1", self.session1))
        retrieved = self.store.get_session("u1")
        self.assertIs(retrieved, self.session1)
        self.assertEqual(self.store.count(), 1)

    def test_add_replaces_previous_session_of_same_user(self):
        self.store.add_session("u1", self.session1)
        restarted = SurveySession.start(Category.STAKEHOLDER, user_id="u1")
        replaced = self.store.add_session("u1", restarted)
        self.assertIs(replaced, self.session1)
        self.assertIs(self.store.get_session("u1"), restarted)
        self.assertEqual(self.store.count(), 1)

    def test_get_non_existent_session(self):
        self.assertIsNone(self.store.get_session("nobody"))

    def test_get_session_updates_last_accessed(self):
        self.store.add_session("u1", self.session1)
        original = self.session1.last_accessed_at
        time.sleep(0.001)
        self.store.get_session("u1")
        self.assertGreaterEqual(self.session1.last_accessed_at, original)
        self.assertEqual(self.session1.last_accessed_at.tzinfo, datetime.timezone.utc)

    def test_remove_session(self):
        self.store.add_session("u1", self.session1)
        removed = self.store.remove_session("u1")
        self.assertIs(removed, self.session1)
        self.assertIsNone(self.store.get_session("u1"))
        self.assertIsNone(self.store.remove_session("u1"))

    def test_remove_session_with_stale_id_keeps_newer_session(self):
        self.store.add_session("u1", self.session1)
        restarted = SurveySession.start(Category.EMPLOYEE, user_id="u1")
        self.store.add_session("u1", restarted)

        self.assertIsNone(self.store.remove_session("u1", self.session1.session_id))
        self.assertIs(self.store.get_session("u1"), restarted)
        self.assertIs(self.store.remove_session("u1", restarted.session_id), restarted)

    def test_get_all_sessions_is_copy(self):
        self.store.add_session("u1", self.session1)
        self.store.add_session("u2", self.session2)
        all_sessions = self.store.get_all_sessions()
        self.assertEqual(set(all_sessions), {"u1", "u2"})
        all_sessions.clear()
        self.assertEqual(self.store.count(), 2)

    def test_modify_session(self):
        self.store.add_session("u1", self.session1)

        def _answer(session):
            session.submit_answer("9")

        result = self.store.modify_session("u1", _answer)
        self.assertIs(result, self.session1)
        self.assertEqual(self.session1.answers, {"q1": "9"})

    def test_modify_missing_session_raises(self):
        with self.assertRaisesRegex(ValueError, "No live survey session for user ghost"):
            self.store.modify_session("ghost", lambda s: None)

    def test_submit_answer_advances_session(self):
        self.store.add_session("u2", self.session2)
        session = self.store.submit_answer("u2", "2")
        self.assertEqual(session.current_node_id, "q2_negative")

    def test_submit_blank_answer_propagates_validation_error(self):
        self.store.add_session("u2", self.session2)
        with self.assertRaises(ValidationError):
            self.store.submit_answer("u2", "  ")
        self.assertEqual(self.session2.answers, {})

    def test_max_sessions_limit(self):
        store = ThreadSafeSessionStore(max_sessions=1)
        store.add_session("u1", self.session1)
        with self.assertRaisesRegex(ValueError, "Maximum concurrent session limit"):
            store.add_session("u2", self.session2)
        # Restarting an existing survey does not count against the limit.
        store.add_session("u1", SurveySession.start(Category.CUSTOMER, user_id="u1"))
        self.assertEqual(store.count(), 1)

    def test_non_positive_limit_means_unlimited(self):
        store = ThreadSafeSessionStore(max_sessions=0)
        for i in range(5):
            store.add_session(f"u{i}", SurveySession.start(Category.EMPLOYEE))
        self.assertEqual(store.count(), 5)

    def test_concurrent_answers_are_serialized(self):
        users = [f"user{i}" for i in range(10)]
        for user in users:
            self.store.add_session(user, SurveySession.start(Category.CUSTOMER, user_id=user))

        def _respond(user):
            for _ in range(10):
                self.store.submit_answer(user, "8")

        threads = [threading.Thread(target=_respond, args=(u,)) for u in users]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for user in users:
            session = self.store.get_session(user)
            self.assertTrue(session.is_complete)
            self.assertEqual(len(session.answers), 10)


if __name__ == "__main__":
    unittest.main()
