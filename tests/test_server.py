"""
Tests for the MCP tool functions, with the quiz service backed by memory.
"""

import unittest
from unittest.mock import patch

from toolmatch import server
from toolmatch.core.errors import InvalidAnswerError
from toolmatch.core.models import SubscriptionTier, UserProfile
from toolmatch.core.questions import QUESTIONS
from toolmatch.service import QuizService
from toolmatch.writer import ProfileWriter

from test_service import CHOICES, MemoryStore


class TestStatelessTools(unittest.IsolatedAsyncioTestCase):

    async def test_questions(self):
        result = await server.quiz_questions()
        self.assertEqual(result["count"], 5)
        self.assertEqual([q["id"] for q in result["questions"]], [q.id for q in QUESTIONS])

    async def test_catalog(self):
        result = await server.quiz_catalog()
        self.assertEqual(result["count"], 8)

    async def test_recommend(self):
        result = await server.quiz_recommend(dict(zip((q.id for q in QUESTIONS), CHOICES)))
        self.assertEqual(result["recommendations"][0]["name"], "Toby")
        self.assertEqual(result["recommendations"][0]["match_percent"], 75)
        self.assertTrue(result["summary"].startswith("Toby (75%)"))
        self.assertEqual(result["unanswered"], [])

    async def test_recommend_partial_answers(self):
        result = await server.quiz_recommend({"workflow": "async"})
        self.assertEqual(result["unanswered"], ["teamSize", "priority", "budget", "needs"])
        self.assertEqual(result["recommendations"][0]["name"], "Notion Web Clipper")

    async def test_recommend_rejects_unknown_option(self):
        with self.assertRaises(InvalidAnswerError):
            await server.quiz_recommend({"teamSize": "enormous"})


class TestQuizTools(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.store = MemoryStore([UserProfile(email="pro@example.com", subscription_tier=SubscriptionTier.PREMIUM)])
        service = QuizService(ProfileWriter(self.store.save), load=self.store.load)
        self._patch = patch.object(server, "service", service)
        self._patch.start()

    def tearDown(self):
        self._patch.stop()

    async def test_full_quiz(self):
        state = await server.quiz_start("pro@example.com")
        self.assertEqual(state["subscription"], "premium")
        self.assertEqual(state["question"]["id"], "teamSize")
        self.assertFalse(state["can_go_back"])

        result = None
        for question, value in zip(QUESTIONS, CHOICES):
            state = await server.quiz_answer("pro@example.com", question.id, value)
            self.assertTrue(state["can_advance"])
            result = await server.quiz_next("pro@example.com")

        self.assertTrue(result["completed"])
        self.assertEqual(result["decision"], "persist_now")
        self.assertTrue(result["saved"])
        self.assertEqual(result["summary"], "Toby & 4 more")
        self.assertEqual(result["dashboard"]["results_saved"], 1)

        dashboard = await server.quiz_dashboard("pro@example.com")
        self.assertEqual(dashboard["quizzes_taken"], 1)
        self.assertEqual(dashboard["saved_results"][0]["summary"], "Toby & 4 more")

        viewed = await server.quiz_view_saved("pro@example.com", 0)
        self.assertEqual(
            [(t["name"], t["match_percent"]) for t in viewed["recommendations"]],
            [(t["name"], t["match_percent"]) for t in result["recommendations"]],
        )

    async def test_previous_and_restart(self):
        await server.quiz_start("pro@example.com")
        await server.quiz_answer("pro@example.com", "teamSize", "solo")
        state = await server.quiz_next("pro@example.com")
        self.assertEqual(state["question_index"], 1)

        state = await server.quiz_previous("pro@example.com")
        self.assertEqual(state["question_index"], 0)
        self.assertEqual(state["selected"], "solo")

        state = await server.quiz_restart("pro@example.com")
        self.assertIsNone(state["selected"])

    async def test_discard(self):
        await server.quiz_start("pro@example.com")
        result = await server.quiz_discard("pro@example.com")
        self.assertTrue(result["discarded"])


if __name__ == "__main__":
    unittest.main()
