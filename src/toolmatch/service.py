"""Quiz service — one explicit context per signed-in user.

Wires the quiz session, the result lifecycle, the profile store, and the
background writer together. Contexts are independent: nothing mutable is
shared between two users' quizzes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence

from .core import lifecycle
from .core.catalog import CATALOG
from .core.clients import identity
from .core.errors import PersistenceFailure, QuizStateError
from .core.models import (
    DashboardStats,
    Identity,
    PersistDecision,
    Question,
    SavedResult,
    ScoredTool,
    SubscriptionTier,
    Tool,
    UserProfile,
)
from .core.questions import QUESTIONS
from .core.session import QuizSession
from .writer import ProfileWriter

logger = logging.getLogger(__name__)

LoadFn = Callable[[str], Awaitable[UserProfile]]
IdentifyFn = Callable[[str], Awaitable[Identity]]


@dataclass
class UserContext:
    """Everything one user's quiz needs between calls."""

    profile: UserProfile
    session: QuizSession
    result: Optional[SavedResult] = None
    decision: Optional[PersistDecision] = None
    saved: bool = False
    save_error: Optional[str] = None
    save_task: Optional[asyncio.Task] = field(default=None, repr=False)


@dataclass
class SaveStatus:
    saved: bool
    error: Optional[str] = None


class QuizService:
    """Runs quizzes for many users against one store and one writer."""

    def __init__(
        self,
        writer: ProfileWriter,
        load: Optional[LoadFn] = None,
        identify: Optional[IdentifyFn] = None,
        questions: Sequence[Question] = QUESTIONS,
        catalog: Sequence[Tool] = CATALOG,
    ):
        if load is None:
            from .store import get_profile as load
        self._writer = writer
        self._load = load
        self._identify = identify or identity.identify
        self._questions = questions
        self._catalog = catalog
        self._contexts: dict[str, UserContext] = {}

    # ─── Sessions ─────────────────────────────────────────────────────────

    async def start(self, email: str) -> UserContext:
        """Load the user's profile and begin a fresh quiz."""
        if not email:
            raise QuizStateError("Email is required")
        profile = await self._load(email)
        context = UserContext(profile=profile, session=QuizSession(self._questions, self._catalog))
        self._contexts[email] = context
        logger.info("Quiz started for %s (%s)", email, profile.subscription_tier.value)
        return context

    async def sign_in(self, id_token: str) -> UserContext:
        """Verify a sign-in credential and start a quiz for its email."""
        user = await self._identify(id_token)
        return await self.start(user.email)

    def context(self, email: str) -> UserContext:
        context = self._contexts.get(email)
        if context is None:
            raise QuizStateError(f"No quiz in progress for {email}; start one first")
        return context

    def discard(self, email: str) -> None:
        """Forget an abandoned quiz. Nothing partial is ever written."""
        self._contexts.pop(email, None)

    def adopt(self, profile: UserProfile) -> None:
        """Replace the cached profile after it was written outside the quiz flow."""
        context = self._contexts.get(profile.email)
        if context is not None:
            context.profile = profile

    def update_tier(self, email: str, tier: SubscriptionTier) -> None:
        """Keep an active quiz in step with a subscription change from the payment gateway."""
        context = self._contexts.get(email)
        if context is not None:
            context.profile = lifecycle.apply_subscription(context.profile, tier)
            logger.info("Active quiz for %s now on %s tier", email, tier.value)

    # ─── Navigation ───────────────────────────────────────────────────────

    def answer(self, email: str, question_id: str, value: str) -> UserContext:
        context = self.context(email)
        context.session.select(question_id, value)
        return context

    def previous(self, email: str) -> UserContext:
        context = self.context(email)
        context.session.previous()
        return context

    def restart(self, email: str) -> UserContext:
        context = self.context(email)
        context.session.restart()
        context.result = None
        context.decision = None
        context.saved = False
        context.save_error = None
        context.save_task = None
        return context

    def next(self, email: str) -> UserContext:
        """Advance; on the last question finalize the result and auto-save for premium."""
        context = self.context(email)
        ranked = context.session.next()
        if ranked is None:
            return context

        outcome = lifecycle.finalize(context.profile, context.session.answers, ranked)
        context.profile = outcome.profile
        context.result = outcome.result
        context.decision = outcome.decision
        context.saved = False
        context.save_error = None

        if outcome.decision == PersistDecision.PERSIST_NOW:
            self._submit(context)
        return context

    # ─── Saving ───────────────────────────────────────────────────────────

    def _submit(self, context: UserContext) -> None:
        task = self._writer.submit(context.profile.email, lambda: context.profile)
        context.save_task = task

        def _done(t: asyncio.Task) -> None:
            if t.cancelled():
                context.save_error = "Save was cancelled"
                return
            exc = t.exception()
            if exc is None:
                context.saved = True
                context.save_error = None
            else:
                context.save_error = str(exc)

        task.add_done_callback(_done)

    async def wait_for_save(self, email: str) -> SaveStatus:
        """Wait for the pending auto-save, if any, and report how it went."""
        context = self.context(email)
        if context.save_task is not None:
            await asyncio.gather(context.save_task, return_exceptions=True)
        return SaveStatus(saved=context.saved, error=context.save_error)

    async def save_result(self, email: str) -> SaveStatus:
        """Manually save the just-finished result (the free-tier "save" button)."""
        context = self.context(email)
        results = context.session.results
        if not results:
            raise QuizStateError("Finish the quiz before saving its result")
        if context.result is not None and context.result in context.profile.saved_results:
            raise QuizStateError("This result is already saved")

        profile, result = lifecycle.save_result(context.profile, context.session.answers, results)
        context.profile = profile
        context.result = result
        return await self._write_now(context)

    async def retry_save(self, email: str) -> SaveStatus:
        """Write the in-memory profile again after a failed save."""
        context = self.context(email)
        if context.save_error is None:
            raise QuizStateError("There is no failed save to retry")
        return await self._write_now(context)

    async def _write_now(self, context: UserContext) -> SaveStatus:
        try:
            await self._writer.write(context.profile.email, lambda: context.profile)
        except PersistenceFailure as exc:
            context.saved = False
            context.save_error = str(exc)
        else:
            context.saved = True
            context.save_error = None
        return SaveStatus(saved=context.saved, error=context.save_error)

    # ─── Dashboard ────────────────────────────────────────────────────────

    def dashboard(self, email: str) -> DashboardStats:
        context = self.context(email)
        current = None
        if context.result is not None and context.result not in context.profile.saved_results:
            current = list(context.result.top_tools)
        return lifecycle.dashboard_stats(context.profile, current)

    def view_saved(self, email: str, index: int) -> list[ScoredTool]:
        """Re-rank the answers of the saved result at ``index`` (0 = most recent)."""
        context = self.context(email)
        saved = context.profile.saved_results
        if not 0 <= index < len(saved):
            raise QuizStateError(f"No saved result at position {index}")
        return lifecycle.rescore_saved(saved[index], self._catalog, self._questions)
