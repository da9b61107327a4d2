"""Saved-result lifecycle — what happens to a quiz result once it is computed.

Premium accounts get every completed quiz saved automatically; free accounts
are offered a manual save. Functions here are pure: they return updated
profile copies and never talk to storage.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from .catalog import CATALOG
from .errors import ConfigurationError
from .models import (
    AnswerSet,
    DashboardStats,
    Finalization,
    PersistDecision,
    Question,
    SavedResult,
    ScoredTool,
    SubscriptionTier,
    Tool,
    UserProfile,
)
from .questions import QUESTIONS
from .scoring import TOP_N, recommend

logger = logging.getLogger(__name__)


def summary_label(tools: Sequence[ScoredTool]) -> str:
    """``"<first> & <N-1> more"``, or just the first name when there is one tool."""
    if not tools:
        raise ConfigurationError("Cannot summarize an empty recommendation list")
    if len(tools) == 1:
        return tools[0].name
    return f"{tools[0].name} & {len(tools) - 1} more"


def build_saved_result(
    answers: AnswerSet,
    scored: Sequence[ScoredTool],
    now: Optional[datetime] = None,
) -> SavedResult:
    """Snapshot the top recommendations of one quiz."""
    top = tuple(scored[:TOP_N])
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    return SavedResult(
        timestamp=timestamp,
        answers=dict(answers),
        top_tools=top,
        summary_label=summary_label(top),
        tool_count=len(top),
    )


def _prepend(profile: UserProfile, result: SavedResult) -> UserProfile:
    return profile.model_copy(update={"saved_results": [result, *profile.saved_results]})


def finalize(
    profile: UserProfile,
    answers: AnswerSet,
    scored: Sequence[ScoredTool],
    now: Optional[datetime] = None,
) -> Finalization:
    """Count the completed quiz and decide whether its result is saved now.

    The quiz counter goes up for every tier. Premium profiles get the result
    prepended to their history; free profiles get it back unsaved, with an
    offer to save it manually.
    """
    result = build_saved_result(answers, scored, now)
    updated = profile.model_copy(update={"quizzes_taken": profile.quizzes_taken + 1})

    if updated.is_premium:
        updated = _prepend(updated, result)
        decision = PersistDecision.PERSIST_NOW
    else:
        decision = PersistDecision.OFFER_MANUAL_SAVE

    logger.info(
        "Finalized quiz for %s (%s): %s, decision=%s",
        profile.email,
        profile.subscription_tier.value,
        result.summary_label,
        decision.value,
    )
    return Finalization(profile=updated, decision=decision, result=result)


def save_result(
    profile: UserProfile,
    answers: AnswerSet,
    scored: Sequence[ScoredTool],
    now: Optional[datetime] = None,
) -> tuple[UserProfile, SavedResult]:
    """Explicitly save a result (the free-tier manual save). The quiz counter is untouched."""
    result = build_saved_result(answers, scored, now)
    return _prepend(profile, result), result


def total_tools_recommended(profile: UserProfile, current: Optional[Sequence[ScoredTool]] = None) -> int:
    """Tools across all saved results plus the current, not-yet-saved result."""
    total = sum(r.tool_count for r in profile.saved_results)
    if current:
        total += len(current[:TOP_N])
    return total


def dashboard_stats(profile: UserProfile, current: Optional[Sequence[ScoredTool]] = None) -> DashboardStats:
    return DashboardStats(
        subscription_tier=profile.subscription_tier,
        quizzes_taken=profile.quizzes_taken,
        results_saved=len(profile.saved_results),
        tools_recommended=total_tools_recommended(profile, current),
    )


def rescore_saved(
    result: SavedResult,
    catalog: Sequence[Tool] = CATALOG,
    questions: Sequence[Question] = QUESTIONS,
) -> list[ScoredTool]:
    """Re-rank a saved result's answers against the current catalog."""
    return recommend(result.answers, catalog, questions)


def apply_subscription(profile: UserProfile, tier: SubscriptionTier) -> UserProfile:
    return profile.model_copy(update={"subscription_tier": tier})
