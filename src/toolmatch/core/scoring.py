"""Tool match scoring and ranking engine.

Scores every catalog tool against a quiz AnswerSet and ranks the result.
This is the core of the recommendation — everything else is plumbing.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from .catalog import CATALOG, require_catalog
from .errors import ConfigurationError
from .models import AnswerSet, Question, ScoredTool, Tool
from .questions import QUESTIONS, TEAM_SIZE, WORKFLOW, WildcardTag, require_questions, validate_answers

logger = logging.getLogger(__name__)

BASE_POINTS = 20
WILDCARD_BONUS = 15
TOP_N = 5

# Question id -> wildcard tag that earns WILDCARD_BONUS on that question.
WILDCARD_BONUSES: dict[str, WildcardTag] = {
    TEAM_SIZE: WildcardTag.ALL_SIZES,
    WORKFLOW: WildcardTag.ALL_WORKFLOW,
}


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def score_tool(tool: Tool, answers: AnswerSet) -> ScoredTool:
    """Score a single tool against an AnswerSet.

    Every answered question adds BASE_POINTS to the maximum. A tool earns
    BASE_POINTS when its tags contain the chosen value, plus WILDCARD_BONUS
    when it carries the question's wildcard tag. The bonus is not counted in
    the maximum, so a strong match can score above 100%.
    """
    if not answers:
        raise ConfigurationError("Cannot score an empty answer set")

    score = 0
    max_score = 0
    for question_id, value in answers.items():
        max_score += BASE_POINTS

        if value in tool.tags:
            score += BASE_POINTS

        wildcard = WILDCARD_BONUSES.get(question_id)
        if wildcard is not None and wildcard.value in tool.tags:
            score += WILDCARD_BONUS

    return ScoredTool.from_tool(tool, _round_half_up(score / max_score * 100))


def score_tools(
    answers: AnswerSet,
    catalog: Sequence[Tool] = CATALOG,
    questions: Sequence[Question] = QUESTIONS,
) -> list[ScoredTool]:
    """Score every catalog tool, in catalog order.

    Raises InvalidAnswerError for answers outside the question bank and
    ConfigurationError for an empty AnswerSet, bank, or catalog.
    """
    require_questions(questions)
    require_catalog(catalog)
    validate_answers(answers, questions)
    if not answers:
        raise ConfigurationError("Cannot score an empty answer set")

    return [score_tool(tool, answers) for tool in catalog]


def rank_tools(scored: Sequence[ScoredTool], limit: int = TOP_N) -> list[ScoredTool]:
    """Highest match first; ties keep catalog order."""
    ranked = sorted(scored, key=lambda t: t.match_percent, reverse=True)
    return ranked[:limit]


def recommend(
    answers: AnswerSet,
    catalog: Sequence[Tool] = CATALOG,
    questions: Sequence[Question] = QUESTIONS,
    limit: int = TOP_N,
) -> list[ScoredTool]:
    """Score and rank in one step."""
    ranked = rank_tools(score_tools(answers, catalog, questions), limit)
    logger.debug(
        "Ranked %d tools for %d answers: %s",
        len(ranked),
        len(answers),
        ", ".join(f"{t.name}={t.match_percent}" for t in ranked),
    )
    return ranked
