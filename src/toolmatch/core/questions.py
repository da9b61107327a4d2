"""The quiz question bank.

Each question's option values are a ``str`` enum, so the catalog tags and the
questions are built from the same symbols. Question order is the traversal
order of the quiz.
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence

from .errors import ConfigurationError, InvalidAnswerError
from .models import AnswerSet, Option, Question

TEAM_SIZE = "teamSize"
PRIORITY = "priority"
BUDGET = "budget"
NEEDS = "needs"
WORKFLOW = "workflow"


class TeamSize(str, Enum):
    SOLO = "solo"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class Priority(str, Enum):
    PRODUCTIVITY = "productivity"
    COLLABORATION = "collaboration"
    PRIVACY = "privacy"
    DEVELOPMENT = "development"


class Budget(str, Enum):
    FREE = "free"
    LOW = "low"
    MEDIUM = "medium"
    FLEXIBLE = "flexible"


class Need(str, Enum):
    TABS = "tabs"
    PASSWORDS = "passwords"
    NOTES = "notes"
    MEETINGS = "meetings"


class Workflow(str, Enum):
    ASYNC = "async"
    SYNC = "sync"
    HYBRID = "hybrid"
    INDEPENDENT = "independent"


class WildcardTag(str, Enum):
    """Catalog tags that earn a bonus on one question whatever the chosen option."""

    ALL_SIZES = "all-sizes"
    ALL_WORKFLOW = "all-workflow"


def _question(question_id: str, prompt: str, labels: dict[Enum, str]) -> Question:
    return Question(
        id=question_id,
        prompt=prompt,
        options=tuple(Option(value=member.value, label=label) for member, label in labels.items()),
    )


QUESTIONS: tuple[Question, ...] = (
    _question(TEAM_SIZE, "How large is your team?", {
        TeamSize.SOLO: "Just me (solo founder)",
        TeamSize.SMALL: "2-10 people",
        TeamSize.MEDIUM: "11-50 people",
        TeamSize.LARGE: "50+ people",
    }),
    _question(PRIORITY, "What's your top priority?", {
        Priority.PRODUCTIVITY: "Personal productivity & focus",
        Priority.COLLABORATION: "Team collaboration",
        Priority.PRIVACY: "Privacy & security",
        Priority.DEVELOPMENT: "Development tools",
    }),
    _question(BUDGET, "What's your budget per team member?", {
        Budget.FREE: "Free only",
        Budget.LOW: "Under $10/month",
        Budget.MEDIUM: "$10-30/month",
        Budget.FLEXIBLE: "Flexible - willing to pay for value",
    }),
    _question(NEEDS, "Which features are most important?", {
        Need.TABS: "Tab management & organization",
        Need.PASSWORDS: "Password management",
        Need.NOTES: "Web clipping & note-taking",
        Need.MEETINGS: "Meeting & video tools",
    }),
    _question(WORKFLOW, "How does your team work?", {
        Workflow.ASYNC: "Mostly asynchronous",
        Workflow.SYNC: "Real-time collaboration",
        Workflow.HYBRID: "Mix of both",
        Workflow.INDEPENDENT: "Independently (minimal collaboration)",
    }),
)


def require_questions(questions: Sequence[Question]) -> Sequence[Question]:
    """Fail fast on an empty or ambiguous question bank."""
    if not questions:
        raise ConfigurationError("Question bank is empty")
    ids = [q.id for q in questions]
    if len(set(ids)) != len(ids):
        raise ConfigurationError(f"Question bank has duplicate ids: {ids}")
    for q in questions:
        if not q.options:
            raise ConfigurationError(f"Question '{q.id}' has no options")
    return questions


def get_question(question_id: str, questions: Sequence[Question] = QUESTIONS) -> Question:
    for q in questions:
        if q.id == question_id:
            return q
    raise InvalidAnswerError(f"Unknown question '{question_id}'")


def validate_answer(question_id: str, value: str, questions: Sequence[Question] = QUESTIONS) -> None:
    question = get_question(question_id, questions)
    if not question.has_option(value):
        raise InvalidAnswerError(
            f"'{value}' is not an option of question '{question_id}' "
            f"(expected one of: {', '.join(o.value for o in question.options)})"
        )


def validate_answers(answers: AnswerSet, questions: Sequence[Question] = QUESTIONS) -> None:
    """Raise InvalidAnswerError if any key or value is not in the question bank."""
    for question_id, value in answers.items():
        validate_answer(question_id, value, questions)


def missing_questions(answers: AnswerSet, questions: Sequence[Question] = QUESTIONS) -> list[str]:
    """Question ids, in bank order, that have no answer yet."""
    return [q.id for q in questions if q.id not in answers]
