"""Quiz session state machine.

A session walks the question bank in order. It is either at question ``i``
or completed; completing it scores the accumulated answers. One session per
user, owned by the caller — nothing here is shared between users.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .catalog import CATALOG, require_catalog
from .errors import IncompleteAnswerError, InvalidAnswerError, QuizStateError
from .models import AnswerSet, Question, ScoredTool, Tool
from .questions import QUESTIONS, require_questions, validate_answer
from .scoring import TOP_N, recommend

logger = logging.getLogger(__name__)


class QuizSession:
    """Tracks the current question, the answers so far, and the final ranking."""

    def __init__(
        self,
        questions: Sequence[Question] = QUESTIONS,
        catalog: Sequence[Tool] = CATALOG,
        limit: int = TOP_N,
    ):
        self._questions = tuple(require_questions(questions))
        self._catalog = tuple(require_catalog(catalog))
        self._limit = limit
        self._index = 0
        self._answers: AnswerSet = {}
        self._results: Optional[list[ScoredTool]] = None

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def index(self) -> int:
        return self._index

    @property
    def total(self) -> int:
        return len(self._questions)

    @property
    def completed(self) -> bool:
        return self._results is not None

    @property
    def current_question(self) -> Question:
        return self._questions[self._index]

    @property
    def current_answer(self) -> Optional[str]:
        return self._answers.get(self.current_question.id)

    @property
    def is_last(self) -> bool:
        return self._index == len(self._questions) - 1

    @property
    def can_advance(self) -> bool:
        return not self.completed and self.current_answer is not None

    @property
    def progress(self) -> float:
        """Percent of the quiz reached, counting the current question."""
        if self.completed:
            return 100.0
        return (self._index + 1) / len(self._questions) * 100

    @property
    def answers(self) -> AnswerSet:
        return dict(self._answers)

    @property
    def results(self) -> Optional[list[ScoredTool]]:
        return list(self._results) if self._results is not None else None

    # ─── Transitions ──────────────────────────────────────────────────────

    def select(self, question_id: str, value: str) -> None:
        """Record an answer for the current question without advancing."""
        self._require_active("answer")
        current = self.current_question
        if question_id != current.id:
            raise InvalidAnswerError(
                f"Question '{question_id}' is not the current question ('{current.id}')"
            )
        validate_answer(question_id, value, self._questions)
        self._answers[question_id] = value

    def next(self) -> Optional[list[ScoredTool]]:
        """Advance one question, or complete the quiz from the last one.

        Returns the ranked recommendations when the quiz completes, else None.
        """
        self._require_active("advance")
        if self.current_answer is None:
            raise IncompleteAnswerError(
                f"Answer question '{self.current_question.id}' before continuing"
            )

        if not self.is_last:
            self._index += 1
            return None

        self._results = recommend(self._answers, self._catalog, self._questions, self._limit)
        logger.info("Quiz completed with %d answers, %d recommendations", len(self._answers), len(self._results))
        return list(self._results)

    def previous(self) -> None:
        """Go back one question; the answer there is kept."""
        self._require_active("go back")
        if self._index == 0:
            raise QuizStateError("Already at the first question")
        self._index -= 1

    def restart(self) -> None:
        """Back to the first question with no answers, from any state."""
        self._index = 0
        self._answers = {}
        self._results = None

    def _require_active(self, action: str) -> None:
        if self.completed:
            raise QuizStateError(f"Cannot {action}: the quiz is already completed")
