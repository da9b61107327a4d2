"""Error taxonomy shared by the core, the store, and the server surface."""

from __future__ import annotations


class ToolMatchError(Exception):
    """Base class for every error raised by toolmatch."""


class ConfigurationError(ToolMatchError):
    """Required setup is missing (empty question bank, empty catalog, unset env var).

    Fatal at startup; never recoverable per request.
    """


class InvalidAnswerError(ToolMatchError):
    """An answer references an unknown question, an unknown option, or a question that is not current."""


class IncompleteAnswerError(ToolMatchError):
    """Tried to advance past a question that has no recorded answer."""


class QuizStateError(ToolMatchError):
    """The quiz session is not in a state that allows the requested transition."""


class PersistenceFailure(ToolMatchError):
    """The profile store could not read or write a profile."""


class UpstreamServiceError(ToolMatchError):
    """The identity provider or payment gateway failed or returned something unusable."""
