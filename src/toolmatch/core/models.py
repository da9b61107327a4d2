"""Pydantic data models — the shared business objects.

The MCP server, the HTTP routes, and the profile store all use these models
as the common interface for scoring, saving, and serialization.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

AnswerSet = dict[str, str]


class SubscriptionTier(str, Enum):
    """Account tiers granted by the payment gateway."""

    FREE = "free"
    PREMIUM = "premium"


class PersistDecision(str, Enum):
    """What the caller should do with a freshly finalized quiz result."""

    PERSIST_NOW = "persist_now"
    OFFER_MANUAL_SAVE = "offer_manual_save"


class Option(BaseModel):
    """One selectable answer of a question."""

    model_config = ConfigDict(frozen=True)

    value: str
    label: str


class Question(BaseModel):
    """A multiple-choice quiz question."""

    model_config = ConfigDict(frozen=True)

    id: str
    prompt: str
    options: tuple[Option, ...]

    @property
    def values(self) -> frozenset[str]:
        return frozenset(o.value for o in self.options)

    def has_option(self, value: str) -> bool:
        return value in self.values


class Tool(BaseModel):
    """A recommendable browser tool from the static catalog."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    pricing: str = Field(description="Human-readable pricing text")
    tags: frozenset[str] = Field(
        default_factory=frozenset,
        description="Option values (and wildcard tags) the tool is a good fit for",
    )
    pros: tuple[str, ...] = ()
    cons: tuple[str, ...] = ()


class ScoredTool(Tool):
    """A catalog tool with its computed match percentage.

    The percentage is not clamped: wildcard bonuses can push it past 100.
    """

    match_percent: int = Field(ge=0)

    @classmethod
    def from_tool(cls, tool: Tool, match_percent: int) -> ScoredTool:
        return cls(**dict(tool), match_percent=match_percent)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SavedResult(BaseModel):
    """A persisted snapshot of one completed quiz's top recommendations."""

    model_config = ConfigDict(frozen=True)

    timestamp: str = Field(default_factory=_utc_now_iso, description="ISO-8601 creation time")
    answers: AnswerSet
    top_tools: tuple[ScoredTool, ...] = Field(max_length=5)
    summary_label: str
    tool_count: int

    @model_validator(mode="after")
    def _check_tool_count(self) -> SavedResult:
        if self.tool_count != len(self.top_tools):
            raise ValueError(
                f"tool_count {self.tool_count} does not match {len(self.top_tools)} top tools"
            )
        return self


class UserProfile(BaseModel):
    """Per-email account state owned by the profile store."""

    email: str
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    saved_results: list[SavedResult] = Field(default_factory=list, description="Most recent first")
    quizzes_taken: int = Field(default=0, ge=0)

    @property
    def is_premium(self) -> bool:
        return self.subscription_tier == SubscriptionTier.PREMIUM


class Identity(BaseModel):
    """Claims supplied by the identity provider after sign-in."""

    email: str
    name: Optional[str] = None


class Finalization(BaseModel):
    """Outcome of finishing a quiz: the updated profile and what to do next."""

    profile: UserProfile
    decision: PersistDecision
    result: SavedResult = Field(description="Saved for premium; the unsaved candidate for free")


class DashboardStats(BaseModel):
    """Aggregate counters shown on the dashboard."""

    subscription_tier: SubscriptionTier
    quizzes_taken: int
    results_saved: int
    tools_recommended: int
