"""The static catalog of recommendable browser tools.

Catalog order matters: it breaks ties when ranking.
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence

from .errors import ConfigurationError
from .models import Tool
from .questions import Budget, Need, Priority, TeamSize, WildcardTag, Workflow


def _tags(*members: Enum) -> frozenset[str]:
    return frozenset(m.value for m in members)


CATALOG: tuple[Tool, ...] = (
    Tool(
        name="Arc Browser",
        description="Modern browser designed for organization and productivity with built-in split view, spaces, and seamless tab management.",
        pricing="Free",
        tags=_tags(Priority.PRODUCTIVITY, Need.TABS, TeamSize.SMALL, TeamSize.MEDIUM),
        pros=("Beautiful interface", "Excellent tab organization", "Built-in split view", "Great for multitasking"),
        cons=("Mac-only (Windows in beta)", "Learning curve", "Resource intensive"),
    ),
    Tool(
        name="1Password",
        description="Industry-leading password manager with team sharing, security audits, and seamless autofill across all devices.",
        pricing="$7.99/user/month",
        tags=_tags(Need.PASSWORDS, Priority.PRIVACY, WildcardTag.ALL_SIZES, TeamSize.MEDIUM, Budget.FLEXIBLE),
        pros=("Excellent security", "Team sharing features", "Travel mode", "Great support"),
        cons=("Not free", "Requires subscription", "Some features overwhelming"),
    ),
    Tool(
        name="Notion Web Clipper",
        description="Save web pages, articles, and content directly to your Notion workspace for organized knowledge management.",
        pricing="Free (with Notion)",
        tags=_tags(Need.NOTES, Priority.COLLABORATION, Workflow.ASYNC, Workflow.HYBRID),
        pros=("Seamless Notion integration", "Organize clipped content", "Share with team", "Free tier available"),
        cons=("Requires Notion", "Limited formatting options", "Sync delays sometimes"),
    ),
    Tool(
        name="Loom",
        description="Quick async video messaging tool perfect for explaining ideas, sharing updates, and reducing meetings.",
        pricing="Free (limited), $12.50/user/month",
        tags=_tags(Need.MEETINGS, Priority.COLLABORATION, Workflow.ASYNC, Workflow.HYBRID, TeamSize.SMALL, TeamSize.MEDIUM),
        pros=("Fast recording", "Easy sharing", "Reduces meetings", "Great for tutorials"),
        cons=("Limited free tier", "Large file sizes", "Requires upload time"),
    ),
    Tool(
        name="Brave Browser",
        description="Privacy-focused browser with built-in ad blocking, tracking prevention, and crypto wallet integration.",
        pricing="Free",
        tags=_tags(Priority.PRIVACY, Budget.FREE, TeamSize.SOLO, Workflow.INDEPENDENT),
        pros=("Strong privacy features", "Built-in ad blocker", "Fast performance", "Completely free"),
        cons=("Some sites may break", "Fewer extensions", "Crypto focus may not appeal to all"),
    ),
    Tool(
        name="Vimium",
        description="Browser extension providing keyboard shortcuts for navigation, inspired by Vim, boosting browsing speed dramatically.",
        pricing="Free",
        tags=_tags(Priority.PRODUCTIVITY, Priority.DEVELOPMENT, Budget.FREE, Workflow.INDEPENDENT),
        pros=("Keyboard-driven browsing", "Extremely fast", "Free and open source", "Minimal resource use"),
        cons=("Steep learning curve", "Not intuitive for beginners", "Limited visual appeal"),
    ),
    Tool(
        name="Grammarly",
        description="AI-powered writing assistant that checks grammar, tone, and clarity across all your web writing.",
        pricing="Free (basic), $12/month (premium)",
        tags=_tags(Priority.PRODUCTIVITY, Priority.COLLABORATION, WildcardTag.ALL_WORKFLOW, Budget.LOW, Budget.MEDIUM),
        pros=("Improves writing quality", "Works everywhere", "Tone suggestions", "Easy to use"),
        cons=("Premium needed for best features", "Can be distracting", "Privacy concerns for some"),
    ),
    Tool(
        name="Toby",
        description="Visual tab manager that organizes your tabs into collections, perfect for managing multiple projects.",
        pricing="Free (basic), $5/month (pro)",
        tags=_tags(Need.TABS, Priority.PRODUCTIVITY, Budget.FREE, Budget.LOW, WildcardTag.ALL_SIZES),
        pros=("Visual organization", "Easy project switching", "Affordable", "Simple to use"),
        cons=("Basic free version", "Limited search", "Occasional sync issues"),
    ),
)


def require_catalog(catalog: Sequence[Tool]) -> Sequence[Tool]:
    if not catalog:
        raise ConfigurationError("Tool catalog is empty")
    return catalog
