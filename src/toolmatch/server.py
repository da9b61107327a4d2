"""Tool Match MCP Server.

FastMCP server exposing the browser-tool quiz as MCP tools, plus the JSON
endpoints the browser front end and the payment webhook call.
Run: toolmatch-mcp
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from .core.catalog import CATALOG
from .core.models import ScoredTool
from .core.questions import QUESTIONS, missing_questions
from .core.scoring import recommend
from .db import close_db, init_db
from .routes import ALL_METHODS, build_routes
from .service import QuizService, UserContext
from .writer import ProfileWriter

logger = logging.getLogger(__name__)

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=False)
SESSION = ToolAnnotations(readOnlyHint=False, destructiveHint=False, idempotentHint=False, openWorldHint=False)

writer = ProfileWriter()
service = QuizService(writer)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Initialize the database; flush pending profile saves on shutdown."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    await init_db()
    try:
        yield
    finally:
        await writer.drain()
        await close_db()


mcp = FastMCP(
    "Tool Match",
    instructions="Answer five questions about your team and get ranked browser-tool recommendations. Premium accounts keep a history of saved results.",
    lifespan=lifespan,
)

for _path, _handler in build_routes(service, writer):
    mcp.custom_route(_path, methods=ALL_METHODS)(_handler)


def _tools_payload(tools: list[ScoredTool]) -> list[dict]:
    return [t.model_dump(mode="json") for t in tools]


def _quiz_state(context: UserContext) -> dict:
    """Where the user is in the quiz and what they can do next."""
    session = context.session
    if session.completed:
        return {
            "completed": True,
            "progress": session.progress,
            "answers": session.answers,
        }
    question = session.current_question
    return {
        "completed": False,
        "question_index": session.index,
        "total_questions": session.total,
        "progress": round(session.progress, 1),
        "question": question.model_dump(mode="json"),
        "selected": session.current_answer,
        "can_go_back": session.index > 0,
        "can_advance": session.can_advance,
        "next_label": "See Results" if session.is_last else "Next",
    }


# ─── Static data ─────────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def quiz_questions() -> dict:
    """The quiz questions, in order, with their option values and labels."""
    return {
        "questions": [q.model_dump(mode="json") for q in QUESTIONS],
        "count": len(QUESTIONS),
    }


@mcp.tool(annotations=READ_ONLY)
async def quiz_catalog() -> dict:
    """Every browser tool the quiz can recommend."""
    return {
        "tools": [t.model_dump(mode="json") for t in CATALOG],
        "count": len(CATALOG),
    }


@mcp.tool(annotations=READ_ONLY)
async def quiz_recommend(answers: dict[str, str]) -> dict:
    """Score the catalog against a full or partial set of answers without starting a session.

    Args:
        answers: Question id to option value, e.g. {"teamSize": "small", "workflow": "async"}.
    """
    ranked = recommend(answers)
    return {
        "recommendations": _tools_payload(ranked),
        "summary": ", ".join(f"{t.name} ({t.match_percent}%)" for t in ranked),
        "unanswered": missing_questions(answers),
    }


# ─── Quiz session ────────────────────────────────────────────────────────────


@mcp.tool(annotations=SESSION)
async def quiz_sign_in(id_token: str) -> dict:
    """Start a quiz for the user identified by a sign-in credential (JWT).

    Args:
        id_token: The credential returned by the identity provider's sign-in widget.
    """
    context = await service.sign_in(id_token)
    return {"email": context.profile.email, "subscription": context.profile.subscription_tier.value, **_quiz_state(context)}


@mcp.tool(annotations=SESSION)
async def quiz_start(email: str) -> dict:
    """Start (or start over) a quiz for a user.

    Args:
        email: The user's email address; their profile is created on first use.
    """
    context = await service.start(email)
    return {"email": email, "subscription": context.profile.subscription_tier.value, **_quiz_state(context)}


@mcp.tool(annotations=SESSION)
async def quiz_answer(email: str, question_id: str, value: str) -> dict:
    """Select an option for the current question. Does not advance.

    Args:
        email: The user's email address.
        question_id: Id of the current question, e.g. 'teamSize'.
        value: One of that question's option values, e.g. 'small'.
    """
    return _quiz_state(service.answer(email, question_id, value))


@mcp.tool(annotations=SESSION)
async def quiz_next(email: str) -> dict:
    """Go to the next question, or finish the quiz and get recommendations.

    Premium results are saved automatically; free users are offered a manual save.

    Args:
        email: The user's email address.
    """
    context = service.next(email)
    state = _quiz_state(context)
    if not context.session.completed:
        return state

    status = await service.wait_for_save(email)
    results = context.session.results or []
    return {
        **state,
        "recommendations": _tools_payload(results),
        "summary": context.result.summary_label if context.result else "",
        "decision": context.decision.value if context.decision else None,
        "saved": status.saved,
        "save_error": status.error,
        "dashboard": service.dashboard(email).model_dump(mode="json"),
    }


@mcp.tool(annotations=SESSION)
async def quiz_previous(email: str) -> dict:
    """Go back one question; the answer there is kept.

    Args:
        email: The user's email address.
    """
    return _quiz_state(service.previous(email))


@mcp.tool(annotations=SESSION)
async def quiz_restart(email: str) -> dict:
    """Clear all answers and go back to the first question.

    Args:
        email: The user's email address.
    """
    return _quiz_state(service.restart(email))


@mcp.tool(annotations=SESSION)
async def quiz_discard(email: str) -> dict:
    """Abandon the user's quiz. Nothing is saved.

    Args:
        email: The user's email address.
    """
    service.discard(email)
    return {"email": email, "discarded": True}


# ─── Saved results ───────────────────────────────────────────────────────────


@mcp.tool(annotations=SESSION)
async def quiz_save_result(email: str) -> dict:
    """Save the just-finished quiz result to the user's profile.

    Args:
        email: The user's email address.
    """
    status = await service.save_result(email)
    return {"saved": status.saved, "error": status.error, "dashboard": service.dashboard(email).model_dump(mode="json")}


@mcp.tool(annotations=SESSION)
async def quiz_retry_save(email: str) -> dict:
    """Retry a save that failed. The result stayed available in the meantime.

    Args:
        email: The user's email address.
    """
    status = await service.retry_save(email)
    return {"saved": status.saved, "error": status.error}


@mcp.tool(annotations=READ_ONLY)
async def quiz_dashboard(email: str) -> dict:
    """Subscription tier, quiz count, and saved results for a user.

    Args:
        email: The user's email address.
    """
    stats = service.dashboard(email)
    profile = service.context(email).profile
    return {
        **stats.model_dump(mode="json"),
        "saved_results": [
            {"position": i, "timestamp": r.timestamp, "summary": r.summary_label, "tool_count": r.tool_count}
            for i, r in enumerate(profile.saved_results)
        ],
    }


@mcp.tool(annotations=READ_ONLY)
async def quiz_view_saved(email: str, index: int = 0) -> dict:
    """Show the recommendations of a saved result, re-ranked against the current catalog.

    Args:
        email: The user's email address.
        index: Position in the saved history, 0 = most recent. Default 0.
    """
    ranked = service.view_saved(email, index)
    return {"index": index, "recommendations": _tools_payload(ranked)}


async def _prepare_database():
    await init_db()
    await close_db()


def main():
    """Entry point for the CLI command.

    The HTTP endpoints need an HTTP transport; MCP_TRANSPORT=stdio serves MCP tools only.
    """
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    transport = os.environ.get("MCP_TRANSPORT", "streamable-http")
    if transport != "stdio":
        asyncio.run(_prepare_database())
    mcp.run(transport=transport)


if __name__ == "__main__":
    main()
