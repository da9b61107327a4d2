"""HTTP endpoints for the browser front end and the payment webhook.

All endpoints are POST-only JSON. Missing email → 400, wrong method → 405,
store or gateway failure → 500.
"""

from __future__ import annotations

import logging
import os
from typing import Awaitable, Callable

from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from . import store
from .core.clients import stripe
from .core.errors import PersistenceFailure, UpstreamServiceError
from .core.models import UserProfile
from .service import QuizService
from .writer import ProfileWriter

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]
DEFAULT_APP_URL = "http://localhost:8000"

Handler = Callable[[Request], Awaitable[Response]]


def profile_payload(profile: UserProfile) -> dict:
    return {
        "email": profile.email,
        "subscription": profile.subscription_tier.value,
        "savedResults": [r.model_dump(mode="json") for r in profile.saved_results],
        "quizzesTaken": profile.quizzes_taken,
    }


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def build_routes(service: QuizService, writer: ProfileWriter) -> list[tuple[str, Handler]]:
    """Return ``(path, handler)`` pairs; each handler accepts every method and rejects all but POST."""

    async def user_data(request: Request) -> Response:
        if request.method != "POST":
            return _error("Method Not Allowed", 405)
        body = await _json_body(request)
        email = body.get("email")
        if not email:
            return _error("Email is required", 400)

        try:
            profile = await store.get_profile(email)
        except PersistenceFailure as exc:
            logger.error("Database error: %s", exc)
            return _error("Failed to load user data", 500)
        return JSONResponse(profile_payload(profile))

    async def save_user_data(request: Request) -> Response:
        if request.method != "POST":
            return _error("Method Not Allowed", 405)
        body = await _json_body(request)
        email = body.get("email")
        if not email:
            return _error("Email is required", 400)

        delta = {}
        if "subscription" in body:
            delta["subscription_tier"] = body["subscription"]
        if "savedResults" in body:
            delta["saved_results"] = body["savedResults"]
        if "quizzesTaken" in body:
            delta["quizzes_taken"] = body["quizzesTaken"]

        try:
            async with writer.lock(email):
                current = await store.get_profile(email)
                try:
                    profile = UserProfile.model_validate({**current.model_dump(), **delta})
                except ValidationError as exc:
                    return _error(f"Invalid user data: {exc.error_count()} error(s)", 400)
                await store.upsert_profile(profile)
                service.adopt(profile)
        except PersistenceFailure as exc:
            logger.error("Database error: %s", exc)
            return _error("Failed to save user data", 500)

        return JSONResponse({"success": True, "message": "User data saved successfully"})

    async def create_checkout(request: Request) -> Response:
        if request.method != "POST":
            return _error("Method Not Allowed", 405)
        body = await _json_body(request)
        email = body.get("email")
        if not email:
            return _error("Email is required", 400)

        price_id = os.environ.get("STRIPE_PRICE_ID", "")
        if not price_id:
            return _error("STRIPE_PRICE_ID not configured", 400)
        secret_key = os.environ.get("STRIPE_SECRET_KEY", "")
        if not secret_key:
            return _error("STRIPE_SECRET_KEY not configured", 500)

        try:
            session_id = await stripe.create_checkout_session(
                email,
                secret_key,
                price_id,
                os.environ.get("APP_URL", DEFAULT_APP_URL),
            )
        except UpstreamServiceError as exc:
            logger.error("Stripe error: %s", exc)
            return JSONResponse({"error": "Failed to create checkout session", "message": str(exc)}, status_code=500)
        return JSONResponse({"sessionId": session_id})

    async def stripe_webhook(request: Request) -> Response:
        if request.method != "POST":
            return _error("Method Not Allowed", 405)
        secret = os.environ.get("STRIPE_WEBHOOK_SECRET", "")
        if not secret:
            return _error("STRIPE_WEBHOOK_SECRET not configured", 500)

        payload = await request.body()
        try:
            event = stripe.construct_event(payload, request.headers.get("stripe-signature"), secret)
        except UpstreamServiceError as exc:
            logger.error("Webhook signature verification failed: %s", exc)
            return _error(f"Webhook Error: {exc}", 400)

        logger.info("Webhook event received: %s", event.get("type"))
        change = stripe.subscription_change(event)
        if change is not None:
            email, tier = change
            try:
                async with writer.lock(email):
                    await store.set_subscription(email, tier)
                    service.update_tier(email, tier)
            except PersistenceFailure as exc:
                logger.error("Database error: %s", exc)
                return _error("Failed to update subscription", 500)

        return JSONResponse({"received": True})

    return [
        ("/api/user-data", user_data),
        ("/api/save-user-data", save_user_data),
        ("/api/create-checkout", create_checkout),
        ("/api/stripe-webhook", stripe_webhook),
    ]
