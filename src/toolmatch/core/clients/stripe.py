"""Stripe client — checkout sessions and webhook events.

API docs: https://stripe.com/docs/api/checkout/sessions
Uses the official ``stripe`` SDK over its httpx transport. Only the two
subscription lifecycle events the quiz cares about are interpreted.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

import stripe

from ..errors import UpstreamServiceError
from ..models import SubscriptionTier

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_SECONDS = 300
REQUEST_TIMEOUT_SECONDS = 20.0

CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"


def _clean_key(secret_key: str) -> str:
    """Strip whitespace and control characters that sneak in through env files."""
    return "".join(ch for ch in secret_key.strip() if ch.isprintable())


async def create_checkout_session(
    email: str,
    secret_key: str,
    price_id: str,
    base_url: str,
) -> str:
    """Create a subscription Checkout session and return its id."""
    base_url = base_url.rstrip("/")
    params = {
        "mode": "subscription",
        "customer_email": email,
        "payment_method_types": ["card"],
        "line_items": [{"price": price_id, "quantity": 1}],
        "automatic_tax": {"enabled": True},
        "allow_promotion_codes": True,
        "success_url": f"{base_url}/success.html?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{base_url}/",
        "metadata": {"customer_email": email},
    }

    http_client = stripe.HTTPXClient(timeout=REQUEST_TIMEOUT_SECONDS)
    client = stripe.StripeClient(_clean_key(secret_key), http_client=http_client)
    try:
        session = await client.v1.checkout.sessions.create_async(params=params)
    except stripe.StripeError as exc:
        logger.error("Stripe rejected checkout for %s: %s", email, exc)
        raise UpstreamServiceError(f"Failed to create checkout session: {exc.user_message or exc}") from exc
    finally:
        await http_client.close_async()

    if not session.id:
        raise UpstreamServiceError("Stripe returned a checkout session without an id")
    logger.info("Checkout session %s created for %s", session.id, email)
    return session.id


def construct_event(
    payload: bytes,
    signature_header: Optional[str],
    secret: str,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
) -> dict:
    """Verify a webhook's ``Stripe-Signature`` header and decode the event.

    Verification is ``stripe.WebhookSignature.verify_header``, the same check
    ``stripe.Webhook.construct_event`` runs; the event comes back as a plain
    dict so it can be read without the SDK's object model.
    """
    if not signature_header:
        raise UpstreamServiceError("Missing Stripe-Signature header")
    try:
        body = payload.decode("utf-8")
        stripe.WebhookSignature.verify_header(body, signature_header, secret, tolerance)
    except UnicodeDecodeError as exc:
        raise UpstreamServiceError("Webhook payload is not UTF-8") from exc
    except stripe.SignatureVerificationError as exc:
        raise UpstreamServiceError(str(exc.user_message or exc)) from exc

    try:
        event = json.loads(body)
    except ValueError as exc:
        raise UpstreamServiceError("Webhook payload is not valid JSON") from exc
    if not isinstance(event, dict):
        raise UpstreamServiceError("Webhook payload is not an event object")
    return event


def subscription_change(event: dict) -> Optional[tuple[str, SubscriptionTier]]:
    """Map a webhook event to ``(email, tier)``, or None when it does not change a tier."""
    event_type = event.get("type")
    obj = event.get("data", {}).get("object", {})

    if event_type == CHECKOUT_COMPLETED:
        email = obj.get("customer_email") or (obj.get("metadata") or {}).get("customer_email")
        if email:
            return email, SubscriptionTier.PREMIUM
        logger.warning("Checkout session %s completed without a customer email", obj.get("id"))
        return None

    if event_type == SUBSCRIPTION_DELETED:
        email = (obj.get("metadata") or {}).get("customer_email")
        if email:
            return email, SubscriptionTier.FREE
        logger.warning("Subscription %s cancelled without a customer email", obj.get("id"))
        return None

    logger.info("Unhandled event type %s", event_type)
    return None
