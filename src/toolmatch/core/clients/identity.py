"""Google sign-in credential verification.

The sign-in widget hands the browser a JWT credential. Before its ``email``
claim is trusted, the token's RS256 signature is checked against Google's
published signing keys, along with its audience (our OAuth client id),
issuer and expiry.

Keys: https://www.googleapis.com/oauth2/v3/certs
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import httpx
from jose import JWTError, jwt

from ..errors import ConfigurationError, UpstreamServiceError
from ..models import Identity

logger = logging.getLogger(__name__)

GOOGLE_CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
ALGORITHMS = ["RS256"]


async def fetch_signing_keys(url: str = GOOGLE_CERTS_URL) -> dict:
    """Fetch the provider's current JSON Web Key Set."""
    try:
        async with httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=5.0)) as client:
            response = await client.get(url)
            response.raise_for_status()
            keys = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise UpstreamServiceError(f"Failed to fetch identity signing keys: {exc}") from exc
    if not isinstance(keys, dict) or not keys.get("keys"):
        raise UpstreamServiceError("Identity provider returned no signing keys")
    return keys


async def verify_id_token(token: str, client_id: str, keys: Optional[dict] = None) -> Identity:
    """Verify a credential and return who it identifies.

    Args:
        token: The JWT credential from the sign-in widget.
        client_id: The OAuth client id the token must be issued for.
        keys: A JWKS to verify against; fetched from the provider when omitted.
    """
    if not client_id:
        raise ConfigurationError("GOOGLE_CLIENT_ID not configured")
    if keys is None:
        keys = await fetch_signing_keys()

    try:
        claims = jwt.decode(
            token,
            keys,
            algorithms=ALGORITHMS,
            audience=client_id,
            issuer=GOOGLE_ISSUERS,
            options={"verify_at_hash": False},
        )
    except JWTError as exc:
        logger.warning("Rejected identity token: %s", exc)
        raise UpstreamServiceError(f"Identity token rejected: {exc}") from exc

    email = claims.get("email")
    if not email:
        raise UpstreamServiceError("Identity token carries no email claim")
    if claims.get("email_verified") is False:
        raise UpstreamServiceError(f"Email {email} is not verified by the identity provider")
    return Identity(email=email, name=claims.get("name"))


async def identify(token: str) -> Identity:
    return await verify_id_token(token, os.environ.get("GOOGLE_CLIENT_ID", ""))
