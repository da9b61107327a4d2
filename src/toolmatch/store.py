"""Profile store — reads and writes UserProfile rows keyed by email.

Every write is an insert-or-update on the email, so repeating one is
harmless. Database errors surface as PersistenceFailure; callers never see
SQLAlchemy exceptions.
"""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .core.errors import PersistenceFailure
from .core.models import SavedResult, SubscriptionTier, UserProfile
from .db import get_session_factory
from .sqlmodels import UserRecord

logger = logging.getLogger(__name__)


def _to_profile(row: UserRecord) -> UserProfile:
    try:
        return UserProfile(
            email=row.email,
            subscription_tier=SubscriptionTier(row.subscription or SubscriptionTier.FREE.value),
            saved_results=[SavedResult.model_validate(r) for r in (row.saved_results or [])],
            quizzes_taken=row.quizzes_taken or 0,
        )
    except (ValueError, ValidationError) as exc:
        raise PersistenceFailure(f"Stored profile for {row.email} is corrupt: {exc}") from exc


def _apply(row: UserRecord, profile: UserProfile) -> None:
    row.subscription = profile.subscription_tier.value
    row.saved_results = [r.model_dump(mode="json") for r in profile.saved_results]
    row.quizzes_taken = profile.quizzes_taken
    row.updated_at = datetime.utcnow()


async def _find(session: AsyncSession, email: str) -> UserRecord | None:
    result = await session.execute(select(UserRecord).where(UserRecord.email == email))
    return result.scalar_one_or_none()


async def get_profile(email: str) -> UserProfile:
    """Load a profile, creating and storing a fresh free profile for a new email."""
    session_factory = get_session_factory()
    try:
        async with session_factory() as session:
            row = await _find(session, email)
            if row is not None:
                return _to_profile(row)

            profile = UserProfile(email=email)
            row = UserRecord(email=email, created_at=datetime.utcnow())
            _apply(row, profile)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError:
                # Another request created the row first.
                await session.rollback()
                row = await _find(session, email)
                if row is None:
                    raise
                return _to_profile(row)

            logger.info("Created profile for %s", email)
            return profile
    except SQLAlchemyError as exc:
        logger.error("Failed to load profile for %s: %s", email, exc)
        raise PersistenceFailure(f"Failed to load user data for {email}") from exc


async def upsert_profile(profile: UserProfile) -> UserProfile:
    """Insert or replace the stored profile for ``profile.email``."""
    session_factory = get_session_factory()
    try:
        async with session_factory() as session:
            row = await _find(session, profile.email)
            if row is None:
                row = UserRecord(email=profile.email, created_at=datetime.utcnow())
                session.add(row)
            _apply(row, profile)
            await session.commit()
    except SQLAlchemyError as exc:
        logger.error("Failed to save profile for %s: %s", profile.email, exc)
        raise PersistenceFailure(f"Failed to save user data for {profile.email}") from exc

    logger.debug("Saved profile for %s (%d results)", profile.email, len(profile.saved_results))
    return profile


async def set_subscription(email: str, tier: SubscriptionTier) -> None:
    """Change only the subscription tier, creating the profile if needed."""
    session_factory = get_session_factory()
    try:
        async with session_factory() as session:
            row = await _find(session, email)
            if row is None:
                row = UserRecord(email=email, created_at=datetime.utcnow())
                _apply(row, UserProfile(email=email, subscription_tier=tier))
                session.add(row)
            else:
                row.subscription = tier.value
                row.updated_at = datetime.utcnow()
            await session.commit()
    except SQLAlchemyError as exc:
        logger.error("Failed to set subscription for %s: %s", email, exc)
        raise PersistenceFailure(f"Failed to update subscription for {email}") from exc

    logger.info("Subscription for %s set to %s", email, tier.value)
