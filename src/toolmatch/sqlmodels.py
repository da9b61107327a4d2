"""SQLAlchemy models for profile storage.

One row per email. Saved results are stored as a JSON array, most recent
first, exactly as the core builds them.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class UserRecord(Base):
    """A user's subscription tier, saved quiz results, and quiz count."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    subscription: Mapped[str] = mapped_column(String(20), nullable=False, default="free")
    saved_results: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    quizzes_taken: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
