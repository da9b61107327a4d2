"""Background profile writer.

Saves run as asyncio tasks so quiz navigation never waits on the database.
Writes for the same email are serialized with a per-email lock; writes for
different emails run concurrently. The profile to save is read only once the
lock is held, so a write queued earlier never replays a stale copy over a
change another path made in between.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .core.errors import PersistenceFailure
from .core.models import UserProfile

logger = logging.getLogger(__name__)

SaveFn = Callable[[UserProfile], Awaitable[UserProfile]]
Snapshot = Callable[[], UserProfile]


class ProfileWriter:
    """Runs profile saves in the background, one at a time per email."""

    def __init__(self, save: Optional[SaveFn] = None):
        if save is None:
            from .store import upsert_profile as save
        self._save = save
        self._locks: dict[str, asyncio.Lock] = {}
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, email: str, snapshot: Snapshot) -> asyncio.Task:
        """Schedule a save of ``snapshot()`` and return its task without waiting for it.

        ``snapshot`` is called under the email's lock, right before the save.
        The task's result is the saved profile; a failed save raises
        PersistenceFailure from the task.
        """
        task = asyncio.create_task(self._write(email, snapshot))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def write(self, email: str, snapshot: Snapshot) -> UserProfile:
        """Save and wait for the result, still serialized with background saves."""
        return await self._write(email, snapshot)

    def lock(self, email: str) -> asyncio.Lock:
        """The lock guarding writes for ``email``; hold it for any other store write to that row."""
        return self._locks.setdefault(email, asyncio.Lock())

    async def drain(self):
        """Wait for every pending background save to finish."""
        if self._tasks:
            logger.info("Waiting for %d pending profile saves", len(self._tasks))
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _write(self, email: str, snapshot: Snapshot) -> UserProfile:
        async with self.lock(email):
            profile = snapshot()
            if profile.email != email:
                raise PersistenceFailure(f"Profile for {profile.email} queued under {email}")
            try:
                return await self._save(profile)
            except PersistenceFailure as exc:
                logger.error("Profile save failed for %s: %s", email, exc, exc_info=True)
                raise
            except Exception as exc:
                logger.error("Profile save failed for %s: %s", email, exc, exc_info=True)
                raise PersistenceFailure(f"Result not saved for {email}") from exc
