# services/identity_management/controllers/sequence_allocator.py
import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Tuple

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from services.identity_management.models.profiles import StudentProfile
from shared.app_logger import get_logger

logger = get_logger("sequence_allocator")

AllocationKey = Tuple[str, str]


class SequenceAllocator:
    """
    Hands out roll numbers per (class_id, section).

    The read of the current maximum and the insert that consumes the new
    number must happen while `hold()` is entered for the same key, inside one
    transaction. Within a process that is an asyncio lock per key; on
    PostgreSQL a transaction-scoped advisory lock extends it across workers.
    The unique constraint on (class_id, section, roll_number) catches anything
    that slips past both.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[AllocationKey, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, key: AllocationKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: Optional[AllocationKey]) -> AsyncIterator[None]:
        if key is None:
            yield
            return
        lock = self._lock_for(key)
        async with lock:
            yield

    async def allocate_roll_number(self, session: AsyncSession, class_id: str, section: str) -> int:
        connection = await session.connection()
        if connection.dialect.name == "postgresql":
            await session.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))"),
                {"lock_key": f"roll_number:{class_id}:{section}"},
            )

        result = await session.execute(
            select(func.max(StudentProfile.roll_number)).where(
                StudentProfile.class_id == class_id,
                StudentProfile.section == section,
            )
        )
        current = result.scalar()
        roll_number = (current or 0) + 1
        logger.debug("Allocated roll number %s for class %s-%s", roll_number, class_id, section)
        return roll_number
