"""Progress storage contract.

Every write is conditional on the record version that was read, so callers
can detect concurrent modifications and retry instead of losing updates.
"""

import asyncio
from abc import ABC, abstractmethod

from onboardgate.models import ProgressRecord
from onboardgate.utils.time import utc_now


class ProgressStore(ABC):
    """Persistence adapter for progress records, keyed by user id."""

    @abstractmethod
    async def load(self, user_id: str) -> ProgressRecord | None:
        """Return the stored record or None if the user has none yet."""

    @abstractmethod
    async def create(self, record: ProgressRecord) -> ProgressRecord | None:
        """
        Insert a new record at version 1.

        Returns the stored record, or None if a record for the user already
        exists (another writer created it first).
        """

    @abstractmethod
    async def save(self, record: ProgressRecord, expected_version: int) -> ProgressRecord | None:
        """
        Replace the stored record if its version still equals expected_version.

        Returns the stored record with its version bumped, or None on a
        version mismatch. Never writes partially.
        """

    async def close(self) -> None:
        """Release any resources held by the store."""


class MemoryProgressStore(ProgressStore):
    """In-process store, used for development and tests."""

    def __init__(self) -> None:
        self._records: dict[str, ProgressRecord] = {}
        self._lock = asyncio.Lock()

    async def load(self, user_id: str) -> ProgressRecord | None:
        record = self._records.get(user_id)
        return record.model_copy(deep=True) if record else None

    async def create(self, record: ProgressRecord) -> ProgressRecord | None:
        async with self._lock:
            if record.user_id in self._records:
                return None
            now = utc_now()
            stored = record.model_copy(
                deep=True,
                update={"version": 1, "created_at": now, "updated_at": now},
            )
            self._records[record.user_id] = stored
            return stored.model_copy(deep=True)

    async def save(self, record: ProgressRecord, expected_version: int) -> ProgressRecord | None:
        async with self._lock:
            current = self._records.get(record.user_id)
            if current is None or current.version != expected_version:
                return None
            stored = record.model_copy(
                deep=True,
                update={
                    "version": expected_version + 1,
                    "created_at": current.created_at,
                    "updated_at": utc_now(),
                },
            )
            self._records[record.user_id] = stored
            return stored.model_copy(deep=True)

    def __len__(self) -> int:
        return len(self._records)
