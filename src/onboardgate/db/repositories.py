"""Database repositories for OnboardGate entities."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from onboardgate.db.tables import OnboardingProgressTable
from onboardgate.engine.errors import StorageUnavailableError
from onboardgate.engine.storage import ProgressStore
from onboardgate.models import ProgressRecord, Role
from onboardgate.utils.time import ensure_utc, utc_now

# Driver and connection failures; everything else (bad SQL, missing table)
# is a defect and propagates unchanged.
_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError, OSError)


class ProgressRepository(ProgressStore):
    """
    SQL-backed progress store.

    Each call runs in its own short transaction. Writes are conditional on
    the version column, so a concurrent writer makes save() return None
    instead of overwriting.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self.session_factory() as session:
                yield session
        except _UNAVAILABLE_ERRORS as e:
            raise StorageUnavailableError(f"Progress storage unavailable: {e}") from e

    async def load(self, user_id: str) -> ProgressRecord | None:
        """Get the progress record for a user."""
        async with self._session() as session:
            result = await session.execute(
                select(OnboardingProgressTable).where(
                    OnboardingProgressTable.user_id == user_id,
                )
            )
            row = result.scalar_one_or_none()
            return self._row_to_model(row) if row else None

    async def create(self, record: ProgressRecord) -> ProgressRecord | None:
        """
        Insert a new record.

        Relies on the primary key instead of check-then-insert: a duplicate
        user_id means another writer got there first.
        """
        now = utc_now()
        row = OnboardingProgressTable(
            user_id=record.user_id,
            version=1,
            created_at=now,
            updated_at=now,
            **self._model_values(record),
        )

        async with self._session() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                return None
            return self._row_to_model(row)

    async def save(self, record: ProgressRecord, expected_version: int) -> ProgressRecord | None:
        """Compare-and-swap the record on its version."""
        now = utc_now()
        async with self._session() as session:
            result = await session.execute(
                update(OnboardingProgressTable)
                .where(
                    OnboardingProgressTable.user_id == record.user_id,
                    OnboardingProgressTable.version == expected_version,
                )
                .values(
                    version=expected_version + 1,
                    updated_at=now,
                    **self._model_values(record),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await session.rollback()
                return None
            await session.commit()

        return record.model_copy(update={"version": expected_version + 1, "updated_at": now})

    @staticmethod
    def _model_values(record: ProgressRecord) -> dict[str, Any]:
        return {
            "role": record.role.value if record.role else None,
            "current_step": record.current_step,
            "completed_steps": sorted(record.completed_steps),
            "step_data": {str(order): data for order, data in record.step_data.items()},
            "is_completed": record.is_completed,
        }

    @staticmethod
    def _row_to_model(row: OnboardingProgressTable) -> ProgressRecord:
        return ProgressRecord(
            user_id=row.user_id,
            role=Role(row.role) if row.role else None,
            current_step=row.current_step,
            completed_steps=set(row.completed_steps or []),
            step_data={int(order): data for order, data in (row.step_data or {}).items()},
            is_completed=row.is_completed,
            version=row.version,
            created_at=ensure_utc(row.created_at),
            updated_at=ensure_utc(row.updated_at),
        )
