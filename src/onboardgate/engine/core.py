"""OnboardGate core engine - per-user onboarding progress state machine."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from time import perf_counter
from typing import TYPE_CHECKING, Any

from onboardgate.engine.errors import (
    ConflictError,
    InvalidPayloadError,
    StorageUnavailableError,
)
from onboardgate.engine.storage import ProgressStore
from onboardgate.models import SKIPPED_SENTINEL, ProgressRecord, ProgressResult, Role
from onboardgate.observability.metrics import metrics

if TYPE_CHECKING:
    from onboardgate.registry import StepRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


class ProgressTracker:
    """
    Owns the per-user progress record.

    Every mutation is load -> merge -> compare-and-swap. A version conflict
    reloads and reapplies the step, up to max_attempts attempts in total.
    """

    def __init__(
        self,
        store: ProgressStore,
        registry: StepRegistry,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.store = store
        self.registry = registry
        self.max_attempts = max_attempts

    # =========================================================================
    # Read
    # =========================================================================

    async def get_progress(self, user_id: str) -> ProgressRecord:
        """Return the user's record, creating the default one on first access."""
        user_id = self._check_user_id(user_id)
        try:
            record = await self.store.load(user_id)
            if record is not None:
                return record

            created = await self.store.create(ProgressRecord.default(user_id))
            if created is not None:
                logger.info(f"Created onboarding progress for user {user_id}")
                return created

            # Lost the creation race; the winner's record is authoritative.
            record = await self.store.load(user_id)
        except StorageUnavailableError:
            metrics.inc_counter("onboarding.storage.error")
            logger.error(f"Progress storage unavailable reading user {user_id}")
            raise

        if record is None:
            raise StorageUnavailableError(
                f"Progress record for user {user_id} missing after concurrent create"
            )
        return record

    # =========================================================================
    # Mutations
    # =========================================================================

    async def commit_step(
        self,
        user_id: str,
        role: Role | str,
        step_order: int,
        payload: Any,
    ) -> ProgressResult:
        """Store a step's form data and advance the user's progress."""
        user_id = self._check_user_id(user_id)
        role = self.registry.step(role, step_order).role
        document = self._check_payload(payload)

        result = await self._apply(user_id, role, step_order, document)
        metrics.inc_counter("onboarding.commit.count")
        logger.info(
            f"User {user_id} committed {role.value} step {step_order} "
            f"(next={result.next_step}, completed={result.completed})"
        )
        return result

    async def skip_step(self, user_id: str, role: Role | str, step_order: int) -> ProgressResult:
        """Mark a step done without form data; a later commit replaces the marker."""
        user_id = self._check_user_id(user_id)
        role = self.registry.step(role, step_order).role

        result = await self._apply(user_id, role, step_order, dict(SKIPPED_SENTINEL))
        metrics.inc_counter("onboarding.skip.count")
        logger.info(f"User {user_id} skipped {role.value} step {step_order} (next={result.next_step})")
        return result

    async def commit_step_by_ref(
        self,
        user_id: str,
        role: Role | str,
        ref: int | str,
        payload: Any,
    ) -> ProgressResult:
        """Commit a step addressed by order or step id."""
        definition = self.registry.resolve(role, ref)
        return await self.commit_step(user_id, definition.role, definition.order, payload)

    async def skip_step_by_ref(self, user_id: str, role: Role | str, ref: int | str) -> ProgressResult:
        """Skip a step addressed by order or step id."""
        definition = self.registry.resolve(role, ref)
        return await self.skip_step(user_id, definition.role, definition.order)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _apply(
        self,
        user_id: str,
        role: Role,
        step_order: int,
        document: Any,
    ) -> ProgressResult:
        started = perf_counter()
        try:
            for attempt in range(1, self.max_attempts + 1):
                current = await self.store.load(user_id)
                if current is None:
                    updated = self.advance(ProgressRecord.default(user_id), role, step_order, document)
                    stored = await self.store.create(updated)
                else:
                    updated = self.advance(current, role, step_order, document)
                    stored = await self.store.save(updated, current.version)

                if stored is not None:
                    if stored.is_completed and not (current and current.is_completed):
                        metrics.inc_counter("onboarding.completed.count")
                        logger.info(f"User {user_id} completed {role.value} onboarding")
                    return ProgressResult(
                        next_step=stored.current_step,
                        completed=stored.is_completed,
                    )

                metrics.inc_counter("onboarding.conflict.retry")
                logger.warning(
                    f"Version conflict on progress for user {user_id} "
                    f"(attempt {attempt}/{self.max_attempts})"
                )
        except StorageUnavailableError:
            metrics.inc_counter("onboarding.storage.error")
            logger.error(f"Progress storage unavailable writing step {step_order} for user {user_id}")
            raise
        finally:
            metrics.observe("onboarding.write.duration_ms", (perf_counter() - started) * 1000.0)

        metrics.inc_counter("onboarding.conflict.exhausted")
        logger.error(f"Giving up on step {step_order} for user {user_id} after {self.max_attempts} conflicts")
        raise ConflictError(user_id, self.max_attempts)

    def advance(
        self,
        record: ProgressRecord,
        role: Role,
        step_order: int,
        document: Any,
    ) -> ProgressRecord:
        """
        Compute the record after committing a step. Pure; does not persist.

        current_step is derived from the completed set (max + 1), never from
        the step just submitted, so revisiting an earlier step does not move
        the user backwards. Once completed, the record stays completed and
        current_step stays on the terminal step of the role it was completed
        under, even if a later write arrives with a different role.
        """
        completed_steps = set(record.completed_steps) | {step_order}
        step_data = dict(record.step_data)
        step_data[step_order] = document

        if record.is_completed and record.role is not None:
            role = record.role

        is_completed = record.is_completed or self.registry.is_terminal(role, step_order)
        if is_completed:
            current_step = self.registry.terminal_order(role)
        else:
            current_step = max(completed_steps) + 1

        return record.model_copy(
            update={
                "role": role,
                "completed_steps": completed_steps,
                "step_data": step_data,
                "is_completed": is_completed,
                "current_step": current_step,
            }
        )

    @staticmethod
    def _check_user_id(user_id: str) -> str:
        if not isinstance(user_id, str) or not user_id.strip():
            raise InvalidPayloadError("user_id must be a non-empty string")
        return user_id

    @staticmethod
    def _check_payload(payload: Any) -> Any:
        if payload is None:
            raise InvalidPayloadError("Step payload is required")
        if isinstance(payload, Mapping):
            document: Any = dict(payload)
        elif isinstance(payload, list):
            document = list(payload)
        else:
            raise InvalidPayloadError(
                f"Step payload must be a JSON object or array, got {type(payload).__name__}"
            )
        if not document:
            raise InvalidPayloadError("Step payload must not be empty")
        return document
