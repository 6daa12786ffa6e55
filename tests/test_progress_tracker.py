"""
Progress tracker tests.

Covers lazy creation, step commits and skips, completion on the terminal
step, revisiting earlier steps, and validation before any write.
"""

import pytest

from onboardgate.engine import (
    InvalidPayloadError,
    InvalidStepError,
    MemoryProgressStore,
    ProgressTracker,
    StorageUnavailableError,
)
from onboardgate.models import ProgressRecord, Role
from onboardgate.observability.metrics import metrics


class CountingStore(MemoryProgressStore):
    """Counts writes so tests can assert validation happens before storage."""

    def __init__(self):
        super().__init__()
        self.writes = 0

    async def create(self, record):
        self.writes += 1
        return await super().create(record)

    async def save(self, record, expected_version):
        self.writes += 1
        return await super().save(record, expected_version)


# =============================================================================
# get_progress
# =============================================================================


@pytest.mark.asyncio
async def test_first_access_creates_default_record(tracker, memory_store):
    progress = await tracker.get_progress("user-1")

    assert progress.user_id == "user-1"
    assert progress.role is None
    assert progress.current_step == 1
    assert progress.completed_steps == set()
    assert progress.step_data == {}
    assert progress.is_completed is False
    assert progress.version == 1
    assert len(memory_store) == 1


@pytest.mark.asyncio
async def test_repeated_reads_return_same_record(tracker, memory_store):
    first = await tracker.get_progress("user-1")
    second = await tracker.get_progress("user-1")

    assert first == second
    assert len(memory_store) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("user_id", ["", "   "])
async def test_blank_user_id_rejected(tracker, user_id):
    with pytest.raises(InvalidPayloadError):
        await tracker.get_progress(user_id)


# =============================================================================
# commit_step
# =============================================================================


@pytest.mark.asyncio
async def test_commit_first_step_advances(tracker):
    result = await tracker.commit_step("user-1", Role.CREATOR, 1, {"firstName": "Ada"})

    assert result.success is True
    assert result.next_step == 2
    assert result.completed is False

    progress = await tracker.get_progress("user-1")
    assert progress.role == Role.CREATOR
    assert progress.completed_steps == {1}
    assert progress.step_data == {1: {"firstName": "Ada"}}
    assert progress.current_step == 2


@pytest.mark.asyncio
async def test_commit_without_prior_read_creates_record(tracker, memory_store):
    await tracker.commit_step("new-user", Role.ORGANIZATION, 1, {"companyName": "Acme"})

    progress = await memory_store.load("new-user")
    assert progress is not None
    assert progress.version == 1
    assert progress.completed_steps == {1}


@pytest.mark.asyncio
async def test_creator_flow_completes_on_terminal_step(tracker):
    payloads = [
        {"firstName": "Ada", "lastName": "Lovelace"},
        {"categories": ["tech", "science"]},
        {"instagram": "@ada"},
        {"postRate": 500},
    ]
    results = []
    for order, payload in enumerate(payloads, start=1):
        results.append(await tracker.commit_step("ada", Role.CREATOR, order, payload))

    assert [r.next_step for r in results] == [2, 3, 4, 4]
    assert [r.completed for r in results] == [False, False, False, True]

    progress = await tracker.get_progress("ada")
    assert progress.is_completed is True
    assert progress.current_step == 4
    assert progress.completed_steps == {1, 2, 3, 4}
    assert metrics.counter("onboarding.completed.count") == 1
    assert metrics.counter("onboarding.commit.count") == 4


@pytest.mark.asyncio
async def test_organization_flow_has_three_steps(tracker):
    await tracker.commit_step("org", Role.ORGANIZATION, 1, {"companyName": "Acme"})
    await tracker.commit_step("org", Role.ORGANIZATION, 2, {"goals": ["reach"]})
    result = await tracker.commit_step("org", Role.ORGANIZATION, 3, {"budget": "10k"})

    assert result.completed is True
    assert result.next_step == 3


@pytest.mark.asyncio
async def test_terminal_step_alone_completes(tracker):
    """Completion does not require the earlier steps."""
    result = await tracker.commit_step("jumper", Role.ORGANIZATION, 3, {"budget": "10k"})

    assert result.completed is True
    progress = await tracker.get_progress("jumper")
    assert progress.completed_steps == {3}
    assert progress.current_step == 3


@pytest.mark.asyncio
async def test_revisiting_earlier_step_does_not_move_back(tracker):
    await tracker.commit_step("user-1", Role.CREATOR, 1, {"firstName": "Ada"})
    await tracker.commit_step("user-1", Role.CREATOR, 2, {"categories": ["tech"]})

    result = await tracker.commit_step("user-1", Role.CREATOR, 1, {"firstName": "Augusta"})

    assert result.next_step == 3
    progress = await tracker.get_progress("user-1")
    assert progress.step_data[1] == {"firstName": "Augusta"}
    assert progress.current_step == 3


@pytest.mark.asyncio
async def test_commit_after_completion_stays_completed(tracker):
    await tracker.commit_step("done", Role.ORGANIZATION, 3, {"budget": "10k"})

    result = await tracker.commit_step("done", Role.ORGANIZATION, 1, {"companyName": "Acme"})

    assert result.completed is True
    assert result.next_step == 3
    assert metrics.counter("onboarding.completed.count") == 1


@pytest.mark.asyncio
async def test_list_payload_is_accepted(tracker):
    await tracker.commit_step("user-1", Role.CREATOR, 2, ["tech", "music"])

    progress = await tracker.get_progress("user-1")
    assert progress.step_data[2] == ["tech", "music"]


@pytest.mark.asyncio
async def test_role_accepts_plain_string(tracker):
    result = await tracker.commit_step("user-1", "creator", 1, {"firstName": "Ada"})

    assert result.next_step == 2
    assert (await tracker.get_progress("user-1")).role == Role.CREATOR


@pytest.mark.asyncio
async def test_repeating_a_commit_is_idempotent(tracker):
    await tracker.commit_step("user-1", Role.CREATOR, 1, {"firstName": "Ada"})
    once = await tracker.commit_step("user-1", Role.CREATOR, 2, {"categories": ["tech"]})
    after_once = await tracker.get_progress("user-1")

    twice = await tracker.commit_step("user-1", Role.CREATOR, 2, {"categories": ["tech"]})
    after_twice = await tracker.get_progress("user-1")

    assert twice == once
    ignored = {"version", "updated_at"}
    assert after_twice.model_dump(exclude=ignored) == after_once.model_dump(exclude=ignored)
    assert after_twice.version == after_once.version + 1


@pytest.mark.asyncio
async def test_role_is_kept_once_completed(tracker):
    for order in (1, 2, 3, 4):
        await tracker.commit_step("switcher", Role.CREATOR, order, {"order": order})

    result = await tracker.commit_step("switcher", Role.ORGANIZATION, 1, {"companyName": "Acme"})

    assert result.completed is True
    assert result.next_step == 4
    progress = await tracker.get_progress("switcher")
    assert progress.role == Role.CREATOR
    assert progress.current_step == max(progress.completed_steps)
    assert progress.step_data[1] == {"companyName": "Acme"}

# =============================================================================
# skip_step
# =============================================================================


@pytest.mark.asyncio
async def test_skip_marks_step_done_with_sentinel(tracker):
    result = await tracker.skip_step("user-1", Role.CREATOR, 1)

    assert result.success is True
    assert result.next_step == 2

    progress = await tracker.get_progress("user-1")
    assert progress.completed_steps == {1}
    assert progress.step_data[1] == {"skipped": True}
    assert progress.is_skipped(1)
    assert metrics.counter("onboarding.skip.count") == 1


@pytest.mark.asyncio
async def test_commit_replaces_skip_marker(tracker):
    await tracker.skip_step("user-1", Role.CREATOR, 3)
    await tracker.commit_step("user-1", Role.CREATOR, 3, {"instagram": "@ada"})

    progress = await tracker.get_progress("user-1")
    assert not progress.is_skipped(3)
    assert progress.step_data[3] == {"instagram": "@ada"}


@pytest.mark.asyncio
async def test_skipping_terminal_step_completes(tracker):
    result = await tracker.skip_step("user-1", Role.CREATOR, 4)

    assert result.completed is True
    assert (await tracker.get_progress("user-1")).is_completed is True


# =============================================================================
# by-reference addressing
# =============================================================================


@pytest.mark.asyncio
async def test_commit_by_step_id(tracker):
    result = await tracker.commit_step_by_ref("user-1", Role.CREATOR, "categories", {"categories": ["tech"]})

    assert result.next_step == 3
    assert (await tracker.get_progress("user-1")).completed_steps == {2}


@pytest.mark.asyncio
async def test_skip_by_numeric_string(tracker):
    result = await tracker.skip_step_by_ref("user-1", Role.ORGANIZATION, "2")

    assert result.next_step == 3


@pytest.mark.asyncio
async def test_unknown_step_id_rejected(tracker):
    with pytest.raises(InvalidStepError):
        await tracker.commit_step_by_ref("user-1", Role.CREATOR, "billing", {"a": 1})


# =============================================================================
# validation happens before any write
# =============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "role,step_order",
    [
        (Role.CREATOR, 0),
        (Role.CREATOR, 5),
        (Role.ORGANIZATION, 4),
        (Role.CREATOR, -1),
        ("admin", 1),
    ],
)
async def test_invalid_step_rejected_without_write(registry, role, step_order):
    store = CountingStore()
    tracker = ProgressTracker(store, registry)

    with pytest.raises(InvalidStepError) as exc_info:
        await tracker.commit_step("user-1", role, step_order, {"a": 1})

    assert exc_info.value.code == "INVALID_STEP"
    assert store.writes == 0


@pytest.mark.asyncio
async def test_invalid_skip_rejected_without_write(registry):
    store = CountingStore()
    tracker = ProgressTracker(store, registry)

    with pytest.raises(InvalidStepError):
        await tracker.skip_step("user-1", Role.ORGANIZATION, 4)

    assert store.writes == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [None, {}, [], "text", 42])
async def test_invalid_payload_rejected_without_write(registry, payload):
    store = CountingStore()
    tracker = ProgressTracker(store, registry)

    with pytest.raises(InvalidPayloadError) as exc_info:
        await tracker.commit_step("user-1", Role.CREATOR, 1, payload)

    assert exc_info.value.code == "INVALID_PAYLOAD"
    assert store.writes == 0


@pytest.mark.asyncio
async def test_rejected_commit_leaves_record_unchanged(tracker, memory_store):
    await tracker.commit_step("user-1", Role.CREATOR, 1, {"firstName": "Ada"})
    before = await memory_store.load("user-1")

    with pytest.raises(InvalidStepError):
        await tracker.commit_step("user-1", Role.CREATOR, 9, {"x": 1})

    assert await memory_store.load("user-1") == before


# =============================================================================
# advance (pure)
# =============================================================================


def test_advance_is_pure(tracker):
    record = ProgressRecord.default("user-1")

    updated = tracker.advance(record, Role.CREATOR, 2, {"categories": ["tech"]})

    assert record.completed_steps == set()
    assert record.step_data == {}
    assert updated.completed_steps == {2}
    assert updated.current_step == 3
    assert updated.role == Role.CREATOR


def test_max_attempts_must_be_positive(memory_store, registry):
    with pytest.raises(ValueError):
        ProgressTracker(memory_store, registry, max_attempts=0)


# =============================================================================
# storage failures
# =============================================================================


class FailingSaveStore(MemoryProgressStore):
    """Reads work; every compare-and-swap hits a dead connection."""

    async def save(self, record, expected_version):
        raise StorageUnavailableError("connection reset during update")


@pytest.mark.asyncio
async def test_storage_failure_on_save_leaves_record_unchanged(registry):
    store = FailingSaveStore()
    tracker = ProgressTracker(store, registry)
    await tracker.commit_step("user-1", Role.CREATOR, 1, {"firstName": "Ada"})
    before = await store.load("user-1")

    with pytest.raises(StorageUnavailableError) as exc_info:
        await tracker.commit_step("user-1", Role.CREATOR, 2, {"categories": ["tech"]})

    assert exc_info.value.code == "STORAGE_UNAVAILABLE"
    assert metrics.counter("onboarding.storage.error") == 1
    assert await store.load("user-1") == before

    with pytest.raises(StorageUnavailableError):
        await tracker.skip_step("user-1", Role.CREATOR, 3)
    assert metrics.counter("onboarding.storage.error") == 2
    assert await store.load("user-1") == before
