"""Tests for the in-memory event stream store."""

import pytest

from eventloom.domain import (
    ConcurrencyError,
    ErrorKind,
    ReplayError,
    RetrievalError,
    SinkError,
    SlotValidationError,
)
from eventloom.streams import InMemoryEventStreamStore, validate_since
from tests.fixtures.test_app import GiftWrapRequested, Order


class RecordingApplier:
    """Records every commit applied to it, optionally failing on one slot."""

    def __init__(self, fail_on_slot: int | None = None):
        self.applied = []
        self.fail_on_slot = fail_on_slot

    def apply_commit(self, commit):
        if commit.slot == self.fail_on_slot:
            raise RuntimeError(f"cannot apply slot {commit.slot}")
        self.applied.append(commit)


# Append Tests


@pytest.mark.asyncio
async def test_append_to_new_sequence_creates_stream(store, make_commit, sequence_id):
    """Test the first append creates the stream at slot 1."""
    await store.append(make_commit(1))

    assert await store.current_slot(sequence_id) == 1
    assert [c.slot for c in store.streams[sequence_id]] == [1]


@pytest.mark.asyncio
async def test_sequential_appends_produce_contiguous_slots(store, make_commit, sequence_id):
    """Test N appends to a fresh sequence yield slots 1..N."""
    for slot in range(1, 6):
        await store.append(make_commit(slot))

    assert await store.current_slot(sequence_id) == 5
    assert [c.slot for c in store.streams[sequence_id]] == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
@pytest.mark.parametrize("offered", [1, 2, 3])
async def test_append_at_taken_slot_raises_concurrency_error(
    store, make_commit, sequence_id, offered
):
    """Test a slot not greater than the stream length is a retriable conflict."""
    for slot in range(1, 4):
        await store.append(make_commit(slot))

    with pytest.raises(ConcurrencyError) as exc_info:
        await store.append(make_commit(offered))

    error = exc_info.value
    assert error.offered == offered
    assert error.current == 3
    assert error.retriable is True
    assert error.kind is ErrorKind.CONCURRENCY
    assert await store.current_slot(sequence_id) == 3


@pytest.mark.asyncio
async def test_order_42_scenario(store, make_commit, sequence_id):
    """Test conflict detection and partial replay on a single sequence."""
    first = make_commit(1)
    await store.append(first)
    assert await store.current_slot(sequence_id) == 1

    with pytest.raises(ConcurrencyError) as exc_info:
        await store.append(make_commit(1))
    assert (exc_info.value.offered, exc_info.value.current) == (1, 1)

    second = make_commit(2)
    await store.append(second)
    assert await store.current_slot(sequence_id) == 2

    applier = RecordingApplier()
    await store.rehydrate(applier, sequence_id, since=2)
    assert applier.applied == [second]


@pytest.mark.asyncio
async def test_strict_store_rejects_gaps(store, make_commit, sequence_id):
    """Test a strict store refuses a slot beyond length + 1."""
    await store.append(make_commit(1))

    with pytest.raises(SinkError) as exc_info:
        await store.append(make_commit(3))

    assert exc_info.value.retriable is False
    assert exc_info.value.detail == {"offered": 3, "current": 1}
    assert await store.current_slot(sequence_id) == 1


@pytest.mark.asyncio
async def test_strict_store_requires_slot_one_for_new_sequence(store, make_commit, sequence_id):
    """Test a strict store refuses to start a stream above slot 1."""
    with pytest.raises(SinkError):
        await store.append(make_commit(2))

    assert await store.current_slot(sequence_id) == 0


@pytest.mark.asyncio
async def test_permissive_store_accepts_future_slots(permissive_store, make_commit, sequence_id):
    """Test a permissive store accepts any slot beyond the stream length."""
    await permissive_store.append(make_commit(1))
    await permissive_store.append(make_commit(5))

    assert await permissive_store.current_slot(sequence_id) == 2

    with pytest.raises(ConcurrencyError):
        await permissive_store.append(make_commit(2))


@pytest.mark.asyncio
async def test_permissive_store_accepts_any_first_slot(permissive_store, make_commit, sequence_id):
    """Test the first commit of a permissive stream becomes its first entry."""
    commit = make_commit(7)
    await permissive_store.append(commit)

    assert permissive_store.streams[sequence_id] == [commit]


@pytest.mark.asyncio
async def test_sequences_are_independent(store, make_commit):
    """Test slots are tracked per sequence identity."""
    await store.append(make_commit(1, sequence="order-1"))
    await store.append(make_commit(1, sequence="order-2"))
    await store.append(make_commit(2, sequence="order-1"))

    assert await store.current_slot("order-1") == 2
    assert await store.current_slot("order-2") == 1


@pytest.mark.asyncio
async def test_simulated_append_failure(store, make_commit, sequence_id):
    """Test the append failure toggle raises a tagged SinkError."""
    store.want_append_success = False
    store.failure_retriable = True
    store.failure_tag = "disk full"

    with pytest.raises(SinkError) as exc_info:
        await store.append(make_commit(1))

    assert exc_info.value.retriable is True
    assert exc_info.value.detail["simulated"] == "disk full"
    assert await store.current_slot(sequence_id) == 0


# Rehydrate Tests


@pytest.mark.asyncio
async def test_rehydrate_unknown_sequence_applies_nothing(store):
    """Test rehydrating a never-appended sequence succeeds with no commits."""
    applier = RecordingApplier()

    applied = await store.rehydrate(applier, "order-unknown")

    assert applied == []
    assert applier.applied == []


@pytest.mark.asyncio
async def test_rehydrate_applies_all_commits_in_order(store, make_commit, sequence_id):
    """Test rehydrate defaults to replaying from slot 1."""
    commits = [make_commit(slot) for slot in range(1, 4)]
    for commit in commits:
        await store.append(commit)
    applier = RecordingApplier()

    applied = await store.rehydrate(applier, sequence_id)

    assert applier.applied == commits
    assert applied == commits


@pytest.mark.asyncio
@pytest.mark.parametrize("since", [1, 2, 3, 4])
async def test_rehydrate_since_applies_later_slots(store, make_commit, sequence_id, since):
    """Test rehydrate(since=k) applies exactly the commits with slot >= k."""
    for slot in range(1, 4):
        await store.append(make_commit(slot))
    applier = RecordingApplier()

    await store.rehydrate(applier, sequence_id, since=since)

    assert [c.slot for c in applier.applied] == list(range(since, 4))


@pytest.mark.asyncio
@pytest.mark.parametrize("since", [0, -1, 0.5])
async def test_rehydrate_rejects_since_below_one(store, make_commit, sequence_id, since):
    """Test a start slot below 1 fails before any replay."""
    await store.append(make_commit(1))
    applier = RecordingApplier()

    with pytest.raises(SlotValidationError) as exc_info:
        await store.rehydrate(applier, sequence_id, since=since)

    assert exc_info.value.retriable is False
    assert applier.applied == []


@pytest.mark.asyncio
async def test_rehydrate_validates_before_retrieval(store, sequence_id):
    """Test validation wins over a simulated retrieval failure."""
    store.want_rehydrate_success = False

    with pytest.raises(SlotValidationError):
        await store.rehydrate(RecordingApplier(), sequence_id, since=0)


@pytest.mark.asyncio
async def test_rehydrate_stops_at_first_applier_failure(store, make_commit, sequence_id):
    """Test an applier failure propagates verbatim and keeps earlier commits applied."""
    for slot in range(1, 4):
        await store.append(make_commit(slot))
    applier = RecordingApplier(fail_on_slot=2)

    with pytest.raises(RuntimeError, match="cannot apply slot 2"):
        await store.rehydrate(applier, sequence_id)

    assert [c.slot for c in applier.applied] == [1]


@pytest.mark.asyncio
async def test_rehydrate_aggregate_replay_error(store, make_commit, sequence_id):
    """Test an aggregate without an applier surfaces a non-retriable ReplayError."""
    await store.append(make_commit(1, GiftWrapRequested(note="ribbon")))
    order = Order(id=sequence_id)

    with pytest.raises(ReplayError) as exc_info:
        await store.rehydrate(order, sequence_id)

    assert exc_info.value.retriable is False
    assert isinstance(exc_info.value.__cause__, NotImplementedError)


@pytest.mark.asyncio
async def test_simulated_retrieval_failure(store, make_commit, sequence_id):
    """Test the rehydrate failure toggle raises a RetrievalError distinct from replay errors."""
    await store.append(make_commit(1))
    store.want_rehydrate_success = False
    applier = RecordingApplier()

    with pytest.raises(RetrievalError) as exc_info:
        await store.rehydrate(applier, sequence_id)

    assert exc_info.value.kind is ErrorKind.RETRIEVAL
    assert exc_info.value.retriable is False
    assert applier.applied == []


@pytest.mark.asyncio
async def test_load_commits_returns_copy(store, make_commit, sequence_id):
    """Test loaded commit lists do not alias the stream."""
    await store.append(make_commit(1))

    loaded = await store.load_commits(sequence_id)
    loaded.clear()

    assert await store.current_slot(sequence_id) == 1


def test_validate_since_defaults_and_floors():
    """Test start slot normalization."""
    assert validate_since(None) == 1
    assert validate_since(2.9) == 2

    with pytest.raises(SlotValidationError):
        validate_since(0.99)


def test_store_defaults_to_strict_slots():
    """Test the default store uses the strict slot check."""
    assert InMemoryEventStreamStore().strict_slots is True
