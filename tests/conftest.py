"""Central test fixtures."""

from collections.abc import Callable

import pytest
import pytest_asyncio
from pydantic import BaseModel

from eventloom.domain import Commit, Event
from eventloom.streams import InMemoryEventStreamStore
from eventloom.transactions import AggregateLoader
from tests.fixtures.test_app import ItemAdded, OrderPlaced


@pytest.fixture
def sequence_id() -> str:
    """The sequence identity used by most scenarios."""
    return "order-42"


@pytest.fixture
def store() -> InMemoryEventStreamStore:
    """Create a strict in-memory event stream store."""
    return InMemoryEventStreamStore()


@pytest.fixture
def permissive_store() -> InMemoryEventStreamStore:
    """Create an in-memory store that accepts any slot beyond the stream end."""
    return InMemoryEventStreamStore(strict_slots=False)


@pytest.fixture
def loader(store: InMemoryEventStreamStore) -> AggregateLoader:
    """Create an aggregate loader over the default store."""
    return AggregateLoader(store)


@pytest.fixture
def make_commit(sequence_id: str) -> Callable[..., Commit]:
    """Build commits for the default sequence, one event each by default."""

    def factory(
        slot: int,
        *data: BaseModel,
        sequence: str | None = None,
        metadata: dict | None = None,
    ) -> Commit:
        payload = data or (ItemAdded(sku=f"sku-{slot}", quantity=slot),)
        return Commit(
            sequence_id=sequence or sequence_id,
            slot=slot,
            events=tuple(Event(data=d) for d in payload),
            metadata=metadata or {},
        )

    return factory


@pytest_asyncio.fixture
async def placed_order(store: InMemoryEventStreamStore, sequence_id: str) -> Commit:
    """Append an OrderPlaced commit at slot 1 of the default sequence."""
    commit = Commit(
        sequence_id=sequence_id,
        slot=1,
        events=(Event(data=OrderPlaced(customer="alice")),),
    )
    await store.append(commit)
    return commit
