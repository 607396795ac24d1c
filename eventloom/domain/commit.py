from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from ulid import ULID

from .event import Event, utc_now


class Commit(BaseModel):
    """An immutable batch of events appended atomically to one stream.

    A commit is created by an aggregate when asked to materialize its staged
    events and is owned by the store once appended. Its slot number is the
    optimistic-concurrency token: a store only accepts a commit whose slot
    is greater than the current length of the stream.

    Attributes:
        id: Unique identifier of this commit
        sequence_id: Identity of the stream the commit belongs to
        slot: 1-based position of the commit within its stream
        events: The events of the commit, in the order they were staged
        metadata: Opaque caller-supplied metadata
        timestamp: When the commit was materialized (UTC)

    Examples:
        >>> commit = Commit(
        ...     sequence_id="order-42",
        ...     slot=1,
        ...     events=[Event(data=OrderPlaced(customer="alice"))],
        ... )
        >>> commit.slot
        1
    """

    model_config = ConfigDict(frozen=True)

    id: ULID = Field(default_factory=ULID)
    sequence_id: str = Field(min_length=1)
    slot: int = Field(ge=1, description="1-based position within the stream")
    events: tuple[Event, ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)
