from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from ulid import ULID

T = TypeVar("T", bound=BaseModel)


def utc_now() -> datetime:
    """Get the current UTC timestamp.

    Returns:
        Current datetime with UTC timezone information
    """
    return datetime.now(tz=timezone.utc)


class Event(BaseModel, Generic[T]):
    """Immutable record of a single state change in an aggregate.

    Events are staged by an aggregate while user logic runs and are
    grouped into a Commit when the aggregate is committed. The event
    itself carries no stream position; ordering is given by its place
    within the commit and the commit's slot within its stream.

    Type Parameters:
        T: Pydantic BaseModel subclass defining the event data schema

    Attributes:
        id: Unique identifier for this specific event instance
        data: Typed event data (e.g., OrderPlaced, ItemAdded)
        timestamp: When the event occurred (UTC timezone)

    Examples:
        >>> event = Event(data=OrderPlaced(customer="alice"))
        >>> event.event_type
        'OrderPlaced'
    """

    model_config = ConfigDict(frozen=True)

    id: ULID = Field(
        default_factory=ULID,
        description="Unique identifier for this event instance",
    )
    data: T = Field(description="Typed event data conforming to schema T")
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC timezone)",
    )

    @property
    def event_type(self) -> str:
        """Name of the event data class."""
        return type(self.data).__name__
