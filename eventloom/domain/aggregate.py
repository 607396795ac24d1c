from datetime import datetime
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from pydantic import BaseModel, Field, PrivateAttr

from ..routing import setup_event_applying
from .commit import Commit
from .event import Event
from .exceptions import ReplayError, SinkError

if TYPE_CHECKING:
    from ..routing import MessageRouter
    from ..streams import EventStreamStore

T = TypeVar("T", bound=BaseModel)
A = TypeVar("A", bound="Aggregate")


class Aggregate(BaseModel):
    """Base class for event-sourced aggregates.

    An aggregate is transient: every load starts from a blank instance and
    replays the commits of its stream through ``apply_commit``. User logic
    then calls ``emit`` to stage new events, which are applied immediately
    and kept until ``commit`` appends them to the bound store as a single
    Commit in the next slot.

    Event appliers are routed by type annotation. Mark them with
    ``@applies_event``; events without an applier raise NotImplementedError
    unless the class sets ``ignore_unknown_events = True``.

    Examples:
        >>> class OrderPlaced(BaseModel):
        ...     customer: str
        >>>
        >>> class Order(Aggregate):
        ...     customer: str = ""
        ...
        ...     def place(self, customer: str) -> None:
        ...         if self.customer:
        ...             raise ValueError("Order already placed")
        ...         self.emit(OrderPlaced(customer=customer))
        ...
        ...     @applies_event
        ...     def apply_placed(self, evt: OrderPlaced) -> None:
        ...         self.customer = evt.customer
        >>>
        >>> order = Order(id="order-42")
        >>> order.place("alice")
        >>> order.get_commit().slot
        1

    Attributes:
        id: Sequence identity of the stream backing this aggregate.
        slot: Slot of the last commit applied or appended, 0 when the
            stream is empty.
        last_commit_time: Timestamp of the most recent commit applied.
        staged_events: Events emitted but not yet committed. Excluded from
            serialization.
    """

    id: str = ""
    slot: int = 0
    last_commit_time: datetime | None = None
    staged_events: list[Event] = Field(default_factory=list, exclude=True)

    ignore_unknown_events: ClassVar[bool] = False

    _event_router: ClassVar["MessageRouter"]
    _store: Any = PrivateAttr(default=None)

    def __init_subclass__(cls, **kwargs: object) -> None:
        """Set up event routing when a subclass is defined."""
        super().__init_subclass__(**kwargs)  # type: ignore[arg-type]
        cls._event_router = setup_event_applying(cls, strict=not cls.ignore_unknown_events)

    def bind(self: A, store: "EventStreamStore") -> A:
        """Attach the store that ``commit`` appends to.

        Returns:
            The aggregate itself, for chaining.
        """
        self._store = store
        return self

    def apply(self, data: BaseModel) -> object:
        """Route event data to its registered applier method."""
        return self._event_router.route(self, data)

    def emit(self, data: T) -> None:
        """Stage a new event and apply it to the aggregate state.

        Args:
            data: The event data describing what happened.
        """
        self.staged_events.append(Event(data=data))
        self.apply(data)

    def apply_commit(self, commit: Commit) -> None:
        """Apply every event of a historical commit, in order.

        Args:
            commit: A commit previously appended to this aggregate's stream.

        Raises:
            ReplayError: If the commit belongs to another stream or an
                applier fails. Events applied before the failure are not
                rolled back; the instance must be discarded.
        """
        if commit.sequence_id != self.id:
            raise ReplayError(
                f"Commit for {commit.sequence_id!r} cannot be applied to {self.id!r}",
                detail={"sequence_id": self.id, "commit_sequence_id": commit.sequence_id},
            )
        for event in commit.events:
            try:
                self.apply(event.data)
            except Exception as e:
                raise ReplayError(
                    f"Failed to apply {event.event_type} from slot {commit.slot} "
                    f"of {self.id!r}: {e}",
                    detail={"sequence_id": self.id, "slot": commit.slot, "event_id": str(event.id)},
                ) from e
        self.slot = commit.slot
        self.last_commit_time = commit.timestamp

    def get_commit(self, metadata: dict[str, Any] | None = None) -> Commit:
        """Materialize the staged events as a commit for the next slot.

        The staged events are left in place; ``commit`` clears them once
        the append has succeeded.

        Args:
            metadata: Opaque metadata attached to the commit.
        """
        return Commit(
            sequence_id=self.id,
            slot=self.slot + 1,
            events=tuple(self.staged_events),
            metadata=dict(metadata or {}),
        )

    async def commit(self, metadata: dict[str, Any] | None = None) -> Commit | None:
        """Append the staged events to the bound store.

        Does nothing when no events are staged.

        Args:
            metadata: Opaque metadata attached to the commit.

        Returns:
            The appended commit, or None if nothing was staged.

        Raises:
            SinkError: If the aggregate is not bound to a store.
            ConcurrencyError: If another writer appended to the stream first.
        """
        if not self.staged_events:
            return None
        if self._store is None:
            raise SinkError(f"Aggregate {self.id!r} is not bound to an event stream store")

        commit = self.get_commit(metadata)
        await self._store.append(commit)

        self.staged_events.clear()
        self.slot = commit.slot
        self.last_commit_time = commit.timestamp
        return commit
