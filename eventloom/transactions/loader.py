"""Loading aggregates from an event stream store."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, Literal, Protocol, TypeVar, overload

from ..domain import Aggregate, Commit
from ..streams import EventStreamStore

LOGGER = logging.getLogger(__name__)

A = TypeVar("A", bound=Aggregate)


@dataclass
class Rehydration:
    """Metadata about how an aggregate was loaded.

    Attributes:
        sequence_id: The stream that was replayed.
        replayed: Number of commits applied.
        slot: Slot of the aggregate after loading, 0 for a new stream.
        diff_commits: Commits with a slot greater than the requested
            ``diff_since``, in slot order.
    """

    sequence_id: str
    replayed: int = 0
    slot: int = 0
    diff_commits: list[Commit] = field(default_factory=list)


@dataclass
class LoadResult(Generic[A]):
    """A live aggregate together with its load metadata."""

    instance: A
    rehydration: Rehydration


class Loader(Protocol[A]):
    """Loads a live aggregate for a transaction attempt."""

    async def __call__(
        self,
        make_blank: Callable[[], A],
        sequence_id: str,
        *,
        advanced: bool = ...,
        diff_since: int | None = ...,
    ) -> "LoadResult[A] | A": ...


class AggregateLoader:
    """Rebuilds aggregates by replaying their stream from a store.

    Every call starts from a blank instance, binds it to the store so that
    ``commit`` appends there, and replays the whole stream onto it. If the
    replay fails the partially rebuilt instance is dropped and the error
    propagates unchanged.

    Examples:
        >>> load = AggregateLoader(store)
        >>> order = await load(Order, "order-42")
        >>> loaded = await load(Order, "order-42", advanced=True, diff_since=1)
        >>> loaded.rehydration.diff_commits
        [...]
    """

    __slots__ = ("store",)

    def __init__(self, store: EventStreamStore):
        self.store = store

    @overload
    async def __call__(
        self,
        make_blank: Callable[[], A],
        sequence_id: str,
        *,
        advanced: Literal[False] = ...,
        diff_since: int | None = ...,
    ) -> A: ...

    @overload
    async def __call__(
        self,
        make_blank: Callable[[], A],
        sequence_id: str,
        *,
        advanced: Literal[True],
        diff_since: int | None = ...,
    ) -> LoadResult[A]: ...

    async def __call__(
        self,
        make_blank: Callable[[], A],
        sequence_id: str,
        *,
        advanced: bool = False,
        diff_since: int | None = None,
    ) -> LoadResult[A] | A:
        """Load the aggregate stored under ``sequence_id``.

        Args:
            make_blank: Returns an aggregate in its initial state.
            sequence_id: The stream to replay.
            advanced: Return a LoadResult with rehydration metadata
                instead of the bare aggregate.
            diff_since: In advanced mode, report the commits with a slot
                greater than this value. None reports none.
        """
        aggregate = make_blank()
        aggregate.id = sequence_id
        aggregate.bind(self.store)

        applied = await self.store.rehydrate(aggregate, sequence_id)

        LOGGER.debug(
            "Loaded aggregate",
            extra={"sequence_id": sequence_id, "commits": len(applied), "slot": aggregate.slot},
        )

        if not advanced:
            return aggregate

        diff = [] if diff_since is None else [c for c in applied if c.slot > diff_since]
        return LoadResult(
            instance=aggregate,
            rehydration=Rehydration(
                sequence_id=sequence_id,
                replayed=len(applied),
                slot=aggregate.slot,
                diff_commits=diff,
            ),
        )
