"""Per-transaction options."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .retry import RetryStrategy
from .scheduler import RetryScheduler


@dataclass
class TransactionOptions:
    """Options controlling a single ``try_with`` call.

    Each field has a default that retries retriable failures forever,
    yields to the event loop between attempts and returns the user
    function's result unchanged.

    Attributes:
        retry_strategy: Consulted with every load or append failure.
            Create a new strategy per transaction when it counts attempts.
        on_failure: Observer called with every load or append failure,
            before the retry decision. Purely diagnostic.
        scheduler: Yield primitive awaited before each retry.
        advanced: Return a TransactionResult carrying the load metadata
            instead of the bare result.
        diff_since: Report the commits with a slot greater than this value
            in ``rehydration.diff_commits``. None reports none.
        include_own_commit: With ``advanced``, also report the commit
            appended by the successful attempt, after the earlier ones.
        commit_metadata: Metadata attached to the appended commit.

    Examples:
        Default options:

        >>> options = TransactionOptions()

        Bounded retries with a back-off and diagnostics:

        >>> options = TransactionOptions(
        ...     retry_strategy=RetryStrategy.counter(5),
        ...     scheduler=RetryScheduler.fixed_delay(0.05),
        ...     on_failure=lambda error: print(f"attempt failed: {error}"),
        ... )

        Report what changed since slot 3, including this transaction:

        >>> options = TransactionOptions(advanced=True, diff_since=3, include_own_commit=True)
    """

    retry_strategy: RetryStrategy = field(default_factory=RetryStrategy.unbounded)
    on_failure: Callable[[BaseException], None] | None = None
    scheduler: RetryScheduler = field(default_factory=RetryScheduler.next_turn)
    advanced: bool = False
    diff_since: int | None = None
    include_own_commit: bool = False
    commit_metadata: dict[str, Any] = field(default_factory=dict)
