"""The retrying load-execute-commit loop."""

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any, Generic, TypeVar

from ..domain import Aggregate, Commit, is_retriable
from .config import TransactionOptions
from .loader import Loader, Rehydration

LOGGER = logging.getLogger(__name__)

A = TypeVar("A", bound=Aggregate)
R = TypeVar("R")


@dataclass
class TransactionResult(Generic[R]):
    """Result of a transaction run with ``advanced=True``.

    Attributes:
        result: The value returned by the user function.
        rehydration: Load metadata of the successful attempt.
    """

    result: R
    rehydration: Rehydration


class TransactionExecutor:
    """Runs user logic against a freshly loaded aggregate and commits it.

    Each attempt loads the aggregate, runs the user function on it, stages
    the resulting commit and appends it. A failure while loading or
    appending is reported to ``on_failure`` and then retried from scratch
    if the retry strategy allows it and the failure is tagged retriable;
    otherwise it is re-raised unchanged. Failures raised by the user
    function or while staging the commit are never retried.

    With the default unbounded strategy the loop keeps retrying for as long
    as a conflicting writer keeps winning, so it may never return. Use
    ``RetryStrategy.counter`` or ``RetryStrategy.deadline`` when retries
    must be bounded; an attempt in flight cannot be cancelled.

    Examples:
        >>> executor = TransactionExecutor(
        ...     TransactionOptions(retry_strategy=RetryStrategy.counter(3))
        ... )
        >>> total = await executor.execute(
        ...     AggregateLoader(store), Order, "order-42", lambda order: order.add_item("book", 2)
        ... )
    """

    __slots__ = ("options",)

    def __init__(self, options: TransactionOptions | None = None):
        self.options = options if options is not None else TransactionOptions()

    async def execute(
        self,
        load: Loader[A],
        make_blank: Callable[[], A],
        sequence_id: str,
        user_function: Callable[[A], R | Awaitable[R]],
    ) -> R | TransactionResult[R]:
        """Run the transaction until it commits or fails terminally.

        Args:
            load: Loads the aggregate; called with ``advanced=True``.
            make_blank: Returns an aggregate in its initial state.
            sequence_id: The stream the aggregate lives in.
            user_function: Called with the live aggregate; may return a
                value or an awaitable.

        Returns:
            The user function's result, or a TransactionResult when the
            options ask for the advanced format.

        Raises:
            Exception: The failure that ended the transaction, unchanged.
        """
        options = self.options
        attempt = 0

        while True:
            attempt += 1

            try:
                loaded = await load(
                    make_blank,
                    sequence_id,
                    advanced=True,
                    diff_since=options.diff_since,
                )
            except Exception as e:
                if not self._should_retry(e, "load", sequence_id, attempt):
                    raise
                await options.scheduler.defer()
                continue

            instance = loaded.instance
            result = user_function(instance)
            if inspect.isawaitable(result):
                result = await result

            staged = instance.get_commit(options.commit_metadata)

            try:
                appended = await instance.commit(options.commit_metadata)
            except Exception as e:
                if not self._should_retry(e, "append", sequence_id, attempt):
                    raise
                await options.scheduler.defer()
                continue

            own_commit = appended if isinstance(appended, Commit) else staged
            return self._build_output(result, loaded.rehydration, own_commit)

    def _should_retry(
        self,
        error: Exception,
        stage: str,
        sequence_id: str,
        attempt: int,
    ) -> bool:
        extra = {
            "sequence_id": sequence_id,
            "stage": stage,
            "attempt": attempt,
            "error_type": type(error).__name__,
        }
        self._observe(error, extra)

        # Both the strategy and the error itself must allow another attempt.
        verdict = self.options.retry_strategy(error)
        if verdict is None and is_retriable(error):
            LOGGER.warning(
                f"Transaction {stage} failed on attempt {attempt}, retrying: {error}",
                extra=extra,
            )
            return True

        reason = verdict if verdict is not None else "error is not retriable"
        LOGGER.info(
            f"Transaction {stage} failed on attempt {attempt}, giving up: {reason}",
            extra=extra,
        )
        return False

    def _observe(self, error: Exception, extra: dict[str, Any]) -> None:
        if self.options.on_failure is None:
            return
        try:
            self.options.on_failure(error)
        except Exception:
            LOGGER.exception("Failure observer raised", extra=extra)

    def _build_output(
        self,
        result: R,
        rehydration: Rehydration,
        own_commit: Commit,
    ) -> R | TransactionResult[R]:
        if not self.options.advanced:
            return result

        if self.options.include_own_commit and own_commit.events:
            rehydration = replace(
                rehydration,
                diff_commits=[*rehydration.diff_commits, own_commit],
            )
        return TransactionResult(result=result, rehydration=rehydration)


async def try_with(
    load: Loader[A],
    make_blank: Callable[[], A],
    sequence_id: str,
    user_function: Callable[[A], R | Awaitable[R]],
    options: TransactionOptions | None = None,
) -> R | TransactionResult[R]:
    """Load an aggregate, run ``user_function`` on it and commit the result.

    Shorthand for ``TransactionExecutor(options).execute(...)``. Retriable
    load and append failures are retried according to
    ``options.retry_strategy``, forever by default.

    Examples:
        >>> store = InMemoryEventStreamStore()
        >>> await try_with(AggregateLoader(store), Order, "order-42", lambda o: o.place("alice"))
    """
    return await TransactionExecutor(options).execute(load, make_blank, sequence_id, user_function)
