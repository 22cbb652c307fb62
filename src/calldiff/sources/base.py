from __future__ import annotations

from typing import Callable, ContextManager, Iterator, TypeVar

from ..models import Call

T = TypeVar("T")


class CallSource:
    """One side of a diff: a lazily produced sequence of calls.

    Subclasses implement :meth:`open`, a context manager yielding an iterator of
    :class:`~calldiff.models.Call`. Leaving the context releases whatever the
    iterator holds (file handles, pending page requests), even if it was not
    exhausted.
    """

    side: str = "?"

    def open(self) -> ContextManager[Iterator[Call]]:
        raise NotImplementedError

    def scan(self, callback: Callable[[Iterator[Call]], T]) -> T:
        """Pass the call sequence to ``callback`` and return its result."""
        with self.open() as calls:
            return callback(calls)

    def describe(self) -> str:
        return self.__class__.__name__
