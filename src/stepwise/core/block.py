"""Blocks, actions, and asynchronous continuations.

A block is an ordered sequence of zero-argument actions and the unit of
scheduling. Blocks have no identity beyond their sequence and compose by
concatenation.

An action returns one of:
- `None` when it is done;
- a `Block`, spliced in to run right after the action;
- an `AsyncContinuation` when it completes asynchronously.
"""

from collections.abc import Callable, Iterable
from typing import Any

#: Completion callback handed to an asynchronous continuation.
type Done = Callable[[], None]

type ActionResult = Block | AsyncContinuation | None
type Action = Callable[[], ActionResult]


class AsyncContinuation:
    """Asynchronous remainder of a test or an action.

    The scheduler invokes a continuation exactly once with a completion
    callback. The continuation must call that callback exactly once,
    from whatever context it completes in, after its last assertion.
    A continuation that never calls it stalls the run.
    """

    __slots__ = ('body',)

    def __init__(self, body: Callable[[Done], Any]) -> None:
        """Initialize a continuation.

        Args:
            body: Callable receiving the completion callback.
        """
        self.body = body

    def __call__(self, done: Done) -> None:
        """Run the continuation with its completion callback."""
        self.body(done)

    def __repr__(self) -> str:
        """Debug representation."""
        return f'{type(self).__name__}({self.body!r})'


def asynchronous(body: Callable[[Done], Any]) -> AsyncContinuation:
    """Mark a callable as the asynchronous remainder of a test.

    Usable as a decorator inside a test body::

        def test_later():
            @asynchronous
            def later(done):
                loop.call_soon(lambda: (check(True), done()))
            return later
    """
    return AsyncContinuation(body)


def is_async(value: object) -> bool:
    """Return whether a value is an asynchronous continuation."""
    return isinstance(value, AsyncContinuation)


class Block(tuple[Action, ...]):
    """Ordered, immutable sequence of actions."""

    __slots__ = ()

    def __new__(cls, actions: Iterable[Action] = ()) -> 'Block':
        """Create a block from an iterable of actions."""
        return super().__new__(cls, actions)

    def __add__(self, other: Iterable[Action]) -> 'Block':  # type: ignore[override]
        """Concatenate, preserving order."""
        return Block((*self, *other))

    def __radd__(self, other: Iterable[Action]) -> 'Block':
        """Concatenate with a plain sequence on the left."""
        return Block((*other, *self))

    def __repr__(self) -> str:
        """Debug representation."""
        return f'{type(self).__name__}({tuple(self)!r})'


def block(*parts: Iterable[Action] | Action) -> Block:
    """Build a block from actions and iterables of actions, in order.

    Args:
        *parts: Actions or iterables of actions.

    Returns:
        Concatenated block.
    """
    actions: list[Action] = []
    for part in parts:
        if callable(part):
            actions.append(part)
        else:
            actions.extend(part)

    return Block(actions)
