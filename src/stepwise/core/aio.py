"""Asyncio integration.

Adapts awaitables to asynchronous continuations so that coroutine test
bodies can run on an asyncio event loop. The run itself must be started
from inside the loop, for example from a coroutine awaiting a future
resolved by `run_tests(on_finish=...)`.
"""

from asyncio import CancelledError, ensure_future, get_running_loop
from functools import wraps
from typing import TYPE_CHECKING, Any

from stepwise.reporting import report_exception

from .block import AsyncContinuation

if TYPE_CHECKING:
    from asyncio import Future
    from collections.abc import Awaitable, Callable, Coroutine

if TYPE_CHECKING:
    from .block import Done


def from_awaitable(awaitable: 'Awaitable[Any]') -> AsyncContinuation:
    """Wrap an awaitable as an asynchronous continuation.

    The awaitable is scheduled on the running loop when the scheduler
    invokes the continuation. Once it settles, an exception it raised is
    reported (`fail` for `AssertionError`, `error` otherwise) and the
    scheduler is resumed.

    Args:
        awaitable: Coroutine, task, or future.

    Returns:
        Continuation completing with the awaitable.
    """
    def run(done: 'Done') -> None:
        future = ensure_future(awaitable, loop=get_running_loop())

        def settle(future: 'Future[Any]') -> None:
            try:
                future.result()
            except CancelledError as error:
                report_exception(RuntimeError(f'Awaitable was cancelled: {error!r}'))
            except Exception as error:  # noqa: BLE001
                report_exception(error)
            finally:
                done()

        future.add_done_callback(settle)

    return AsyncContinuation(run)


def async_test[**P](body: 'Callable[P, Coroutine[Any, Any, Any]]') -> 'Callable[P, AsyncContinuation]':
    """Turn a coroutine function into a test body returning a continuation."""
    @wraps(body)
    def run(*args: P.args, **kwargs: P.kwargs) -> AsyncContinuation:
        return from_awaitable(body(*args, **kwargs))

    return run
