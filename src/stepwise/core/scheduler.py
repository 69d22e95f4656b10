"""Cooperative block scheduler.

The scheduler drives a block to completion one action at a time on the
caller's thread. It suspends when an action returns an asynchronous
continuation and resumes when the continuation calls its completion
callback, typically from a later turn of an external event loop.

States::

    IDLE -> RUNNING -> SUSPENDED -> RUNNING -> ... -> FINISHED

Failures are isolated per action: an exception raised by an action is
reported as an event and the run continues. Configuration and engine
state errors are programming errors and propagate to the caller.
"""

from collections import deque
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING
from warnings import warn

from stepwise.environment import has_env
from stepwise.errors import ConfigurationError, NoActiveEnvironment, SchedulerWarning
from stepwise.events import AssertionEvent
from stepwise.reporting import do_report, report_exception

from .block import AsyncContinuation, Block, is_async

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

if TYPE_CHECKING:
    from stepwise.fixtures import Fixture, Thunk

    from .block import Action, ActionResult, Done

DONE_TWICE_MESSAGE = 'Async test called done more than one time'

logger = getLogger(__name__)


class RunnerState(StrEnum):
    """Lifecycle states of a block runner."""

    IDLE = 'idle'
    RUNNING = 'running'
    SUSPENDED = 'suspended'
    FINISHED = 'finished'


class Completion:
    """One-shot completion callback handed to a continuation."""

    __slots__ = ('called', 'invoking', 'runner')

    def __init__(self, runner: 'BlockRunner') -> None:
        """Initialize a callback resuming `runner`."""
        self.runner = runner
        self.called = False
        self.invoking = False

    def __call__(self) -> None:
        """Resume the runner at the next action.

        Calls after the first are reported as an `error` event and
        otherwise ignored. When no environment is left to report into,
        a `SchedulerWarning` is emitted instead. A call made while the
        continuation is still being invoked lets the runner continue its
        loop instead of recursing.
        """
        if self.called:
            if not has_env():
                warn(DONE_TWICE_MESSAGE, category=SchedulerWarning, stacklevel=2)
                return

            do_report(AssertionEvent(
                type='error',
                message=DONE_TWICE_MESSAGE,
                expected='Async done called once',
                actual='Async done called twice',
            ))
            return

        self.called = True

        if not self.invoking:
            self.runner.resume()


class BlockRunner:
    """Runs a block of actions in order, suspending at async boundaries.

    At most one continuation is in flight per runner.

    Attributes:
        state: Current lifecycle state.
        pending: Actions left to run.
        on_finish: Callback invoked once when the block is exhausted.
    """

    def __init__(self, actions: 'Iterable[Action]', *,
                 on_finish: 'Callable[[], object] | None' = None) -> None:
        """Initialize a runner.

        Args:
            actions: Actions to run, in order.
            on_finish: Callback invoked once the runner finishes.
        """
        self.pending: deque[Action] = deque(actions)
        self.on_finish = on_finish
        self.state = RunnerState.IDLE

    def run(self) -> RunnerState:
        """Start the runner.

        Returns:
            `FINISHED` if the block completed synchronously, otherwise
            `SUSPENDED`; the rest of the block runs on completion.

        Raises:
            RuntimeError: If the runner was already started.
        """
        if self.state is not RunnerState.IDLE:
            raise RuntimeError(f'Runner is already {self.state}')

        return self._loop()

    def resume(self) -> RunnerState:
        """Continue a suspended runner at the next action.

        Raises:
            RuntimeError: If the runner is not suspended.
        """
        if self.state is not RunnerState.SUSPENDED:
            raise RuntimeError(f'Can not resume a runner that is {self.state}')

        logger.debug('resuming with %d action(s) pending', len(self.pending))

        return self._loop()

    @property
    def finished(self) -> bool:
        """Whether the block ran to completion."""
        return self.state is RunnerState.FINISHED

    def _loop(self) -> RunnerState:
        """Run actions until the block is exhausted or suspends."""
        self.state = RunnerState.RUNNING

        while self.pending:
            result = self._invoke(self.pending.popleft())

            if isinstance(result, Block):
                logger.debug('splicing block of %d action(s)', len(result))
                self.pending.extendleft(reversed(result))
                continue

            if is_async(result) and self._suspend(result):  # type: ignore[arg-type]
                return self.state

        self.state = RunnerState.FINISHED
        logger.debug('block finished')

        if self.on_finish is not None:
            self.on_finish()

        return self.state

    def _invoke(self, action: 'Action') -> 'ActionResult':
        """Invoke one action, reporting anything it raises.

        Raises:
            ConfigurationError: Propagated as-is.
            NoActiveEnvironment: Propagated as-is.
        """
        try:
            return action()

        except (ConfigurationError, NoActiveEnvironment):
            raise

        except Exception as error:  # noqa: BLE001
            logger.debug('action %r raised %r', action, error)
            report_exception(error)

        return None

    def _suspend(self, continuation: AsyncContinuation) -> bool:
        """Invoke a continuation and report whether the runner suspended.

        Returns:
            True if the completion callback is still pending, False if
            it was called during the invocation or the invocation raised.
        """
        completion = Completion(self)

        self.state = RunnerState.SUSPENDED
        logger.debug('suspending on %r', continuation)

        completion.invoking = True
        try:
            continuation(completion)

        except (ConfigurationError, NoActiveEnvironment):
            raise

        except Exception as error:  # noqa: BLE001
            report_exception(error)
            completion.called = True

        finally:
            completion.invoking = False

        if completion.called:
            self.state = RunnerState.RUNNING
            return False

        return True


def run_block(actions: 'Iterable[Action]', *,
              on_finish: 'Callable[[], object] | None' = None) -> BlockRunner:
    """Run a block of actions.

    Running a block is asynchronous: events and counter changes may be
    spread over several turns of the event loop delivering completions.

    Args:
        actions: Actions to run, in order.
        on_finish: Callback invoked once the whole block has run.

    Returns:
        The started runner.
    """
    runner = BlockRunner(actions, on_finish=on_finish)
    runner.run()

    return runner


def run_nested(actions: 'Iterable[Action]') -> AsyncContinuation | None:
    """Run a block inside an action of an enclosing block.

    Args:
        actions: Actions of the inner block.

    Returns:
        `None` if the inner block finished synchronously, otherwise a
        continuation completing when the inner block finishes, so the
        enclosing runner waits for it.
    """
    waiting: list[Done] = []

    def finish() -> None:
        while waiting:
            waiting.pop(0)()

    runner = BlockRunner(actions, on_finish=finish)

    if runner.run() is RunnerState.FINISHED:
        return None

    def wait(done: 'Done') -> None:
        if runner.finished:
            done()
        else:
            waiting.append(done)

    return AsyncContinuation(wait)


def call_with_fixture(fixture: 'Fixture', thunk: 'Thunk') -> Block:
    """Call a thunk through a wrapper fixture without losing its continuation.

    The fixture receives the thunk's continuation wrapped so that it
    runs at most once. Whatever the fixture does with it, the thunk's
    continuation still runs before the returned block ends: when the
    fixture drops it, raises after calling the thunk, or calls the thunk
    from a continuation of its own. Exceptions raised by the fixture or
    the thunk are reported.

    Args:
        fixture: Wrapper fixture.
        thunk: Callable the fixture wraps.

    Returns:
        Block running the fixture's continuation, if any, then the
        thunk's continuation unless it already ran.
    """
    pending: list[AsyncContinuation] = []

    def call() -> 'ActionResult':
        result = thunk()
        if not is_async(result):
            return result

        pending.append(result)

        def claim(done: 'Done') -> None:
            if result not in pending:
                done()
                return

            pending.remove(result)
            result(done)

        return AsyncContinuation(claim)

    def resume() -> AsyncContinuation | None:
        if pending:
            logger.debug('resuming continuation left by fixture %r', fixture)
            return pending.pop()

        return None

    try:
        outcome = fixture(call)()

    except (ConfigurationError, NoActiveEnvironment):
        raise

    except Exception as error:  # noqa: BLE001
        report_exception(error)
        outcome = None

    if is_async(outcome):
        return Block((lambda: outcome, resume))

    return Block((resume,))
