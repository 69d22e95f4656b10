"""Reporting operation.

`report` is the single entry point through which every event leaves the
engine: it counts outcome events in the current environment exactly once
and hands the event to the environment's reporter. `do_report` first
attributes outcome events to the test and testing contexts being run.
"""

from typing import TYPE_CHECKING

from stepwise.environment import get_current_env, inc_report_counter
from stepwise.events import COUNTED_TYPES, AssertionEvent

if TYPE_CHECKING:
    from stepwise.events import ReportEvent

UNCAUGHT_MESSAGE = 'Uncaught exception, not in assertion.'


def report(event: 'ReportEvent') -> None:
    """Count and dispatch a report event.

    Args:
        event: Event to report.

    Raises:
        NoActiveEnvironment: If no environment is installed.
    """
    env = get_current_env()

    if event.type in COUNTED_TYPES:
        inc_report_counter(event.type)  # type: ignore[arg-type]
        env = get_current_env()

    env.reporter.dispatch(event)


def do_report(event: 'ReportEvent') -> None:
    """Attribute an outcome event to the running test, then report it.

    Fields already set on the event are kept.

    Args:
        event: Event to report.

    Raises:
        NoActiveEnvironment: If no environment is installed.
    """
    if isinstance(event, AssertionEvent):
        env = get_current_env()

        update = {}
        if not event.testing_contexts and env.testing_contexts:
            update['testing_contexts'] = env.testing_contexts
        if event.name is None and env.testing_vars:
            record = env.testing_vars[-1]
            update['namespace'] = record.namespace
            update['name'] = record.name
            update['line'] = record.line

        if update:
            event = event.model_copy(update=update)

    report(event)


def report_exception(error: Exception, message: str | None = None) -> None:
    """Report an exception raised while running a test or an action.

    An `AssertionError` is a failed assertion and becomes a `fail`
    event; any other exception becomes an `error` event.

    Args:
        error: Exception to report.
        message: Message for `error` events.

    Raises:
        NoActiveEnvironment: If no environment is installed.
    """
    if isinstance(error, AssertionError):
        do_report(AssertionEvent(
            type='fail',
            message=str(error) or message,
            actual=error,
        ))
        return

    do_report(AssertionEvent(
        type='error',
        message=message or UNCAUGHT_MESSAGE,
        actual=error,
    ))
