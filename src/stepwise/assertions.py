"""Assertion helpers.

Each helper performs one check and reports exactly one `pass`, `fail`,
or `error` event for the test being run. Helpers never raise for a
failed check; the run continues with the next statement of the test.
"""

from re import search
from typing import TYPE_CHECKING, Any

from stepwise.errors import ConfigurationError, ErrorContext
from stepwise.events import AssertionEvent
from stepwise.reporting import do_report

if TYPE_CHECKING:
    from collections.abc import Callable


def check(value: Any, message: str | None = None, *,  # noqa: ANN401
          expected: Any = None) -> bool:  # noqa: ANN401
    """Report whether a value is truthy.

    A callable value is called first; an exception it raises is
    reported as an `error`.

    Args:
        value: Evaluated expression, or a zero-argument predicate.
        message: Optional message attached to the event.
        expected: Optional description of the expected condition.

    Returns:
        Whether the check passed.
    """
    if callable(value):
        try:
            value = value()
        except Exception as error:  # noqa: BLE001
            do_report(AssertionEvent(
                type='error',
                message=message,
                expected=expected,
                actual=error,
            ))
            return False

    passed = bool(value)

    do_report(AssertionEvent(
        type='pass' if passed else 'fail',
        message=message,
        expected=expected,
        actual=value,
    ))

    return passed


def check_raises(error_type: type[BaseException] | tuple[type[BaseException], ...],
                 body: 'Callable[[], Any]', *,
                 match: str | None = None,
                 message: str | None = None) -> BaseException | None:
    """Report whether a callable raises an expected exception.

    Args:
        error_type: Expected exception type or types.
        body: Zero-argument callable to run.
        match: Optional regular expression searched in the exception
            message.
        message: Optional message attached to the event.

    Returns:
        The raised exception when the check passed, otherwise `None`.
    """
    try:
        result = body()

    except error_type as error:
        if match is not None and not search(match, str(error)):
            do_report(AssertionEvent(
                type='fail',
                message=message,
                expected=f'{_type_names(error_type)} matching {match!r}',
                actual=error,
            ))
            return None

        do_report(AssertionEvent(
            type='pass',
            message=message,
            expected=_type_names(error_type),
            actual=error,
        ))
        return error

    except Exception as error:  # noqa: BLE001
        do_report(AssertionEvent(
            type='error',
            message=message,
            expected=_type_names(error_type),
            actual=error,
        ))
        return None

    do_report(AssertionEvent(
        type='fail',
        message=message,
        expected=_type_names(error_type),
        actual=result,
    ))

    return None


def check_each(predicate: 'Callable[..., Any]', arity: int, *args: Any,  # noqa: ANN401
               message: str | None = None) -> bool:
    """Check a predicate against consecutive groups of arguments.

    `check_each(eq, 2, 2, 1 + 1, 4, 2 * 2)` checks `eq(2, 1 + 1)` and
    then `eq(4, 2 * 2)`, reporting one event per group.

    Args:
        predicate: Callable receiving `arity` arguments.
        arity: Number of arguments per group.
        *args: Flat argument list.
        message: Optional message attached to every event.

    Returns:
        Whether every group passed.

    Raises:
        ConfigurationError: If the argument count does not match the arity.
    """
    if arity == 0 and not args:
        return True

    if arity <= 0 or not args or len(args) % arity:
        raise ConfigurationError(
            "The number of args doesn't match the arity",
            context=ErrorContext(element={'arity': arity, 'args': list(args)}),
        )

    results = [
        check(lambda group=args[index:index + arity]: predicate(*group), message,
              expected=args[index:index + arity])
        for index in range(0, len(args), arity)
    ]

    return all(results)


def _type_names(error_type: type[BaseException] | tuple[type[BaseException], ...]) -> str:
    """Return a readable name for an exception type or types."""
    if isinstance(error_type, tuple):
        return ' or '.join(item.__name__ for item in error_type)

    return error_type.__name__
