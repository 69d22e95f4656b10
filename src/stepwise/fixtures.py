"""Fixture composition.

Two fixture styles are supported and may not be mixed within a namespace:

- wrapper fixtures, callables taking an inner thunk and returning a thunk
  that calls it exactly once and returns its result;
- hook fixtures, `FixtureHooks` pairs of `before`/`after` actions that are
  spliced around the wrapped block and may complete asynchronously.

Wrapper fixtures pass an asynchronous test result through to the
scheduler, but any code they run after the inner thunk executes when the
test suspends, not when it completes. A continuation the fixture drops
or outlives still runs before the test ends. Hook fixtures are the style
to use when setup and teardown must bracket asynchronous tests.
"""

from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from functools import reduce, wraps
from typing import Any, Literal

from pydantic import Field

from stepwise.errors import ConfigurationError
from stepwise.models import SchemaModel

type Thunk = Callable[[], Any]
type Fixture = Callable[[Thunk], Thunk]
type FixtureStyle = Literal['sync', 'async']
type FixtureKind = Literal['once', 'each']

FIXTURE_KINDS: tuple[FixtureKind, ...] = ('once', 'each')


class FixtureHooks(SchemaModel):
    """Setup and teardown actions bracketing a block.

    Either hook may be omitted. Hooks are scheduler actions: they may
    return an `AsyncContinuation` to complete asynchronously.
    """

    before: Callable[[], Any] | None = Field(
        default=None,
        title='Setup action',
    )

    after: Callable[[], Any] | None = Field(
        default=None,
        title='Teardown action',
    )


def default_fixture(inner: Thunk) -> Thunk:
    """Identity fixture."""
    return inner


def compose_fixtures(outer: Fixture, inner: Fixture) -> Fixture:
    """Compose two wrapper fixtures, `outer` wrapping `inner`."""
    def composed(thunk: Thunk) -> Thunk:
        return outer(inner(thunk))

    return composed


def join_fixtures(fixtures: Sequence[Fixture]) -> Fixture:
    """Compose wrapper fixtures in registration order, first outermost."""
    return reduce(compose_fixtures, fixtures, default_fixture)


def fixture(setup: Callable[[], Iterator[Any]]) -> Fixture:
    """Build a wrapper fixture from a generator function.

    Code before the `yield` runs before the wrapped thunk and code after
    it runs afterwards. An exception raised by the thunk is thrown in at
    the `yield`, so teardown that must always run belongs in `finally`.

    Args:
        setup: Generator function yielding exactly once.

    Returns:
        Wrapper fixture.
    """
    manager = contextmanager(setup)

    @wraps(setup)
    def wrap(inner: Thunk) -> Thunk:
        def run() -> Any:  # noqa: ANN401
            with manager():
                return inner()

        return run

    return wrap


def fixtures_style(fixtures: Sequence[Any]) -> FixtureStyle | None:
    """Classify a fixture sequence.

    Args:
        fixtures: Registered fixtures of one kind.

    Returns:
        `'async'` for hook fixtures, `'sync'` for wrapper fixtures,
        or `None` when the sequence is empty.

    Raises:
        ConfigurationError: If styles are mixed or an item is neither.
    """
    if not fixtures:
        return None

    if all(isinstance(item, FixtureHooks) for item in fixtures):
        return 'async'

    if all(callable(item) and not isinstance(item, FixtureHooks) for item in fixtures):
        return 'sync'

    raise ConfigurationError('Fixtures may not be of mixed types')


def execution_strategy(once: Sequence[Any], each: Sequence[Any]) -> FixtureStyle:
    """Select how a namespace's tests are wrapped by its fixtures.

    Args:
        once: Fixtures applied around the whole namespace.
        each: Fixtures applied around every test.

    Returns:
        `'sync'` for wrapper fixtures, `'async'` for hook fixtures or
        when no fixtures are registered.

    Raises:
        ConfigurationError: If styles are mixed within or across kinds.
    """
    styles = {
        style
        for style in (fixtures_style(once), fixtures_style(each))
        if style is not None
    }

    if len(styles) > 1:
        raise ConfigurationError(
            'Fixtures specified as once and each must be of the same type',
        )

    return styles.pop() if styles else 'async'
