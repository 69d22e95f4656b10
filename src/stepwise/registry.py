"""Explicit test registration.

Tests are registered on a `TestNamespace` at definition time instead of
being discovered by introspection. A namespace records each test with
its source line, its once and each fixtures, and an optional hook that
replaces the per-test enumeration when the namespace is run.

Namespaces created through `namespace()` are kept in a module registry
so that `run_all_tests` can select them by name.
"""

from collections.abc import Callable
from inspect import unwrap
from operator import attrgetter
from re import fullmatch
from typing import TYPE_CHECKING, Any, overload

from pydantic import ValidationError

from stepwise.errors import ConfigurationError, ErrorContext
from stepwise.fixtures import FIXTURE_KINDS, execution_strategy, fixtures_style
from stepwise.names import NAMESPACE_PATTERN
from stepwise.records import TestRecord

if TYPE_CHECKING:
    from collections.abc import Iterable

if TYPE_CHECKING:
    from stepwise.fixtures import FixtureKind
    from stepwise.records import TestBody

#: Hook replacing the per-test enumeration of a namespace. It may return
#: a `Block` to splice or an `AsyncContinuation`.
type NamespaceHook = Callable[[], Any]


class TestNamespace:
    """Named group of tests with their fixtures.

    Attributes:
        name: Dotted namespace name.
        once_fixtures: Fixtures wrapping the whole namespace.
        each_fixtures: Fixtures wrapping every test.
        hook: Optional override of the per-test enumeration.
    """

    __test__ = False

    def __init__(self, name: str) -> None:
        """Initialize an empty namespace.

        Args:
            name: Dotted namespace name.

        Raises:
            ConfigurationError: If the name is not a valid namespace name.
        """
        if not NAMESPACE_PATTERN.match(name):
            raise ConfigurationError(f'Invalid namespace name {name!r}')

        self.name = name
        self.once_fixtures: tuple[Any, ...] = ()
        self.each_fixtures: tuple[Any, ...] = ()
        self.hook: NamespaceHook | None = None

        self._tests: dict[str, TestRecord] = {}

    def __repr__(self) -> str:
        """Debug representation."""
        return f'{type(self).__name__}({self.name!r})'

    @overload
    def deftest(self, body: 'TestBody', /) -> 'TestBody':
        ...  # pragma: no cover

    @overload
    def deftest(self, *, name: str | None = None,
                line: int | None = None) -> Callable[['TestBody'], 'TestBody']:
        ...  # pragma: no cover

    def deftest(self, body: 'TestBody | None' = None, /, *,
                name: str | None = None, line: int | None = None) -> Any:  # noqa: ANN401
        """Register a test body, directly or as a decorator.

        The body is returned unchanged.

        Args:
            body: Zero-argument test body.
            name: Test name. Defaults to the body's `__name__`.
            line: Source line used for ordering. Defaults to the line
                the body is defined on.

        Raises:
            ConfigurationError: If the name is invalid or already taken.
        """
        def register(body: 'TestBody') -> 'TestBody':
            self.add_test(
                body,
                name=name or getattr(body, '__name__', ''),
                line=line if line is not None else _source_line(body),
            )
            return body

        if body is None:
            return register

        return register(body)

    def add_test(self, body: 'TestBody', *, name: str, line: int = 0) -> TestRecord:
        """Register a test record.

        Args:
            body: Zero-argument test body.
            name: Test name, unique within the namespace.
            line: Source line used for ordering.

        Returns:
            The registered record.

        Raises:
            ConfigurationError: If the name is invalid or already taken.
        """
        error_context = ErrorContext(namespace=self.name, test_name=name, line_num=line)

        if name in self._tests:
            raise ConfigurationError(
                f'Test {name!r} is already defined',
                context=error_context,
            )

        try:
            record = TestRecord(namespace=self.name, name=name, line=line, body=body)

        except ValidationError as base:
            raise ConfigurationError(
                f'Invalid test {name!r}',
                context=ErrorContext({
                    **error_context,
                    'error': base,
                    'element': {'name': name, 'line': line},
                }),
            ) from base

        self._tests[name] = record

        return record

    def use_fixtures(self, kind: 'FixtureKind', *fixtures: Any) -> None:  # noqa: ANN401
        """Register the once or each fixtures of the namespace.

        A later call for the same kind replaces the earlier fixtures.

        Args:
            kind: `'once'` or `'each'`.
            *fixtures: Wrapper fixtures or `FixtureHooks`, outermost first.

        Raises:
            ConfigurationError: If the kind is unknown or fixture styles
                are mixed.
        """
        if kind not in FIXTURE_KINDS:
            raise ConfigurationError(
                "First argument to use_fixtures must be 'once' or 'each'",
                context=ErrorContext(namespace=self.name, element={'kind': kind}),
            )

        fixtures_style(fixtures)

        if kind == 'once':
            execution_strategy(fixtures, self.each_fixtures)
            self.once_fixtures = fixtures
        else:
            execution_strategy(self.once_fixtures, fixtures)
            self.each_fixtures = fixtures

    def set_hook(self, hook: NamespaceHook) -> NamespaceHook:
        """Replace the per-test enumeration with a hook; usable as a decorator."""
        self.hook = hook

        return hook

    def records(self) -> list[TestRecord]:
        """Return the tests ordered by source line, then declaration order."""
        return sorted(self._tests.values(), key=attrgetter('line'))

    def __getitem__(self, name: str) -> TestRecord:
        """Return a registered test by name."""
        return self._tests[name]

    def __contains__(self, name: object) -> bool:
        """Return whether a test is registered under `name`."""
        return name in self._tests

    def __len__(self) -> int:
        """Return the number of registered tests."""
        return len(self._tests)


def _source_line(body: 'TestBody') -> int:
    """Return the first source line of a body, or 0 when unknown."""
    code = getattr(unwrap(body), '__code__', None)

    return code.co_firstlineno if code is not None else 0


_namespaces: dict[str, TestNamespace] = {}


def namespace(name: str) -> TestNamespace:
    """Return the registered namespace `name`, creating it if needed.

    Raises:
        ConfigurationError: If the name is not a valid namespace name.
    """
    if name not in _namespaces:
        _namespaces[name] = TestNamespace(name)

    return _namespaces[name]


def find_namespace(name: str) -> TestNamespace:
    """Return a registered namespace.

    Raises:
        ConfigurationError: If no namespace is registered under `name`.
    """
    if name not in _namespaces:
        raise ConfigurationError(f'Namespace {name!r} does not exist')

    return _namespaces[name]


def all_namespaces(pattern: str | None = None) -> list[TestNamespace]:
    """Return registered namespaces in registration order.

    Args:
        pattern: Optional regular expression the whole name must match.
    """
    return [
        item
        for name, item in _namespaces.items()
        if pattern is None or fullmatch(pattern, name)
    ]


def resolve_namespaces(namespaces: 'Iterable[TestNamespace | str]') -> list[TestNamespace]:
    """Resolve namespace names through the registry, keeping order.

    Raises:
        ConfigurationError: If a name is not registered.
    """
    return [
        item if isinstance(item, TestNamespace) else find_namespace(item)
        for item in namespaces
    ]


def clear_namespaces() -> None:
    """Forget all registered namespaces."""
    _namespaces.clear()
