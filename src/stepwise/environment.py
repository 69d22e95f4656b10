"""Run environment and the ambient current-environment pointer.

The run environment is the mutable, run-scoped state of the engine:
the testing-context stack, the stack of tests being run, the report
counters, and the fixtures registered per namespace.

Environments are immutable values; mutation is expressed by replacing
the current environment with an updated copy via `update_current_env`.
Exactly one environment is current at a time. Block-level operations
receive an explicit environment and install it themselves, so several
environments may coexist as long as only one run is in flight.
"""

from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from stepwise.errors import NoActiveEnvironment
from stepwise.events import ReportCounters
from stepwise.models import EngineSettings, SchemaModel
from stepwise.records import TestRecord  # noqa: TC001
from stepwise.reporters import Reporter

if TYPE_CHECKING:
    from stepwise.events import CounterName, ReportEvent

#: Path into the environment: attribute names and mapping keys.
type Path = Sequence[str]


class Environment(SchemaModel):
    """Immutable snapshot of run-scoped engine state."""

    testing_contexts: tuple[str, ...] = Field(
        default=(),
        title='Testing contexts',
        description='Labels pushed by `testing`, outermost first.',
    )

    testing_vars: tuple[TestRecord, ...] = Field(
        default=(),
        title='Tests being run',
        description='Tests currently executing, innermost last.',
    )

    report_counters: ReportCounters = Field(
        default_factory=ReportCounters,
        title='Report counters',
    )

    once_fixtures: dict[str, tuple[Any, ...]] = Field(
        default_factory=dict,
        title='Once fixtures',
        description='Fixtures wrapping a whole namespace, keyed by namespace.',
    )

    each_fixtures: dict[str, tuple[Any, ...]] = Field(
        default_factory=dict,
        title='Each fixtures',
        description='Fixtures wrapping every test, keyed by namespace.',
    )

    reporter: Reporter = Field(
        default_factory=Reporter,
        title='Reporter',
        description='Dispatcher receiving every report event.',
    )


_current: Environment | None = None


def empty_env(settings: EngineSettings | None = None, *,
              reporter: Reporter | None = None) -> Environment:
    """Create a fresh environment with zero counters and empty stacks.

    Args:
        settings: Engine settings. Resolved from the process environment
            when omitted.
        reporter: Reporter to use instead of one built from settings.

    Returns:
        New environment.

    Raises:
        ReporterError: If a reporter plugin fails to load in strict mode.
    """
    if reporter is None:
        if settings is None:
            settings = EngineSettings()
        reporter = Reporter(
            strict=settings.strict,
            load_plugins=settings.load_plugins,
        )

    return Environment(reporter=reporter)


def set_env(env: Environment) -> None:
    """Install an environment as the current one."""
    global _current  # noqa: PLW0603
    _current = env


def has_env() -> bool:
    """Return whether an environment is currently installed."""
    return _current is not None


def get_current_env() -> Environment:
    """Return the current environment.

    Raises:
        NoActiveEnvironment: If no environment is installed.
    """
    if _current is None:
        raise NoActiveEnvironment

    return _current


def clear_env() -> None:
    """Discard the current environment."""
    global _current  # noqa: PLW0603
    _current = None


def get_and_clear_env() -> Environment:
    """Return the current environment and discard it.

    Raises:
        NoActiveEnvironment: If no environment is installed.
    """
    env = get_current_env()
    clear_env()

    return env


def _field_name(model: BaseModel, key: str) -> str:
    """Resolve a path key naming a model field or one of its aliases."""
    for name, info in type(model).model_fields.items():
        if key in (name, info.alias):
            return name

    raise KeyError(f'{type(model).__name__} has no field {key!r}')


def update_in[T](value: T, path: Path, fn: Callable[..., Any], *args: Any) -> T:  # noqa: ANN401
    """Functionally replace the value at `path` with `fn(old, *args)`.

    Args:
        value: Root model or mapping.
        path: Attribute names (for models) or keys (for mappings).
        fn: Update function receiving the old value and extra arguments.
        *args: Extra arguments passed to `fn`.

    Returns:
        Updated copy of `value`; the original is left untouched.

    Raises:
        KeyError: If a path key names no model field.
        TypeError: If the path descends into an unsupported value.
    """
    if not path:
        return fn(value, *args)

    key, *rest = path

    if isinstance(value, BaseModel):
        name = _field_name(value, key)
        return value.model_copy(update={
            name: update_in(getattr(value, name), rest, fn, *args),
        })

    if isinstance(value, Mapping):
        return {  # type: ignore[return-value]
            **value,
            key: update_in(value.get(key), rest, fn, *args),
        }

    raise TypeError(f'Can not update {key!r} in {value!r}')


def update_current_env(path: Path, fn: Callable[..., Any], *args: Any) -> Environment:  # noqa: ANN401
    """Replace the value at `path` in the current environment.

    Args:
        path: Path into the environment.
        fn: Update function receiving the old value and extra arguments.
        *args: Extra arguments passed to `fn`.

    Returns:
        The new current environment.

    Raises:
        NoActiveEnvironment: If no environment is installed.
    """
    env = update_in(get_current_env(), path, fn, *args)
    set_env(env)

    return env


def push(stack: tuple[Any, ...], item: Any) -> tuple[Any, ...]:  # noqa: ANN401
    """Return the stack with `item` on top."""
    return (*stack, item)


def pop(stack: tuple[Any, ...]) -> tuple[Any, ...]:
    """Return the stack without its top item."""
    return stack[:-1]


def assoc(mapping: Mapping[str, Any] | None, key: str, value: Any) -> dict[str, Any]:  # noqa: ANN401
    """Return a copy of the mapping with `key` bound to `value`."""
    return {**(mapping or {}), key: value}


def inc_report_counter(name: 'CounterName') -> None:
    """Increment a report counter of the current environment.

    Raises:
        NoActiveEnvironment: If no environment is installed.
    """
    update_current_env(('report_counters',), ReportCounters.increment, name)


@contextmanager
def testing(label: str) -> Iterator[None]:
    """Push a testing context label for the duration of the block.

    The label is popped on every exit path, including exceptions.

    Raises:
        NoActiveEnvironment: If no environment is installed.
    """
    update_current_env(('testing_contexts',), push, label)
    try:
        yield
    finally:
        update_current_env(('testing_contexts',), pop)


def testing_contexts_str(env: Environment | None = None) -> str:
    """Return the active testing contexts as one label, outermost first."""
    if env is None:
        env = get_current_env()

    return ' '.join(env.testing_contexts)


def testing_vars_str(event: 'ReportEvent | None' = None,
                     env: Environment | None = None) -> str:
    """Return a label naming the test an event is attributed to.

    Uses the event's namespace, name, and line when present, otherwise
    the innermost test being run.
    """
    namespace = getattr(event, 'namespace', None)
    name = getattr(event, 'name', None)
    line = getattr(event, 'line', None)

    if name is None:
        if env is None:
            env = get_current_env()
        if not env.testing_vars:
            return ''
        record = env.testing_vars[-1]
        namespace, name, line = record.namespace, record.name, record.line

    label = f'{namespace}/{name}'
    if line is not None:
        label += f' (line {line})'

    return label


for _function in (testing, testing_contexts_str, testing_vars_str):
    # Keep pytest from collecting these when imported into test modules.
    _function.__test__ = False  # type: ignore[attr-defined]
