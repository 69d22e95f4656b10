"""Namespace and run aggregation.

Builds the blocks that run whole namespaces and multi-namespace runs:

- each namespace is bracketed by `begin-test-ns` and `end-test-ns`;
- its tests run in source line order, wrapped by its fixtures;
- after each namespace its counters are folded into the run summary;
- the run ends with a `summary` event, an `end-run-tests` event, and
  the current environment cleared.
"""

from functools import partial
from itertools import chain
from logging import getLogger
from typing import TYPE_CHECKING

from stepwise.environment import (
    assoc,
    clear_env,
    empty_env,
    get_and_clear_env,
    get_current_env,
    has_env,
    set_env,
    update_current_env,
)
from stepwise.events import NamespaceEvent, ReportCounters, SummaryEvent, VarsEvent
from stepwise.fixtures import execution_strategy, join_fixtures
from stepwise.registry import all_namespaces, resolve_namespaces
from stepwise.reporting import do_report, report

from .block import Block, block
from .invocation import test_var_block, with_env_block
from .scheduler import call_with_fixture, run_block, run_nested

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

if TYPE_CHECKING:
    from stepwise.environment import Environment
    from stepwise.fixtures import FixtureHooks
    from stepwise.records import TestRecord
    from stepwise.registry import TestNamespace

    from .block import Action, AsyncContinuation
    from .scheduler import BlockRunner

logger = getLogger(__name__)


def wrap_hook_fixtures(hooks: 'Sequence[FixtureHooks]', actions: Block) -> Block:
    """Bracket a block with hook fixtures.

    Setup hooks run in registration order, teardown hooks in reverse.
    """
    return (
        Block(item.before for item in hooks if item.before is not None)
        + actions
        + Block(item.after for item in reversed(hooks) if item.after is not None)
    )


def _namespace_vars_block(namespace: str, records: 'Sequence[TestRecord]') -> Block:
    """Build the fixture-wrapped block of one namespace's tests.

    Fixtures are looked up in the current environment when the block is
    built, which happens when its enclosing action runs.
    """
    env = get_current_env()

    once = env.once_fixtures.get(namespace, ())
    each = env.each_fixtures.get(namespace, ())

    if execution_strategy(once, each) == 'async':
        return wrap_hook_fixtures(once, Block(chain.from_iterable(
            wrap_hook_fixtures(each, test_var_block(record))
            for record in records
        )))

    each_fixture = join_fixtures(each)

    def run_namespace() -> 'AsyncContinuation | None':
        return run_nested(chain.from_iterable(
            test_var_block(record, each_fixture)
            for record in records
        ))

    def wrap_namespace() -> Block:
        return call_with_fixture(join_fixtures(once), run_namespace)

    return Block((wrap_namespace,))


def test_vars_block(records: 'Iterable[TestRecord]') -> Block:
    """Build the block running tests grouped by namespace.

    Groups keep the order in which their namespace first appears; each
    group is wrapped by its namespace's fixtures.
    """
    groups: dict[str, list[TestRecord]] = {}
    for record in records:
        groups.setdefault(record.namespace, []).append(record)

    return Block(
        partial(_namespace_vars_block, namespace, group)
        for namespace, group in groups.items()
    )


def test_vars(records: 'Sequence[TestRecord]') -> 'BlockRunner':
    """Run tests, then report `end-test-vars`.

    Tests are wrapped by the fixtures registered for their namespaces in
    the current environment. When no environment is installed, the tests
    run in a fresh one without fixtures.
    """
    def finish() -> None:
        report(VarsEvent(names=tuple(record.qualname for record in records)))

    return run_block(with_env_block(lambda: test_vars_block(records) + Block((finish,))))


def test_all_vars_block(namespace: 'TestNamespace') -> Block:
    """Build the block running every test of a namespace.

    The namespace's fixtures are registered into the current
    environment first. When no environment is installed at build time,
    one is created for the block and discarded after it.
    """
    owns_env = not has_env()

    def register() -> None:
        if owns_env:
            set_env(empty_env())
        if namespace.once_fixtures:
            update_current_env(('once_fixtures',), assoc, namespace.name, namespace.once_fixtures)
        if namespace.each_fixtures:
            update_current_env(('each_fixtures',), assoc, namespace.name, namespace.each_fixtures)

    def release() -> None:
        if owns_env:
            clear_env()

    return Block((register,)) + test_vars_block(namespace.records()) + Block((release,))


def test_all_vars(namespace: 'TestNamespace | str') -> 'BlockRunner':
    """Run every test of a namespace, then report `end-test-all-vars`."""
    [namespace] = resolve_namespaces([namespace])

    def finish() -> None:
        report(NamespaceEvent(type='end-test-all-vars', namespace=namespace.name))

    return run_block(with_env_block(lambda: test_all_vars_block(namespace) + Block((finish,))))


def test_ns_block(env: 'Environment', namespace: 'TestNamespace') -> Block:
    """Build the block running a namespace in an environment.

    The environment is installed first, so the namespace's counters start
    from those of `env`. A namespace hook, when set, replaces the per-test
    enumeration; a sequence of actions it returns is run as a block.
    The environment is left installed afterwards.
    """
    def begin() -> 'Block | AsyncContinuation | None':
        set_env(env)
        do_report(NamespaceEvent(type='begin-test-ns', namespace=namespace.name))

        if namespace.hook is not None:
            logger.debug('running hook of namespace %r', namespace.name)
            result = namespace.hook()
            if isinstance(result, list | tuple):
                return block(result)
            return result

        return test_all_vars_block(namespace)

    def end() -> None:
        do_report(NamespaceEvent(type='end-test-ns', namespace=namespace.name))

    return Block((begin, end))


def test_ns(namespace: 'TestNamespace | str',
            env: 'Environment | None' = None) -> 'BlockRunner':
    """Run a namespace and clear the environment afterwards."""
    [namespace] = resolve_namespaces([namespace])

    if env is None:
        env = empty_env()

    return run_block(test_ns_block(env, namespace) + Block((clear_env,)))


def run_tests_block(env: 'Environment', *namespaces: 'TestNamespace | str') -> Block:
    """Build the block running namespaces in order and summarizing them.

    After each namespace its counters are added to the run summary. The
    run then reports the summary, reports `end-run-tests` carrying the
    same counters, and clears the current environment.

    Raises:
        ConfigurationError: If a namespace name is not registered.
    """
    summary = ReportCounters()

    def merge() -> None:
        nonlocal summary
        summary += get_and_clear_env().report_counters

    def finish() -> None:
        set_env(env)
        do_report(SummaryEvent.from_counters(summary))
        report(SummaryEvent.from_counters(summary, 'end-run-tests'))
        clear_env()

    actions: list[Action] = []
    for namespace in resolve_namespaces(namespaces):
        actions.extend(test_ns_block(env, namespace))
        actions.append(merge)
    actions.append(finish)

    return Block(actions)


def run_tests(*namespaces: 'TestNamespace | str',
              env: 'Environment | None' = None,
              on_finish: 'Callable[[], object] | None' = None) -> 'BlockRunner':
    """Run namespaces in the given order and report a run summary.

    Does not return the summary because the run may complete
    asynchronously; handle `end-run-tests` or pass `on_finish` to
    observe completion.

    Args:
        *namespaces: Namespaces or registered namespace names.
        env: Environment to run in. A fresh one is created when omitted.
        on_finish: Callback invoked once the run completes.

    Returns:
        The started runner.

    Raises:
        ConfigurationError: If a namespace name is not registered.
    """
    if env is None:
        env = empty_env()

    return run_block(run_tests_block(env, *namespaces), on_finish=on_finish)


def run_all_tests(pattern: str | None = None,
                  env: 'Environment | None' = None,
                  on_finish: 'Callable[[], object] | None' = None) -> 'BlockRunner':
    """Run all registered namespaces whose whole name matches `pattern`."""
    return run_tests(*all_namespaces(pattern), env=env, on_finish=on_finish)


for _function in (test_vars_block, test_vars, test_all_vars_block,
                  test_all_vars, test_ns_block, test_ns):
    # Keep pytest from collecting these when imported into test modules.
    _function.__test__ = False  # type: ignore[attr-defined]
