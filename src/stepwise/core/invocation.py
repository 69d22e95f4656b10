"""Test invocation.

Wraps one test record into the actions that run it: the first action
pushes the test, counts it, and invokes its fixture-wrapped body; the
second reports the end of the test and pops it. Continuations of the
fixture and of the body are spliced in between the two, so the end of
the test is reported only once they have called back.
"""

from functools import partial
from typing import TYPE_CHECKING

from stepwise.environment import (
    clear_env,
    empty_env,
    has_env,
    inc_report_counter,
    pop,
    push,
    set_env,
    update_current_env,
)
from stepwise.events import VarEvent
from stepwise.fixtures import default_fixture
from stepwise.reporting import do_report

from .block import Block
from .scheduler import call_with_fixture, run_block

if TYPE_CHECKING:
    from collections.abc import Callable

if TYPE_CHECKING:
    from stepwise.fixtures import Fixture
    from stepwise.records import TestRecord

    from .scheduler import BlockRunner


def test_var_block(record: 'TestRecord', fixture: 'Fixture' = default_fixture) -> Block:
    """Build the block running a single test.

    The `test` counter is incremented before the fixture runs, so a
    fixture that never calls its inner thunk still counts the test as
    attempted while the body and its assertions are skipped.

    Args:
        record: Test to run.
        fixture: Wrapper fixture applied around the body.

    Returns:
        Two-action block; the first splices in the continuations of
        the fixture and the body, if any.
    """
    def begin() -> Block:
        update_current_env(('testing_vars',), push, record)
        inc_report_counter('test')
        do_report(VarEvent(
            type='begin-test-var',
            namespace=record.namespace,
            name=record.name,
            line=record.line,
        ))

        return call_with_fixture(fixture, record.body)

    def end() -> None:
        do_report(VarEvent(
            type='end-test-var',
            namespace=record.namespace,
            name=record.name,
            line=record.line,
        ))
        update_current_env(('testing_vars',), pop)

    return Block((begin, end))


def with_env_block(factory: 'Callable[[], Block]') -> Block:
    """Build a block that runs in an environment.

    When an environment is installed, the block is built right away.
    Otherwise a fresh environment is installed first, the block is built
    and spliced in after it, and the environment is discarded at the end.

    Args:
        factory: Builds the block once an environment is installed.
    """
    if has_env():
        return factory()

    env = empty_env()

    def install() -> Block:
        set_env(env)
        return factory()

    return Block((install, clear_env))


def test_var(record: 'TestRecord') -> 'BlockRunner':
    """Run a single test without namespace fixtures.

    Args:
        record: Test to run.

    Returns:
        The started runner.
    """
    return run_block(with_env_block(partial(test_var_block, record)))


# Keep pytest from collecting these when imported into test modules.
test_var_block.__test__ = False  # type: ignore[attr-defined]
test_var.__test__ = False  # type: ignore[attr-defined]
