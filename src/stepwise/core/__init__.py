"""Cooperative scheduler running blocks of test actions.

Blocks are ordered sequences of actions. The scheduler runs them one at
a time, suspends when an action returns an asynchronous continuation,
and resumes when the continuation calls back. Tests are wrapped into
blocks by the invocation layer and grouped into namespace runs by the
runner layer.
"""

from .aio import async_test, from_awaitable
from .block import Action, AsyncContinuation, Block, Done, asynchronous, block, is_async
from .invocation import test_var, test_var_block
from .runner import (
    run_all_tests,
    run_tests,
    run_tests_block,
    test_all_vars,
    test_all_vars_block,
    test_ns,
    test_ns_block,
    test_vars,
    test_vars_block,
)
from .scheduler import BlockRunner, RunnerState, call_with_fixture, run_block, run_nested

__all__ = (
    'Action',
    'AsyncContinuation',
    'Block',
    'BlockRunner',
    'Done',
    'RunnerState',
    'async_test',
    'asynchronous',
    'block',
    'call_with_fixture',
    'from_awaitable',
    'is_async',
    'run_all_tests',
    'run_block',
    'run_nested',
    'run_tests',
    'run_tests_block',
    'test_all_vars',
    'test_all_vars_block',
    'test_ns',
    'test_ns_block',
    'test_var',
    'test_var_block',
    'test_vars',
    'test_vars_block',
)
