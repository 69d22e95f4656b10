"""Tests for explicit test registration."""

import pytest

from stepwise.errors import ConfigurationError
from stepwise.fixtures import FixtureHooks, default_fixture
from stepwise.registry import (
    TestNamespace,
    all_namespaces,
    find_namespace,
    namespace,
    resolve_namespaces,
)


@pytest.mark.parametrize('name', (
    pytest.param('', id='empty'),
    pytest.param('1app', id='digit'),
    pytest.param('app..core', id='double dot'),
    pytest.param('app/core', id='slash'),
))
def test_invalid_namespace_name(name: str) -> None:
    """Namespace names are dotted identifiers."""
    with pytest.raises(ConfigurationError, match=r'^Invalid namespace name'):
        TestNamespace(name)


def test_deftest_direct() -> None:
    """Bodies register under their own name and definition line."""
    ns = TestNamespace('registry.direct')

    def adds() -> None: ...

    assert ns.deftest(adds) is adds

    record = ns['adds']

    assert record.namespace == 'registry.direct'
    assert record.name == 'adds'
    assert record.line == adds.__code__.co_firstlineno
    assert record.body is adds
    assert record.qualname == str(record) == 'registry.direct/adds'


def test_deftest_decorator_options() -> None:
    """Name and line may be given explicitly."""
    ns = TestNamespace('registry.options')

    @ns.deftest(name='handles-empty-input', line=7)
    def body() -> None: ...

    assert 'handles-empty-input' in ns
    assert 'body' not in ns
    assert ns['handles-empty-input'].line == 7
    assert len(ns) == 1


def test_duplicate_test_name() -> None:
    """Test names are unique within a namespace."""
    ns = TestNamespace('registry.duplicate')
    ns.add_test(lambda: None, name='same')

    with pytest.raises(ConfigurationError, match=r"^Test 'same' is already defined") as error:
        ns.add_test(lambda: None, name='same')

    assert 'in namespace "registry.duplicate", test "same"' in str(error.value)


def test_invalid_test_name() -> None:
    """Bodies without a valid name are rejected."""
    ns = TestNamespace('registry.invalid')

    with pytest.raises(ConfigurationError, match=r"^Invalid test '<lambda>'"):
        ns.deftest(lambda: None)

    with pytest.raises(ConfigurationError, match=r"^Invalid test 'ok'"):
        ns.add_test(lambda: None, name='ok', line=-1)

    assert len(ns) == 0


def test_records_ordered_by_line() -> None:
    """Records sort by line and keep declaration order on ties."""
    ns = TestNamespace('registry.order')
    ns.add_test(lambda: None, name='late', line=5)
    ns.add_test(lambda: None, name='early', line=1)
    ns.add_test(lambda: None, name='tied', line=5)

    assert [record.name for record in ns.records()] == ['early', 'late', 'tied']


def test_use_fixtures() -> None:
    """Fixtures register per kind and replace earlier ones."""
    ns = TestNamespace('registry.fixtures')

    hooks = FixtureHooks(before=lambda: None)

    ns.use_fixtures('once', default_fixture)
    ns.use_fixtures('each', default_fixture, default_fixture)
    ns.use_fixtures('once')

    assert ns.once_fixtures == ()
    assert ns.each_fixtures == (default_fixture, default_fixture)

    ns.use_fixtures('each', hooks)

    assert ns.each_fixtures == (hooks,)


def test_use_fixtures_errors() -> None:
    """Unknown kinds and mixed styles are configuration errors."""
    ns = TestNamespace('registry.errors')

    with pytest.raises(ConfigurationError, match=r"must be 'once' or 'each'"):
        ns.use_fixtures('always', default_fixture)  # type: ignore[arg-type]

    with pytest.raises(ConfigurationError, match=r'may not be of mixed types'):
        ns.use_fixtures('each', default_fixture, FixtureHooks())

    ns.use_fixtures('once', FixtureHooks())

    with pytest.raises(ConfigurationError, match=r'must be of the same type'):
        ns.use_fixtures('each', default_fixture)

    assert ns.each_fixtures == ()


def test_namespace_registry() -> None:
    """Registered namespaces are looked up by name in registration order."""
    core = namespace('app.core')

    assert namespace('app.core') is core

    namespace('app.io')
    namespace('tools')

    assert find_namespace('app.core') is core
    assert [item.name for item in all_namespaces()] == ['app.core', 'app.io', 'tools']
    assert [item.name for item in all_namespaces(r'app\..+')] == ['app.core', 'app.io']
    assert [item.name for item in all_namespaces('app')] == []

    standalone = TestNamespace('standalone')

    assert resolve_namespaces(['tools', standalone, 'app.core']) == [
        find_namespace('tools'), standalone, core,
    ]

    with pytest.raises(ConfigurationError, match=r"^Namespace 'missing' does not exist$"):
        find_namespace('missing')
