"""Tests for error formatting."""

from os import linesep

from stepwise.errors import (
    FORMAT_NAMESPACE,
    FORMAT_REPLACER,
    ConfigurationError,
    ErrorContext,
    ErrorFormatter,
    NoActiveEnvironment,
    ReporterError,
)


def test_error_without_context() -> None:
    """Errors without context render the bare message."""
    assert str(ConfigurationError('Broken suite')) == 'Broken suite'
    assert str(NoActiveEnvironment()) == 'No active run environment'


def test_error_location() -> None:
    """Location lists namespace, test, line, and testing contexts."""
    error = ConfigurationError('Broken test', context=ErrorContext(
        namespace='app.core',
        test_name='adds',
        line_num=12,
        testing_contexts=['numbers', 'addition'],
    ))

    assert str(error).splitlines() == [
        'Broken test',
        '    in namespace "app.core", test "adds", line 12',
        '    testing "numbers addition"',
    ]


def test_error_snippet() -> None:
    """Elements are rendered as YAML with runtime objects replaced."""
    error = ConfigurationError('Bad arguments', context=ErrorContext(
        element={'arity': 2, 'args': [1, object()]},
    ))

    lines = str(error).splitlines()

    assert lines[0] == 'Bad arguments'
    assert lines[1] == f'    in namespace "{FORMAT_NAMESPACE}"'
    assert lines[2].strip() == '...'
    assert lines[3] == '        arity: 2'
    assert lines[4].strip() == 'args:'
    assert lines[5].strip() == '- 1'
    assert lines[6].strip() == f'- {FORMAT_REPLACER}'
    assert all(line.startswith(' ' * 8) for line in lines[2:])


def test_formatter_indent() -> None:
    """Indentation accepts spaces count or a prefix."""
    context = ErrorContext(namespace='app')

    assert ErrorFormatter.get_location_string(context, indent=2) == f'  in namespace "app"{linesep}'
    assert ErrorFormatter.get_location_string(context, indent='> ') == f'> in namespace "app"{linesep}'
    assert ErrorFormatter.get_snippet_string(context) == ''


def test_reporter_error_entrypoint() -> None:
    """Reporter errors keep their entry point."""
    error = ReporterError('Broken plugin')

    assert error.entrypoint is None
    assert error.message == 'Broken plugin'
