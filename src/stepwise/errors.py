"""Core exception hierarchy.

This module defines base error and warning types used across the engine
to report misconfigured suites, misuse of the ambient run environment,
and reporter registry issues in a structured and extensible way.

Per-test failures are never represented by these types: they are caught
by the scheduler and turned into report events.
"""

from os import linesep
from typing import TYPE_CHECKING, Any, TypedDict

from yaml import dump

if TYPE_CHECKING:
    from importlib.metadata import EntryPoint

FORMAT_REPLACER = '<runtime object>'
FORMAT_NAMESPACE = '<unknown namespace>'
FORMAT_INDENT = 4

SNIPPET_ELLIPSIS = f' ...{linesep}'
SNIPPET_INDENT = 2

SCALARS = (str, bytes, int, float, bool)
MAPPINGS = (dict,)
SEQUENCES = (list, tuple, set, frozenset)


class ErrorContext(TypedDict, total=False):
    """Container describing contextual information for error formatting.

    All fields are optional; the formatter adapts output based on
    provided values.
    """

    #: Namespace being built or run when the error occurred.
    namespace: str | None
    #: Name of the test being built or run.
    test_name: str | None
    #: Source line of the test.
    line_num: int | None

    #: Active testing contexts, outermost first.
    testing_contexts: list[str] | None

    #: Underlying exception that triggered formatting.
    error: Exception | None
    #: Element associated with the error (arguments, registration data).
    element: Any


class ErrorFormatter:
    """Utility class for formatting engine errors.

    Produces human-readable error messages with optional location
    information and a YAML snippet describing the failing element.
    """

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Format an error message using contextual information.

        Args:
            message: Base human-readable error message.
            context: Optional error context with location and data.

        Returns:
            A fully formatted error message suitable for display.
        """
        if not context:
            return message

        message += linesep
        message += cls.get_location_string(context, indent=FORMAT_INDENT)
        message += cls.get_snippet_string(context, indent=FORMAT_INDENT * 2)

        return message

    @classmethod
    def get_location_string(cls, context: ErrorContext, *,
                            indent: str | int | None = None) -> str:
        """Format namespace, test, and testing context information.

        Args:
            context: Error context containing location metadata.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted location string.
        """
        indent = cls._ensure_indent(indent)

        namespace = context.get('namespace') or FORMAT_NAMESPACE

        message = f'{indent}in namespace "{namespace}"'
        if test_name := context.get('test_name'):
            message += f', test "{test_name}"'
            if (line_num := context.get('line_num')) is not None:
                message += f', line {line_num}'
        message += linesep

        if testing_contexts := context.get('testing_contexts'):
            message += f'{indent}testing "{' '.join(testing_contexts)}"'
            message += linesep

        return message

    @classmethod
    def get_snippet_string(cls, context: ErrorContext, *,
                           indent: str | int | None = None) -> str:
        """Generate a formatted YAML snippet of the failing element.

        Args:
            context: Error context containing element data.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted multi-line snippet string, or an empty string
            if no element is available.
        """
        indent = cls._ensure_indent(indent)

        if (element := context.get('element')) is None:
            return ''

        snippet = f'{indent}{SNIPPET_ELLIPSIS}'
        snippet += cls._make_yaml(element, indent)
        snippet += linesep

        return snippet

    @classmethod
    def _filter_unsafe(cls, value: Any) -> Any:  # noqa: ANN401
        """Recursively replace non-serializable values with a placeholder.

        Args:
            value: Arbitrary value to sanitize.

        Returns:
            A YAML-safe representation of the value.
        """
        if value is None or isinstance(value, SCALARS):
            return value

        if isinstance(value, MAPPINGS):
            return {
                str(key): cls._filter_unsafe(item)
                for key, item in value.items()
            }

        if isinstance(value, SEQUENCES):
            return [cls._filter_unsafe(item) for item in value]

        return FORMAT_REPLACER

    @classmethod
    def _make_yaml(cls, value: Any, indent: str = '') -> str:  # noqa: ANN401
        """Serialize a sanitized value to an indented YAML string."""
        data = dump(
            cls._filter_unsafe(value),
            indent=SNIPPET_INDENT,
            sort_keys=False,
        )

        return cls._make_indent(data, indent)

    @staticmethod
    def _make_indent(value: str, indent: str) -> str:
        """Apply indentation to a multi-line string, dropping blank lines."""
        if not indent:
            return value

        return linesep.join(
            f'{indent}{line}'
            for line in value.splitlines()
            if line.strip()
        )

    @staticmethod
    def _ensure_indent(indent: str | int | None = None) -> str:
        """Normalize indentation input to a string prefix."""
        if isinstance(indent, int) and indent > 0:
            return ' ' * indent

        if isinstance(indent, str):
            return indent

        return ''


class ReporterWarning(UserWarning):
    """Warning emitted for non-fatal reporter registry issues.

    Used when a handler shadows an existing one or a reporter plugin
    cannot be loaded while running in relaxed mode.
    """


class SchedulerWarning(UserWarning):
    """Warning emitted when an asynchronous test misuses its callback.

    The only such misuse the scheduler detects is calling the completion
    callback more than once. Extra calls are reported as `error` events
    while an environment is installed; this warning covers calls made
    after the run has released its environment.
    """


class EngineError(Exception, ErrorFormatter):
    """Base exception for all stepwise errors.

    All custom exceptions raised by the library inherit from this class
    to allow unified error handling by callers.
    """

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize an error.

        Args:
            message: Human-readable error description.
            context: Error context containing optional location data.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return self.format(self.message, self.context)


class ConfigurationError(EngineError):
    """Error raised while building a test suite.

    Raised for unknown fixture kinds, mixed fixture styles, malformed
    templated assertions, and invalid registrations. It aborts building
    the suite and never becomes a report event.
    """


class NoActiveEnvironment(EngineError):
    """Error raised when the ambient run environment is used unset.

    This indicates that the scheduler was not initialized correctly and
    is treated as a programming error rather than a test failure.
    """

    def __init__(self, message: str = 'No active run environment') -> None:
        """Initialize the error with a default message."""
        super().__init__(message)


class ReporterError(EngineError):
    """Error raised for reporter registry issues in strict mode."""

    def __init__(self, message: str, *,
                 entrypoint: 'EntryPoint | None' = None) -> None:
        """Initialize a reporter error.

        Args:
            message: Human-readable error description.
            entrypoint: Optional plugin entry point associated with the error.
        """
        self.entrypoint = entrypoint

        super().__init__(message)
