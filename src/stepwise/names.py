"""Name primitive types and validation rules.

This module defines base name patterns and strongly-typed aliases used to
validate namespace and test identifiers at registration time.
"""

from re import ASCII
from re import compile as regexp
from typing import Annotated

from pydantic import Field

#: Base pattern for all identifiers.
#: Identifiers must start with a letter or underscore and may contain
#: letters, digits, underscores, or dashes.
_NAME_PATTERN = r'[a-zA-Z_][\w-]*'

#: Compiled pattern for namespace names ("app", "app.core", "app.core-test").
NAMESPACE_PATTERN = regexp(
    rf'^{_NAME_PATTERN}(\.{_NAME_PATTERN})*$',
    flags=ASCII,
)

#: Compiled pattern for test names.
TEST_NAME_PATTERN = regexp(
    rf'^{_NAME_PATTERN}$',
    flags=ASCII,
)


Namespace = Annotated[
    str, Field(
        pattern=NAMESPACE_PATTERN.pattern,
        title='Namespace',
        description=(
            'Dotted name of a group of tests. Namespaces are run in the '
            'order supplied by the caller and carry their own fixtures.'
        ),
        examples=[
            'app',
            'app.core',
        ],
    ),
]

TestName = Annotated[
    str, Field(
        pattern=TEST_NAME_PATTERN.pattern,
        title='Test name',
        description='Name of a test, unique within its namespace.',
        examples=[
            'test_addition',
            'handles-empty-input',
        ],
    ),
]
