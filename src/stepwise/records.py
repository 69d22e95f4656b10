"""Test record model.

A test record is the engine's view of a single registered test: the
namespace it belongs to, its name, the source line used for ordering,
and the body to invoke.
"""

from collections.abc import Callable
from typing import Any, ClassVar

from pydantic import Field, NonNegativeInt

from stepwise.models import SchemaModel
from stepwise.names import Namespace, TestName  # noqa: TC001

#: A zero-argument test body. Returns `None` when done or an
#: `AsyncContinuation` when the test completes asynchronously.
type TestBody = Callable[[], Any]


class TestRecord(SchemaModel):
    """Registered test, ordered by source line within its namespace."""

    __test__: ClassVar[bool] = False

    namespace: Namespace
    name: TestName

    line: NonNegativeInt = Field(
        default=0,
        title='Source line',
        description='Position used to order tests within a namespace.',
    )

    body: TestBody = Field(
        title='Test body',
        description='Callable invoked once per run.',
        exclude=True,
    )

    @property
    def qualname(self) -> str:
        """Namespace-qualified test name."""
        return f'{self.namespace}/{self.name}'

    def __str__(self) -> str:
        """String representation."""
        return self.qualname
