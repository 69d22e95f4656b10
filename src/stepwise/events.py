"""Report event and counter models.

Report events are immutable records consumed by reporters. Every event
carries a `type` discriminator; the remaining fields depend on the type.
The order in which events are emitted is part of the engine contract,
the events themselves are transient.
"""

from typing import Annotated, Any, Literal

from pydantic import Field, NonNegativeInt

from stepwise.models import SchemaModel

type CounterName = Literal['test', 'pass', 'fail', 'error']

#: Event types counted by the default reporter.
COUNTED_TYPES: frozenset[CounterName] = frozenset({'pass', 'fail', 'error'})

#: Counter names mapped to model field names.
COUNTER_FIELDS: dict[CounterName, str] = {
    'test': 'test',
    'pass': 'pass_',
    'fail': 'fail',
    'error': 'error',
}


class ReportCounters(SchemaModel):
    """Per-run or per-namespace outcome counters.

    Counters only grow. They are merged across namespaces by plain
    addition, which makes the merge order-independent.
    """

    test: NonNegativeInt = Field(
        default=0,
        title='Tests',
        description='Number of tests attempted.',
    )

    pass_: NonNegativeInt = Field(
        default=0,
        alias='pass',
        title='Passed assertions',
    )

    fail: NonNegativeInt = Field(
        default=0,
        title='Failed assertions',
    )

    error: NonNegativeInt = Field(
        default=0,
        title='Errors',
        description='Exceptions raised outside of assertions.',
    )

    def get(self, name: CounterName) -> int:
        """Return a counter value by its report name."""
        return getattr(self, COUNTER_FIELDS[name])

    def increment(self, name: CounterName, amount: int = 1) -> 'ReportCounters':
        """Return a copy with one counter increased.

        Args:
            name: Counter to increase.
            amount: Non-negative increment.

        Returns:
            Updated counters.

        Raises:
            ValueError: If the amount is negative.
        """
        if amount < 0:
            raise ValueError(f'Counters can not decrease, got {amount!r}')

        field = COUNTER_FIELDS[name]

        return self.model_copy(update={field: getattr(self, field) + amount})

    def counters(self) -> 'ReportCounters':
        """Return the plain counters of this value."""
        return ReportCounters.model_validate({
            field: getattr(self, field)
            for field in COUNTER_FIELDS.values()
        })

    def __add__(self, other: 'ReportCounters') -> 'ReportCounters':
        """Merge two counter sets additively."""
        return ReportCounters.model_validate({
            field: getattr(self, field) + getattr(other, field)
            for field in COUNTER_FIELDS.values()
        })


class ReportEvent(SchemaModel):
    """Base report event.

    Custom reporters may emit their own subclasses with new `type` values.
    """

    type: str = Field(
        title='Event type',
        description='Discriminator selecting the report handler.',
    )


class NamespaceEvent(ReportEvent):
    """Namespace lifecycle milestone."""

    type: Literal['begin-test-ns', 'end-test-ns', 'end-test-all-vars']
    namespace: str


class VarEvent(ReportEvent):
    """Single test lifecycle milestone."""

    type: Literal['begin-test-var', 'end-test-var']
    namespace: str
    name: str
    line: int | None = None


class VarsEvent(ReportEvent):
    """Emitted after running an explicit list of tests."""

    type: Literal['end-test-vars'] = 'end-test-vars'
    names: tuple[str, ...] = ()


class AssertionEvent(ReportEvent):
    """Outcome of a single assertion or an uncaught exception."""

    type: Literal['pass', 'fail', 'error']

    message: str | None = None
    expected: Any = None
    actual: Any = None

    namespace: str | None = None
    name: str | None = None
    line: int | None = None

    testing_contexts: tuple[str, ...] = Field(
        default=(),
        description='Active testing contexts, outermost first.',
    )


class SummaryEvent(ReportCounters, ReportEvent):
    """Run summary and the terminal end-of-run event."""

    type: Literal['summary', 'end-run-tests'] = 'summary'

    @classmethod
    def from_counters(cls, counters: ReportCounters,
                      type_: Literal['summary', 'end-run-tests'] = 'summary') -> 'SummaryEvent':
        """Build a summary event from merged counters."""
        return cls.model_validate({
            **counters.counters().model_dump(by_alias=True),
            'type': type_,
        })


#: Union of all builtin events, discriminated by `type`.
AnyEvent = Annotated[
    NamespaceEvent | VarEvent | VarsEvent | AssertionEvent | SummaryEvent,
    Field(discriminator='type'),
]


def successful(summary: ReportCounters) -> bool:
    """Return whether a summary has no failures and no errors."""
    return summary.fail == 0 and summary.error == 0
