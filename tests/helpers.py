"""Shared helpers for engine tests."""

from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

if TYPE_CHECKING:
    from stepwise.events import ReportEvent

#: Events bracketing every single test, filtered out by `outcomes`.
VAR_EVENTS = frozenset({'begin-test-var', 'end-test-var'})


class CallbackQueue:
    """Minimal stand-in for an external event loop.

    Callbacks scheduled with `call_soon` run only when `run` is called,
    in scheduling order, including callbacks scheduled while running.
    """

    def __init__(self) -> None:
        self.callbacks: deque[Callable[[], object]] = deque()

    def call_soon(self, callback: 'Callable[[], object]') -> None:
        self.callbacks.append(callback)

    def run(self) -> int:
        count = 0
        while self.callbacks:
            self.callbacks.popleft()()
            count += 1
        return count


def event_types(events: 'list[ReportEvent]') -> list[str]:
    """Return the event types, in emission order."""
    return [event.type for event in events]


def outcomes(events: 'list[ReportEvent]') -> list[str]:
    """Return the event types without per-test begin/end events."""
    return [event.type for event in events if event.type not in VAR_EVENTS]
