"""Tests configurations and fixtures."""

from importlib.metadata import EntryPoint, EntryPoints
from typing import TYPE_CHECKING

import pytest

from stepwise.environment import clear_env, empty_env
from stepwise.registry import clear_namespaces
from stepwise.reporters import Reporter

from tests.helpers import CallbackQueue

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

if TYPE_CHECKING:
    from pytest_mock import MockerFixture, MockType

if TYPE_CHECKING:
    from stepwise.environment import Environment
    from stepwise.events import ReportEvent
    from stepwise.reporters import ReporterPlugin


@pytest.fixture(autouse=True)
def clean_state() -> 'Iterator[None]':
    """Reset the ambient environment and the namespace registry."""
    clear_env()
    clear_namespaces()
    yield
    clear_env()
    clear_namespaces()


@pytest.fixture
def events() -> 'list[ReportEvent]':
    """Collected report events, in emission order."""
    return []


@pytest.fixture
def reporter(events: 'list[ReportEvent]') -> Reporter:
    """Reporter collecting every event into `events`."""
    return Reporter(fallback=events.append)


@pytest.fixture
def env(reporter: Reporter) -> 'Environment':
    """Fresh environment reporting into `events`."""
    return empty_env(reporter=reporter)


@pytest.fixture
def loop() -> CallbackQueue:
    """Manually driven callback queue."""
    return CallbackQueue()


@pytest.fixture
def patch_entrypoints(mocker: 'MockerFixture') -> 'Callable[..., MockType]':
    """Provide a factory for mocking `importlib.metadata.entry_points`.

    Returns a callable that patches `entry_points()` to simulate
    discovery of plugins in the `stepwise_reporters` entry point group.
    """
    def patch(*plugins: 'ReporterPlugin | object',
              raises: Exception | None = None) -> 'MockType':
        """Patch `entry_points` with a controlled plugin configuration.

        Args:
            plugins: Objects to be returned by `EntryPoint.load()`.
            raises: Exception to raise when `EntryPoint.load()` is called.

        Returns:
            A mock patch object replacing `importlib.metadata.entry_points`.
        """
        entrypoints = []
        for plugin in plugins:
            ep = mocker.Mock(spec=EntryPoint)
            ep.group = 'stepwise_reporters'
            ep.name = 'tests'
            ep.value = 'tests.plugins:reporter'
            ep.load.return_value = plugin
            if raises is not None:
                ep.load.side_effect = raises
            entrypoints.append(ep)

        return mocker.patch(
            'importlib.metadata.entry_points',
            return_value=EntryPoints(entrypoints),
        )

    return patch
