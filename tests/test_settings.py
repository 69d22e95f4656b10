"""Tests for runtime settings."""

from logging import DEBUG, WARNING, getLogger
from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from stepwise.environment import empty_env
from stepwise.events import ReportEvent
from stepwise.models import EngineSettings, configure_logging
from stepwise.reporters import ReporterPlugin

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

if TYPE_CHECKING:
    from pytest_mock import MockType


@pytest.fixture
def package_logger() -> 'Iterator[None]':
    """Restore the package logger level."""
    logger = getLogger('stepwise')
    level = logger.level
    yield
    logger.setLevel(level)


def test_default_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Defaults are relaxed, with plugins enabled."""
    for name in ('STEPWISE_STRICT', 'STEPWISE_LOAD_PLUGINS', 'STEPWISE_LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)

    settings = EngineSettings()

    assert settings.strict is False
    assert settings.load_plugins is True
    assert settings.log_level == 'WARNING'


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Settings are read from prefixed environment variables."""
    monkeypatch.setenv('STEPWISE_STRICT', 'true')
    monkeypatch.setenv('STEPWISE_LOAD_PLUGINS', 'false')
    monkeypatch.setenv('STEPWISE_LOG_LEVEL', 'DEBUG')
    monkeypatch.setenv('STEPWISE_UNKNOWN', 'ignored')

    settings = EngineSettings()

    assert settings.strict is True
    assert settings.load_plugins is False
    assert settings.log_level == 'DEBUG'

    env = empty_env()

    assert env.reporter.strict_mode is True


def test_settings_are_validated() -> None:
    """Invalid values are rejected and settings are immutable."""
    with pytest.raises(ValidationError):
        EngineSettings(log_level='LOUD')

    settings = EngineSettings()

    with pytest.raises(ValidationError):
        settings.strict = True  # type: ignore[misc]


def test_empty_env_loads_plugins(patch_entrypoints: 'Callable[..., MockType]') -> None:
    """Environments built from settings load reporter plugins."""
    received: list[ReportEvent] = []

    patch_entrypoints(ReporterPlugin(name='collect', handlers={'summary': received.append}))

    env = empty_env(EngineSettings(load_plugins=True))
    env.reporter.dispatch(ReportEvent(type='summary'))

    assert [event.type for event in received] == ['summary']
    assert empty_env(EngineSettings(load_plugins=False)).reporter.handlers == {}


@pytest.mark.usefixtures('package_logger')
def test_configure_logging() -> None:
    """The configured level applies to the package logger."""
    configure_logging(EngineSettings(log_level='DEBUG'))

    assert getLogger('stepwise').level == DEBUG
    assert getLogger('stepwise.core.scheduler').getEffectiveLevel() == DEBUG

    configure_logging(EngineSettings(log_level='WARNING'))

    assert getLogger('stepwise').level == WARNING
