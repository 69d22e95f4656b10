"""Base Pydantic models for engine data.

This module defines the foundational model classes used by report events,
counters, test records, and run environments. It enforces immutability and
strict schema validation so that values passed between the scheduler and
reporters cannot be modified behind the engine's back.
"""

from logging import getLogger
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

type LogLevel = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


class SchemaModel(BaseModel):
    """Base immutable model for all engine values.

    Design principles enforced by this model:
        - Immutability: values cannot be modified after creation.
          Updates are expressed as copies, which keeps the ambient
          environment a sequence of snapshots.
        - Strict schema validation: unknown or extra fields are rejected
          to avoid silent errors caused by typos in event payloads.

    All engine models must inherit from this class.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        extra='forbid',
        populate_by_name=True,
    )


class SettingsModel(BaseSettings):
    """Base immutable model for engine runtime settings.

    Design principles enforced by this model:
        - Immutability: resolved settings cannot be modified after creation.
        - Tolerant schema handling: unknown or extra variables are ignored.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )


class EngineSettings(SettingsModel):
    """Runtime settings resolved from `STEPWISE_*` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix='STEPWISE_',
        frozen=True,
        extra='ignore',
    )

    strict: bool = Field(
        default=False,
        title='Strict mode',
        description=(
            'Raise instead of warning when a report handler shadows an '
            'existing one or a reporter plugin fails to load.'
        ),
    )

    load_plugins: bool = Field(
        default=True,
        title='Load reporter plugins',
        description=(
            'Discover reporter plugins from the `stepwise_reporters` '
            'entry point group when building an environment.'
        ),
    )

    log_level: LogLevel = Field(
        default='WARNING',
        title='Log level',
        description='Level applied to the `stepwise` logger by `configure_logging`.',
    )


def configure_logging(settings: EngineSettings | None = None) -> None:
    """Apply the configured log level to the package logger.

    Handlers are left to the application.

    Args:
        settings: Settings to apply. Resolved from the environment when omitted.
    """
    if settings is None:
        settings = EngineSettings()

    getLogger('stepwise').setLevel(settings.log_level)
