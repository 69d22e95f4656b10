"""Report handler registry and reporter plugin loading.

A reporter maps event types to handler callables. Events without a
dedicated handler go to the fallback handler, which by default only
traces the event through the module logger. Counting of outcomes is not
a handler concern: it is done by `stepwise.reporting.report` before
dispatch, so custom handlers can never lose or double a count.

Reporter plugins are discovered via the `stepwise_reporters` entry point
group. Plugins are loaded defensively: individual failures do not
interrupt loading unless strict mode is enabled.
"""

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING
from warnings import warn

from pydantic import Field, ValidationError

from stepwise.errors import ReporterError, ReporterWarning
from stepwise.models import SchemaModel

if TYPE_CHECKING:
    from importlib.metadata import EntryPoint

if TYPE_CHECKING:
    from stepwise.events import ReportEvent

#: Entry point group scanned for reporter plugins.
PLUGINS_GROUP = 'stepwise_reporters'

type Handler = Callable[['ReportEvent'], None]

logger = getLogger(__name__)


def trace_event(event: 'ReportEvent') -> None:
    """Default fallback handler: log the event at debug level."""
    logger.debug('report %s: %r', event.type, event)


class ReporterPlugin(SchemaModel):
    """Declarative container for report handlers provided by a plugin."""

    name: str = Field(
        pattern=r'^[a-zA-Z][\w]*$',
        title='Plugin name',
        description='Used for identification and diagnostics only.',
    )

    handlers: dict[str, Callable[..., None]] = Field(
        default_factory=dict,
        title='Handlers',
        description='Handlers keyed by the event type they consume.',
    )


class Reporter:
    """Type-keyed report event dispatcher.

    Attributes:
        strict_mode: If True, shadowing a handler or failing to load a
            plugin raises. If False, issues are emitted as warnings.
        handlers: Registered handlers keyed by event type.
        fallback: Handler for events without a dedicated handler.
    """

    def __init__(self, *, strict: bool = False,
                 fallback: Handler | None = None,
                 load_plugins: bool = False) -> None:
        """Initialize a reporter.

        Args:
            strict: Whether registry issues raise instead of warning.
            fallback: Handler for events with no registered handler.
            load_plugins: Whether to load entry point plugins right away.

        Raises:
            ReporterError: If a plugin fails to load in strict mode.
        """
        self.strict_mode = strict
        self.handlers: dict[str, Handler] = {}
        self.fallback: Handler = fallback or trace_event

        if load_plugins:
            self.load_plugins()

    def add_handler(self, event_type: str, handler: Handler,
                    entrypoint: 'EntryPoint | None' = None) -> None:
        """Register a handler for an event type.

        Args:
            event_type: Event type consumed by the handler.
            handler: Callable receiving the event.
            entrypoint: Entry point the handler was loaded from, if any.

        Raises:
            ReporterError: If the handler shadows another on strict mode.
        """
        if event_type in self.handlers and (error := self.emit_reporter_issue(
            f'Handler for {event_type!r} is shadowing an existing',
            entrypoint,
        )):
            raise error

        self.handlers[event_type] = handler

    def handles(self, *event_types: str) -> Callable[[Handler], Handler]:
        """Decorator registering a handler for one or more event types."""
        def register(handler: Handler) -> Handler:
            for event_type in event_types:
                self.add_handler(event_type, handler)
            return handler

        return register

    def remove_handler(self, event_type: str) -> None:
        """Unregister the handler of an event type, if any."""
        self.handlers.pop(event_type, None)

    def dispatch(self, event: 'ReportEvent') -> None:
        """Deliver an event to its handler or to the fallback."""
        handler = self.handlers.get(event.type, self.fallback)
        handler(event)

    def emit_reporter_issue(self, message: str,
                            entrypoint: 'EntryPoint | None' = None) -> Exception | None:
        """Emit a reporter warning or return the exception.

        Args:
            message: Warning message to emit.
            entrypoint: Entry point associated with the issue, if any.

        Returns:
            ReporterError on strict mode, otherwise `None`
                with producing a ReporterWarning.
        """
        if self.strict_mode:
            return ReporterError(message, entrypoint=entrypoint)

        warn(message, category=ReporterWarning, stacklevel=3)

        return None

    def _load_plugin(self, entrypoint: 'EntryPoint') -> None:
        """Load a single plugin entry point and register its handlers.

        Args:
            entrypoint: Entry point describing the plugin to load.

        Raises:
            ReporterError: If any loading issues occur on strict mode.
        """
        try:
            plugin = entrypoint.load()

        except ValidationError as base:
            if error := self.emit_reporter_issue(
                f'Failed to validate entrypoint {entrypoint.name!r}',
                entrypoint,
            ):
                raise error from base
            return None

        except Exception as base:
            if error := self.emit_reporter_issue(
                f'Failed to load entrypoint {entrypoint.name!r}',
                entrypoint,
            ):
                raise error from base
            return None

        if not isinstance(plugin, ReporterPlugin):
            if error := self.emit_reporter_issue(
                f'Loaded from entrypoint {entrypoint.name!r} object is not a reporter plugin',
                entrypoint,
            ):
                raise error
            return None

        logger.debug('loading reporter plugin %r from %r', plugin.name, entrypoint.value)

        for event_type, handler in plugin.handlers.items():
            self.add_handler(event_type, handler, entrypoint)

    def load_plugins(self) -> None:
        """Load reporter plugins from the `stepwise_reporters` group.

        Raises:
            ReporterError: If any loading issues occur on strict mode.
        """
        from importlib.metadata import entry_points  # noqa: PLC0415

        for entrypoint in entry_points().select(group=PLUGINS_GROUP):
            self._load_plugin(entrypoint)
