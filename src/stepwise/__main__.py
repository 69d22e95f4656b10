"""CLI utilities for stepwise schema management.

Report events are consumed by external reporters; the schemas printed
here describe the payloads those reporters receive.
"""

from click import Choice, echo, group, option

from stepwise.jsonschema import SchemaGenerator


@group(help='Command-line utilities for stepwise.')
def cli() -> None:
    """Root CLI group for stepwise tools."""
    return None


@cli.command(
    name='schema',
    help='Print the JSON Schema of report events to standard output.',
)
@option(
    '-m', '--model',
    type=Choice(['events', 'counters']),
    default='events',
    show_default=True,
    help='Which model to describe.',
)
@option(
    '-i', '--indent',
    type=int,
    default=4,
    show_default=True,
    help='Indentation of the JSON output.',
)
def print_schema(model: str, indent: int) -> None:
    """Generate and print the JSON Schema."""
    if model == 'counters':
        echo(SchemaGenerator.make_counters_schema(indent))
    else:
        echo(SchemaGenerator.make_schema(indent))


if __name__ == '__main__':
    cli()
