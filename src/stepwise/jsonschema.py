"""JSON Schema of report events."""

from functools import cache
from json import dumps
from typing import TYPE_CHECKING

from pydantic import TypeAdapter
from pydantic.json_schema import GenerateJsonSchema, JsonSchemaValue

from stepwise.events import AnyEvent, ReportCounters

if TYPE_CHECKING:
    from pydantic_core import core_schema as core


class SchemaGenerator(GenerateJsonSchema):
    """JSON Schema generator for report events.

    Event payloads may carry arbitrary runtime objects, such as the
    exception behind an `error` event. Those are represented as
    unconstrained values.
    """

    @classmethod
    @cache
    def make_schema(cls, indent: int | str | None = 4) -> str:
        """Generate the JSON Schema for report events.

        Args:
            indent: Indentation level used for JSON formatting.

        Returns:
            Serialized JSON Schema string.
        """
        schema = {
            **TypeAdapter(AnyEvent).json_schema(
                by_alias=True,
                schema_generator=cls,
            ),
            'title': 'stepwise',
            'description': 'JSON Schema for stepwise report events',
            '$schema': cls.schema_dialect,
        }

        return dumps(
            schema,
            ensure_ascii=False,
            sort_keys=True,
            indent=indent,
        )

    @classmethod
    @cache
    def make_counters_schema(cls, indent: int | str | None = 4) -> str:
        """Generate the JSON Schema for report counters."""
        schema = {
            **ReportCounters.model_json_schema(
                by_alias=True,
                schema_generator=cls,
            ),
            '$schema': cls.schema_dialect,
        }

        return dumps(
            schema,
            ensure_ascii=False,
            sort_keys=True,
            indent=indent,
        )

    def callable_schema(self, schema: 'core.CallableSchema') -> JsonSchemaValue:  # noqa: ARG002
        """Generate JSON Schema for callable runtime values."""
        return {'description': 'Runtime value'}
