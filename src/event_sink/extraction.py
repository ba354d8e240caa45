import logging
from typing import Any, Sequence

from event_sink.coercion import coerce
from event_sink.domain import BinaryPayload, Event, EventPayload, InsertionRecord, JsonPayload, PathSpec, TextPayload
from event_sink.errors import PayloadParseError, SelectorError
from event_sink.path_registry import PathRegistry
from event_sink.utils import strict_json_loads, utc_now
from event_sink.writer import RecordWriter

logger = logging.getLogger(__name__)


def parse_payload(payload: EventPayload | None) -> Any:
    """Turn the event payload into a JSON document. JSON text and JSON bytes are decoded."""
    if isinstance(payload, JsonPayload):
        return payload.value
    try:
        if isinstance(payload, TextPayload):
            return strict_json_loads(payload.text)
        if isinstance(payload, BinaryPayload):
            return strict_json_loads(payload.raw)
    except ValueError as e:
        raise PayloadParseError(str(e)) from e
    raise PayloadParseError("Unknown event payload")


class Extractor:
    """
    Evaluates every registered path against one event and assembles the row.

    Fields read the payload only; tags read the serialized envelope. Only
    fields count towards deciding whether anything is written.
    """

    def __init__(self, registry: PathRegistry, writer: RecordWriter, *, allow_fallback_parse: bool = True):
        self.registry = registry
        self.writer = writer
        self.allow_fallback_parse = allow_fallback_parse

    def extract(self, event: Event) -> InsertionRecord | None:
        payload_document = parse_payload(event.data)
        timestamp = event.time or utc_now()

        record = self.writer.begin_record(timestamp)

        number_of_fields = self._add_values(record, self.registry.fields(), payload_document)

        envelope_document = event.to_document()
        number_of_tags = self._add_values(record, self.registry.tags(), envelope_document)

        if number_of_fields == 0:
            logger.debug("Event %s matched no fields (%s tags); nothing to persist", event.id, number_of_tags)
            return None

        logger.debug("Event %s extracted %s fields and %s tags", event.id, number_of_fields, number_of_tags)
        return record

    def _add_values(self, record: InsertionRecord, specs: Sequence[PathSpec], document: Any) -> int:
        added = 0
        for spec in specs:
            selected = self.registry.evaluate(spec, document)

            if not selected:
                continue

            if len(selected) > 1:
                raise SelectorError(
                    f"Selector found more than one value: {len(selected)} - path: {spec.expression}"
                )

            value = coerce(selected[0], spec.target_type, self.allow_fallback_parse, path=spec.expression)
            record.append(spec.name, value)
            added += 1

        return added
