from datetime import datetime, timezone

import pytest

from event_sink.domain import (
    FloatValue,
    SignedIntegerValue,
    TextValue,
    UnsignedIntegerValue,
)
from event_sink.errors import ConversionError, MissingValueError, PayloadParseError, SelectorError
from event_sink.extraction import Extractor, parse_payload

from conftest import build_registry, make_event

SENSOR_FIELDS = [
    {"name": "temperature", "path": "$.temp", "type": "float"},
    {"name": "sequence", "path": "$.seq", "type": "uint"},
]
SENSOR_TAGS = [
    {"name": "device_id", "path": "$.source", "type": "string"},
    {"name": "event_type", "path": "$.type"},
]


@pytest.fixture
def extractor(writer):
    return Extractor(build_registry(fields=SENSOR_FIELDS, tags=SENSOR_TAGS), writer)


def test_fields_from_payload_and_tags_from_envelope(extractor):
    event = make_event({"temp": 21.5, "seq": 7})

    record = extractor.extract(event)

    assert record is not None
    assert record.timestamp == event.time
    assert record.column_names == ["time", "temperature", "sequence", "device_id", "event_type"]
    assert record.columns == [
        ("temperature", FloatValue(21.5)),
        ("sequence", UnsignedIntegerValue(7)),
        ("device_id", TextValue("sensors/device-7")),
        ("event_type", TextValue("io.example.reading")),
    ]


def test_unmatched_field_is_skipped(extractor):
    record = extractor.extract(make_event({"seq": 7}))

    assert record is not None
    assert [name for name, _ in record.columns] == ["sequence", "device_id", "event_type"]


def test_only_tags_matched_gives_no_record(extractor):
    assert extractor.extract(make_event({"unrelated": True})) is None


def test_missing_time_uses_current_time(extractor):
    before = datetime.now(timezone.utc)
    record = extractor.extract(make_event({"temp": 1.0}, time=None))
    after = datetime.now(timezone.utc)

    assert record is not None
    assert before <= record.timestamp <= after


def test_multiple_matches_rejected(writer):
    registry = build_registry(fields=[{"name": "reading", "path": "$.readings[*]"}])

    with pytest.raises(SelectorError) as exc_info:
        Extractor(registry, writer).extract(make_event({"readings": [1, 2]}))

    assert str(exc_info.value) == (
        "Error processing JSON path: Selector found more than one value: 2 - path: $.readings[*]"
    )


def test_tags_can_read_payload_through_envelope(writer):
    registry = build_registry(
        fields=[{"name": "count", "path": "$.count", "type": "int"}],
        tags=[{"name": "nested", "path": "$.data.label"}, {"name": "region", "path": "$.region"}],
    )

    record = Extractor(registry, writer).extract(make_event({"count": -4, "label": "lab"}, region="eu"))

    assert record is not None
    assert record.columns == [
        ("count", SignedIntegerValue(-4)),
        ("nested", TextValue("lab")),
        ("region", TextValue("eu")),
    ]


def test_fields_do_not_see_envelope(writer):
    registry = build_registry(fields=[{"name": "source", "path": "$.source"}])

    assert Extractor(registry, writer).extract(make_event({"temp": 1})) is None


def test_fallback_parse_can_be_disabled(writer):
    registry = build_registry(fields=[{"name": "sequence", "path": "$.seq", "type": "uint"}])
    event = make_event({"seq": "42"})

    assert Extractor(registry, writer).extract(event).columns == [("sequence", UnsignedIntegerValue(42))]
    with pytest.raises(MissingValueError):
        Extractor(registry, writer, allow_fallback_parse=False).extract(event)


def test_conversion_error_propagates(extractor):
    with pytest.raises(ConversionError):
        extractor.extract(make_event({"seq": "forty-two"}))


def test_text_payload_is_decoded(extractor):
    record = extractor.extract(make_event('{"temp": 3.5}', datacontenttype="text/plain"))

    assert record is not None
    assert record.columns[0] == ("temperature", FloatValue(3.5))


def test_binary_payload_is_decoded(extractor):
    record = extractor.extract(make_event(b'{"seq": 9}', datacontenttype=None))

    assert record is not None
    assert record.columns[0] == ("sequence", UnsignedIntegerValue(9))


def test_undecodable_payload_rejected(extractor):
    with pytest.raises(PayloadParseError, match="Failed processing payload"):
        extractor.extract(make_event("not json", datacontenttype="text/plain"))


@pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
def test_non_json_number_literals_rejected(extractor, literal):
    with pytest.raises(PayloadParseError, match="is not a valid JSON value"):
        extractor.extract(make_event(f'{{"temp": {literal}}}', datacontenttype="text/plain"))
    with pytest.raises(PayloadParseError):
        extractor.extract(make_event(f'{{"temp": {literal}}}'.encode(), datacontenttype=None))


def test_time_tag_uses_utc_designator(writer):
    registry = build_registry(
        fields=[{"name": "count", "path": "$.count"}],
        tags=[{"name": "sent_at", "path": "$.time"}],
    )

    record = Extractor(registry, writer).extract(make_event({"count": 1}))

    assert record.columns[1] == ("sent_at", TextValue("2024-05-01T12:30:00Z"))


def test_event_without_payload_rejected(extractor):
    with pytest.raises(PayloadParseError, match="Unknown event payload"):
        extractor.extract(make_event())


def test_parse_payload_passes_json_through():
    document = {"a": [1, 2]}

    assert parse_payload(make_event(document).data) is document
