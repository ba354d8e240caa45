from datetime import datetime, timezone
from typing import Any

import pytest

from cloudevents.core.v1.event import CloudEvent

from event_sink.cloudevents_http import to_event
from event_sink.domain import Event, InsertionRecord
from event_sink.path_config import PathsSpec
from event_sink.path_registry import PathRegistry


class InMemoryWriter:
    """RecordWriter fake: keeps persisted records in a list."""

    def __init__(self, time_column: str = "time", fail_with: Exception | None = None):
        self.time_column = time_column
        self.fail_with = fail_with
        self.persisted: list[InsertionRecord] = []

    def begin_record(self, timestamp: datetime) -> InsertionRecord:
        return InsertionRecord(time_column=self.time_column, timestamp=timestamp)

    async def persist(self, record: InsertionRecord) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.persisted.append(record)

    async def ping(self) -> bool:
        return True


def build_registry(fields: list[dict[str, Any]] | None = None, tags: list[dict[str, Any]] | None = None,
                   time_column: str = "time") -> PathRegistry:
    spec = PathsSpec.model_validate({"fields": fields or [], "tags": tags or [], "time_column": time_column})
    return PathRegistry.from_spec(spec)


def make_event(data: Any = None, **attributes: Any) -> Event:
    """Build an Event the way the HTTP layer does. Attributes set to None are left out."""
    defaults: dict[str, Any] = {
        "specversion": "1.0",
        "id": "evt-1",
        "source": "sensors/device-7",
        "type": "io.example.reading",
        "datacontenttype": "application/json",
        "time": datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
    }
    defaults.update(attributes)
    return to_event(CloudEvent({name: value for name, value in defaults.items() if value is not None}, data))


@pytest.fixture
def writer() -> InMemoryWriter:
    return InMemoryWriter()
