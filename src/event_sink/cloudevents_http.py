import logging
import re
from typing import Any, Mapping

from cloudevents.core.base import BaseCloudEvent, EventFactory
from cloudevents.core.bindings.http import CE_PREFIX, HTTPMessage
from cloudevents.core.bindings.http import from_http as decode_http_message
from cloudevents.core.exceptions import BaseCloudEventException
from cloudevents.core.formats.json import JSONFormat

from event_sink.domain import BinaryPayload, Event, EventPayload, JsonPayload, TextPayload
from event_sink.utils import strict_json_loads

logger = logging.getLogger(__name__)

# The SDK fills in id and specversion when they are absent; a received event must carry them.
REQUIRED_ATTRIBUTES = ("specversion", "id", "source", "type")


class CloudEventFormatError(ValueError):
    """The HTTP request does not carry a well-formed CloudEvent."""


def is_json_content_type(content_type: str | None) -> bool:
    """Content types the JSON event format treats as JSON. A missing type means application/json."""
    return re.match(JSONFormat.JSON_CONTENT_TYPE_PATTERN, content_type or JSONFormat.DEFAULT_CONTENT_TYPE) is not None


def _check_required(present: set[str]) -> None:
    if missing := [name for name in REQUIRED_ATTRIBUTES if name not in present]:
        raise CloudEventFormatError(f"Missing required attributes: {missing}")


class StrictJSONFormat(JSONFormat):
    """
    JSON event format restricted to RFC 8259 JSON.

    A binary-mode body declared as JSON that does not decode is kept as raw
    bytes, so the failure is reported when the payload is extracted.
    """

    def read(self, event_factory: EventFactory | None, data: str | bytes) -> BaseCloudEvent:
        document = strict_json_loads(data)
        if not isinstance(document, dict):
            raise CloudEventFormatError("Structured event must be a JSON object")
        _check_required(set(document))
        return super().read(event_factory, data)

    def read_data(self, body: bytes, datacontenttype: str | None) -> Any:
        if not body:
            return None

        if is_json_content_type(datacontenttype):
            try:
                return strict_json_loads(body)
            except ValueError:
                return body

        if datacontenttype and datacontenttype.lower().startswith("text/"):
            try:
                return body.decode("utf-8")
            except UnicodeDecodeError:
                return body

        return body


EVENT_FORMAT = StrictJSONFormat()


def classify_payload(data: Any, content_type: str | None) -> EventPayload | None:
    if data is None:
        return None
    if isinstance(data, (bytes, bytearray)):
        return BinaryPayload(bytes(data))
    if isinstance(data, str) and not is_json_content_type(content_type):
        return TextPayload(data)
    return JsonPayload(data)


def to_event(cloud_event: BaseCloudEvent) -> Event:
    return Event(
        cloud_event=cloud_event,
        data=classify_payload(cloud_event.get_data(), cloud_event.get_datacontenttype()),
    )


def from_http(headers: Mapping[str, str], body: bytes) -> Event:
    """
    Decode a binary-mode (ce-* headers) or structured-mode request.

    Raises:
      CloudEventFormatError: missing or invalid attributes, or a structured
        body that is not a JSON object.
    """
    normalized = {name.lower(): value for name, value in headers.items()}

    if any(name.startswith(CE_PREFIX) for name in normalized):
        _check_required({name[len(CE_PREFIX):] for name in normalized if name.startswith(CE_PREFIX)})

    try:
        cloud_event = decode_http_message(HTTPMessage(headers=normalized, body=body), EVENT_FORMAT)
    except CloudEventFormatError:
        raise
    except (BaseCloudEventException, ValueError, TypeError) as e:
        raise CloudEventFormatError(f"Invalid CloudEvent: {e}") from e

    event = to_event(cloud_event)
    logger.debug("Decoded event id=%s type=%s source=%s", event.id, event.type, event.source)
    return event
