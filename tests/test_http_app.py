import base64
import json

import pytest
from fastapi.testclient import TestClient

from event_sink.errors import TargetError
from event_sink.http_app import create_app
from event_sink.processor import EventProcessor
from event_sink.service_config import HttpConfig

from conftest import InMemoryWriter, build_registry

FIELDS = [
    {"name": "temperature", "path": "$.temp", "type": "float"},
    {"name": "reading", "path": "$.readings[*]"},
]
TAGS = [{"name": "device_id", "path": "$.source"}]

CE_HEADERS = {
    "ce-specversion": "1.0",
    "ce-id": "evt-42",
    "ce-source": "sensors/device-7",
    "ce-type": "io.example.reading",
    "content-type": "application/json",
}


def _client(writer=None, **http):
    writer = writer or InMemoryWriter()
    processor = EventProcessor(build_registry(fields=FIELDS, tags=TAGS), writer)
    return TestClient(create_app(processor, HttpConfig(**http))), writer


def test_matching_event_accepted():
    client, writer = _client()

    response = client.post("/", headers=CE_HEADERS, content=json.dumps({"temp": 20.5}))

    assert response.status_code == 202
    assert len(writer.persisted) == 1
    assert writer.persisted[0].column_names == ["time", "temperature", "device_id"]


def test_structured_event_accepted():
    client, writer = _client()
    document = {
        "specversion": "1.0",
        "id": "evt-43",
        "source": "sensors/device-8",
        "type": "io.example.reading",
        "time": "2024-05-01T12:00:00Z",
        "data": {"temp": 3.0},
    }

    response = client.post(
        "/", headers={"content-type": "application/cloudevents+json"}, content=json.dumps(document)
    )

    assert response.status_code == 202
    assert writer.persisted[0].timestamp.isoformat() == "2024-05-01T12:00:00+00:00"


def test_event_without_fields_is_no_content():
    client, writer = _client()

    response = client.post("/", headers=CE_HEADERS, content=json.dumps({"humidity": 40}))

    assert response.status_code == 204
    assert writer.persisted == []


def test_ambiguous_selector_is_not_acceptable():
    client, writer = _client()

    response = client.post("/", headers=CE_HEADERS, content=json.dumps({"readings": [1, 2]}))

    assert response.status_code == 406
    assert response.json()["error"] == "SelectorError"
    assert response.json()["message"].startswith("Error processing JSON path: Selector found more than one value: 2")
    assert writer.persisted == []


def test_conversion_failure_is_not_acceptable():
    client, _ = _client()

    response = client.post("/", headers=CE_HEADERS, content=json.dumps({"temp": "hot"}))

    assert response.status_code == 406
    assert response.json() == {
        "error": "ConversionError",
        "message": 'Failed converted expected type: Failed to convert from: "hot"',
    }


def test_undecodable_payload_is_not_acceptable():
    client, _ = _client()
    headers = {**CE_HEADERS, "content-type": "text/plain"}

    response = client.post("/", headers=headers, content="not json")

    assert response.status_code == 406
    assert response.json()["error"] == "PayloadError"


def test_target_failure_is_bad_gateway():
    client, _ = _client(writer=InMemoryWriter(fail_with=TargetError("connection refused")))

    response = client.post("/", headers=CE_HEADERS, content=json.dumps({"temp": 1.0}))

    assert response.status_code == 502
    assert response.json() == {"error": "TargetError", "message": "Error connecting target: connection refused"}


def test_malformed_cloudevent_is_bad_request():
    client, _ = _client()
    headers = {k: v for k, v in CE_HEADERS.items() if k != "ce-type"}

    response = client.post("/", headers=headers, content=json.dumps({"temp": 1.0}))

    assert response.status_code == 400
    assert response.json()["error"] == "CloudEventError"


def test_oversized_payload_rejected():
    client, writer = _client(max_json_payload_size=16)

    response = client.post("/", headers=CE_HEADERS, content=json.dumps({"temp": 1.0, "padding": "x" * 64}))

    assert response.status_code == 413
    assert writer.persisted == []


def test_oversized_chunked_payload_rejected():
    client, writer = _client(max_json_payload_size=16)
    chunks = [b'{"temp": 1.0, ', b'"padding": "' + b"x" * 64 + b'"}']

    response = client.post("/", headers=CE_HEADERS, content=iter(chunks))

    assert response.status_code == 413
    assert response.json()["error"] == "PayloadTooLarge"
    assert writer.persisted == []


def test_chunked_payload_within_limit_accepted():
    client, writer = _client()

    response = client.post("/", headers=CE_HEADERS, content=iter([b'{"temp"', b": 4.5}"]))

    assert response.status_code == 202
    assert len(writer.persisted) == 1


def test_lowercase_time_designators_accepted():
    client, writer = _client()
    headers = {**CE_HEADERS, "ce-time": "2024-05-01t12:30:00z"}

    response = client.post("/", headers=headers, content=json.dumps({"temp": 1.0}))

    assert response.status_code == 202
    assert writer.persisted[0].timestamp.isoformat() == "2024-05-01T12:30:00+00:00"


@pytest.mark.parametrize(
    "attributes",
    [
        {"datacontenttype": 5},
        {"id": {"x": 1}},
        {"time": "2024-05-01T12:00:00"},
    ],
)
def test_invalid_structured_attributes_are_bad_request(attributes):
    client, writer = _client()
    document = {
        "specversion": "1.0",
        "id": "evt-44",
        "source": "sensors/device-8",
        "type": "io.example.reading",
        "data": {"temp": 3.0},
        **attributes,
    }

    response = client.post(
        "/", headers={"content-type": "application/cloudevents+json"}, content=json.dumps(document)
    )

    assert response.status_code == 400
    assert response.json()["error"] == "CloudEventError"
    assert writer.persisted == []


def test_non_json_number_literal_is_not_acceptable():
    client, writer = _client()

    response = client.post("/", headers=CE_HEADERS, content=b'{"temp": NaN}')

    assert response.status_code == 406
    assert response.json()["error"] == "PayloadError"
    assert writer.persisted == []


# ----------------------------
# Authentication
# ----------------------------
def _basic(username, password):
    return "Basic " + base64.b64encode(f"{username}:{password}".encode()).decode()


@pytest.mark.parametrize(
    "authorization, status",
    [
        (None, 401),
        (_basic("sink", "wrong"), 401),
        (_basic("sink", "s3cret"), 202),
        ("Bearer s3cret", 401),
    ],
)
def test_basic_auth(authorization, status):
    client, _ = _client(username="sink", password="s3cret")
    headers = dict(CE_HEADERS)
    if authorization:
        headers["authorization"] = authorization

    response = client.post("/", headers=headers, content=json.dumps({"temp": 1.0}))

    assert response.status_code == status
    if status == 401:
        assert response.headers["www-authenticate"] == "Basic"


@pytest.mark.parametrize(
    "authorization, status",
    [
        (None, 401),
        ("Bearer nope", 401),
        ("Bearer t0ken", 202),
    ],
)
def test_bearer_auth(authorization, status):
    client, _ = _client(token="t0ken")
    headers = dict(CE_HEADERS)
    if authorization:
        headers["authorization"] = authorization

    response = client.post("/", headers=headers, content=json.dumps({"temp": 1.0}))

    assert response.status_code == status


def test_either_credential_accepted_when_both_configured():
    client, writer = _client(username="sink", password="s3cret", token="t0ken")
    body = json.dumps({"temp": 1.0})

    assert client.post("/", headers={**CE_HEADERS, "authorization": "Bearer t0ken"}, content=body).status_code == 202
    assert client.post(
        "/", headers={**CE_HEADERS, "authorization": _basic("sink", "s3cret")}, content=body
    ).status_code == 202
    assert len(writer.persisted) == 2


# ----------------------------
# Health
# ----------------------------
class UnreachableWriter(InMemoryWriter):
    async def ping(self) -> bool:
        return False


def test_health_skips_auth():
    client, _ = _client(token="t0ken")

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_readiness():
    client, _ = _client()

    response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready", "database": "connected"}


def test_readiness_when_database_unreachable():
    client, _ = _client(writer=UnreachableWriter())

    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.json() == {"status": "not_ready", "database": "unreachable"}
