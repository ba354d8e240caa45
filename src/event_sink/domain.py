import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Union

from cloudevents.core.base import BaseCloudEvent
from cloudevents.core.formats.json import JSONFormat


class ScalarKind(Enum):
    BOOLEAN = "boolean"
    FLOAT = "float"
    SIGNED_INTEGER = "signed_integer"
    UNSIGNED_INTEGER = "unsigned_integer"
    TEXT = "text"
    UNSPECIFIED = "unspecified"

    @classmethod
    def from_name(cls, name: str | None) -> "ScalarKind":
        """Resolve a configured type name (case-insensitive). Empty or missing means UNSPECIFIED."""
        normalized = (name or "").strip().lower()
        try:
            return _SCALAR_KIND_ALIASES[normalized]
        except KeyError:
            raise ValueError(f"Unknown type: {name}") from None


_SCALAR_KIND_ALIASES: dict[str, ScalarKind] = {
    "bool": ScalarKind.BOOLEAN,
    "boolean": ScalarKind.BOOLEAN,
    "float": ScalarKind.FLOAT,
    "number": ScalarKind.FLOAT,
    "int": ScalarKind.SIGNED_INTEGER,
    "integer": ScalarKind.SIGNED_INTEGER,
    "uint": ScalarKind.UNSIGNED_INTEGER,
    "unsigned": ScalarKind.UNSIGNED_INTEGER,
    "string": ScalarKind.TEXT,
    "text": ScalarKind.TEXT,
    "": ScalarKind.UNSPECIFIED,
    "none": ScalarKind.UNSPECIFIED,
}


# ----------------------------
# Typed values
# ----------------------------
@dataclass(frozen=True)
class BooleanValue:
    kind: ClassVar[ScalarKind] = ScalarKind.BOOLEAN
    value: bool


@dataclass(frozen=True)
class FloatValue:
    kind: ClassVar[ScalarKind] = ScalarKind.FLOAT
    value: float


@dataclass(frozen=True)
class SignedIntegerValue:
    kind: ClassVar[ScalarKind] = ScalarKind.SIGNED_INTEGER
    value: int


@dataclass(frozen=True)
class UnsignedIntegerValue:
    kind: ClassVar[ScalarKind] = ScalarKind.UNSIGNED_INTEGER
    value: int


@dataclass(frozen=True)
class TextValue:
    kind: ClassVar[ScalarKind] = ScalarKind.TEXT
    value: str


TypedValue = Union[BooleanValue, FloatValue, SignedIntegerValue, UnsignedIntegerValue, TextValue]


# ----------------------------
# Registry entries
# ----------------------------
@dataclass(frozen=True)
class PathSpec:
    """
    One configured selector.

    matcher:
      The compiled JSONPath expression; `expression` keeps the source text for messages.
    """
    name: str
    expression: str
    matcher: Any
    target_type: ScalarKind


# ----------------------------
# Insertion record
# ----------------------------
@dataclass
class InsertionRecord:
    """
    Ordered column/value pairs for one outgoing row.

    The timestamp column always comes first; it is kept apart from `columns`
    because it is the only value that is not a TypedValue.
    """
    time_column: str
    timestamp: datetime
    columns: list[tuple[str, TypedValue]] = field(default_factory=list)

    def append(self, column_name: str, value: TypedValue) -> None:
        if column_name == self.time_column or any(name == column_name for name, _ in self.columns):
            raise ValueError(f"Column '{column_name}' is already part of this record")
        self.columns.append((column_name, value))

    @property
    def column_names(self) -> list[str]:
        return [self.time_column] + [name for name, _ in self.columns]

    def __len__(self) -> int:
        return 1 + len(self.columns)


# ----------------------------
# Events
# ----------------------------
@dataclass(frozen=True)
class JsonPayload:
    """Payload that already arrived as structured JSON."""
    value: Any


@dataclass(frozen=True)
class TextPayload:
    text: str


@dataclass(frozen=True)
class BinaryPayload:
    raw: bytes


EventPayload = Union[JsonPayload, TextPayload, BinaryPayload]


@dataclass(frozen=True)
class Event:
    """
    A decoded CloudEvent plus its payload, classified for extraction.

    Attributes stay on the SDK event; `data` is the same payload wrapped in
    one of the payload classes above.
    """
    cloud_event: BaseCloudEvent
    data: EventPayload | None = None

    @property
    def id(self) -> str:
        return self.cloud_event.get_id()

    @property
    def source(self) -> str:
        return self.cloud_event.get_source()

    @property
    def type(self) -> str:
        return self.cloud_event.get_type()

    @property
    def time(self) -> datetime | None:
        return self.cloud_event.get_time()

    def to_document(self) -> dict[str, Any]:
        """The whole envelope in the CloudEvents JSON structured format."""
        return json.loads(_ENVELOPE_FORMAT.write(self.cloud_event))


_ENVELOPE_FORMAT = JSONFormat()
