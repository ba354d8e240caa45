from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict

from event_sink.domain import ScalarKind, TypedValue
from event_sink.errors import ConversionError, MissingValueError
from event_sink.scalar_casters.common import describe_json


class CasterBase(BaseModel, ABC):
    output_type: ScalarKind
    model_config = ConfigDict(extra="forbid", frozen=True)

    @abstractmethod
    def extract_native(self, value: Any) -> TypedValue | None:
        """Return the typed value when the JSON node already has the target type, else None."""

    @abstractmethod
    def parse_text(self, text: str) -> TypedValue:
        """Parse a string node into the target type. Raises ValueError when it cannot."""

    def cast(self, value: Any, *, path: str, allow_fallback_parse: bool) -> TypedValue:
        """
        Native extraction first. Only string nodes get a second chance through
        parse_text, and only when fallback parsing is allowed.
        """
        typed = self.extract_native(value)
        if typed is not None:
            return typed

        if allow_fallback_parse and isinstance(value, str):
            try:
                return self.parse_text(value)
            except ValueError:
                raise ConversionError(f"Failed to convert from: {describe_json(value)}") from None

        raise MissingValueError(f"Missing value - path: {path}, expected: {self.output_type.value}")
