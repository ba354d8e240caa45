from typing import Any, Literal

from event_sink.domain import (
    BooleanValue,
    FloatValue,
    ScalarKind,
    SignedIntegerValue,
    TextValue,
    TypedValue,
    UnsignedIntegerValue,
)
from event_sink.errors import PayloadParseError
from event_sink.scalar_casters.base_caster import CasterBase
from event_sink.scalar_casters.common import describe_json, fits_signed_64, fits_unsigned_64, is_json_integer


class InferredCaster(CasterBase):
    """
    Takes the type from the JSON node itself.

    Integers are classified without loss: signed 64-bit first, then unsigned
    64-bit. Only integers outside both ranges fall back to a float.
    """
    output_type: Literal[ScalarKind.UNSPECIFIED] = ScalarKind.UNSPECIFIED

    def extract_native(self, value: Any) -> TypedValue | None:
        if isinstance(value, bool):
            return BooleanValue(value)
        if isinstance(value, str):
            return TextValue(value)
        if isinstance(value, float):
            return FloatValue(value)
        if is_json_integer(value):
            if fits_signed_64(value):
                return SignedIntegerValue(value)
            if fits_unsigned_64(value):
                return UnsignedIntegerValue(value)
            return FloatValue(float(value))
        return None

    def parse_text(self, text: str) -> TypedValue:
        return TextValue(text)

    def cast(self, value: Any, *, path: str, allow_fallback_parse: bool) -> TypedValue:
        try:
            typed = self.extract_native(value)
        except OverflowError:
            raise PayloadParseError(f"Unknown numeric type - path: {path}, value: {describe_json(value)}") from None

        if typed is None:
            raise PayloadParseError(f"Invalid value type selected - path: {path}, value: {describe_json(value)}")
        return typed
