from typing import Any, Literal

from event_sink.domain import ScalarKind, SignedIntegerValue, UnsignedIntegerValue
from event_sink.scalar_casters.base_caster import CasterBase
from event_sink.scalar_casters.common import (
    fits_signed_64,
    fits_unsigned_64,
    is_json_integer,
    parse_integer_text,
)


class SignedIntegerCaster(CasterBase):
    output_type: Literal[ScalarKind.SIGNED_INTEGER] = ScalarKind.SIGNED_INTEGER

    def extract_native(self, value: Any) -> SignedIntegerValue | None:
        if is_json_integer(value) and fits_signed_64(value):
            return SignedIntegerValue(value)
        return None

    def parse_text(self, text: str) -> SignedIntegerValue:
        number = parse_integer_text(text)
        if not fits_signed_64(number):
            raise ValueError(f"number too large to fit in a signed 64-bit integer: {text!r}")
        return SignedIntegerValue(number)


class UnsignedIntegerCaster(CasterBase):
    output_type: Literal[ScalarKind.UNSIGNED_INTEGER] = ScalarKind.UNSIGNED_INTEGER

    def extract_native(self, value: Any) -> UnsignedIntegerValue | None:
        if is_json_integer(value) and fits_unsigned_64(value):
            return UnsignedIntegerValue(value)
        return None

    def parse_text(self, text: str) -> UnsignedIntegerValue:
        if text.startswith("-"):
            raise ValueError(f"invalid digit found in unsigned literal: {text!r}")
        number = parse_integer_text(text)
        if not fits_unsigned_64(number):
            raise ValueError(f"number too large to fit in an unsigned 64-bit integer: {text!r}")
        return UnsignedIntegerValue(number)
