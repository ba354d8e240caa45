from typing import Any, Literal

from event_sink.domain import FloatValue, ScalarKind
from event_sink.scalar_casters.base_caster import CasterBase
from event_sink.scalar_casters.common import exact_float, is_json_integer, parse_float_text


class FloatCaster(CasterBase):
    output_type: Literal[ScalarKind.FLOAT] = ScalarKind.FLOAT

    def extract_native(self, value: Any) -> FloatValue | None:
        if isinstance(value, float):
            return FloatValue(value)
        if is_json_integer(value):
            converted = exact_float(value)
            if converted is not None:
                return FloatValue(converted)
        return None

    def parse_text(self, text: str) -> FloatValue:
        return FloatValue(parse_float_text(text))
