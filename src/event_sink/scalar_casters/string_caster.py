from typing import Any, Literal

from event_sink.domain import ScalarKind, TextValue
from event_sink.scalar_casters.base_caster import CasterBase


class TextCaster(CasterBase):
    output_type: Literal[ScalarKind.TEXT] = ScalarKind.TEXT

    def extract_native(self, value: Any) -> TextValue | None:
        if isinstance(value, str):
            return TextValue(value)
        return None

    def parse_text(self, text: str) -> TextValue:
        return TextValue(text)
