from typing import Any, Literal

from event_sink.domain import BooleanValue, ScalarKind
from event_sink.scalar_casters.base_caster import CasterBase


class BooleanCaster(CasterBase):
    output_type: Literal[ScalarKind.BOOLEAN] = ScalarKind.BOOLEAN

    true_literal: str = "true"
    false_literal: str = "false"

    def extract_native(self, value: Any) -> BooleanValue | None:
        if isinstance(value, bool):
            return BooleanValue(value)
        return None

    def parse_text(self, text: str) -> BooleanValue:
        if text == self.true_literal:
            return BooleanValue(True)
        if text == self.false_literal:
            return BooleanValue(False)
        raise ValueError(f"invalid boolean literal: {text!r}")
