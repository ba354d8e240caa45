from typing import Any

from event_sink.domain import ScalarKind, TypedValue
from event_sink.scalar_casters.base_caster import CasterBase
from event_sink.scalar_casters.boolean_caster import BooleanCaster
from event_sink.scalar_casters.float_caster import FloatCaster
from event_sink.scalar_casters.inferred_caster import InferredCaster
from event_sink.scalar_casters.integer_caster import SignedIntegerCaster, UnsignedIntegerCaster
from event_sink.scalar_casters.string_caster import TextCaster

CASTERS: dict[ScalarKind, CasterBase] = {
    ScalarKind.BOOLEAN: BooleanCaster(),
    ScalarKind.FLOAT: FloatCaster(),
    ScalarKind.SIGNED_INTEGER: SignedIntegerCaster(),
    ScalarKind.UNSIGNED_INTEGER: UnsignedIntegerCaster(),
    ScalarKind.TEXT: TextCaster(),
    ScalarKind.UNSPECIFIED: InferredCaster(),
}

if missing := set(ScalarKind) - set(CASTERS):
    raise RuntimeError(f"No caster registered for scalar kinds: {sorted(k.value for k in missing)}")


def coerce(value: Any, target: ScalarKind, allow_fallback_parse: bool, *, path: str = "") -> TypedValue:
    """
    Convert one selected JSON value into a TypedValue.

    Raises:
      MissingValueError: no native representation and no fallback parse applied.
      ConversionError: the fallback parse of a string node failed.
      PayloadParseError: UNSPECIFIED target met an array, object or null.
    """
    return CASTERS[target].cast(value, path=path, allow_fallback_parse=allow_fallback_parse)
