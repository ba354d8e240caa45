import json
import re
from typing import Any

SIGNED_64_MIN = -(2**63)
SIGNED_64_MAX = 2**63 - 1
UNSIGNED_64_MAX = 2**64 - 1

_INTEGER_TEXT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_TEXT_RE = re.compile(
    r"[+-]?(?:inf|infinity|nan|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)",
    re.IGNORECASE,
)


def is_json_integer(value: Any) -> bool:
    # bool is a subclass of int, JSON true/false are never numbers
    return isinstance(value, int) and not isinstance(value, bool)


def fits_signed_64(number: int) -> bool:
    return SIGNED_64_MIN <= number <= SIGNED_64_MAX


def fits_unsigned_64(number: int) -> bool:
    return 0 <= number <= UNSIGNED_64_MAX


def exact_float(number: int) -> float | None:
    """The float equal to `number`, or None if the conversion would lose precision."""
    try:
        converted = float(number)
    except OverflowError:
        return None
    return converted if converted == number else None


def parse_integer_text(text: str) -> int:
    if not _INTEGER_TEXT_RE.fullmatch(text):
        raise ValueError(f"invalid integer literal: {text!r}")
    return int(text)


def parse_float_text(text: str) -> float:
    if not _FLOAT_TEXT_RE.fullmatch(text):
        raise ValueError(f"invalid float literal: {text!r}")
    return float(text)


def describe_json(value: Any) -> str:
    return json.dumps(value, default=str)
