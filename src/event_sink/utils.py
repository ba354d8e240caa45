import json
import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a valid JSON value")


def strict_json_loads(raw: str | bytes) -> Any:
    """json.loads without the NaN / Infinity / -Infinity extensions."""
    return json.loads(raw, parse_constant=_reject_constant)


def redact_dsn(dsn: str) -> str:
    """Drop the password from a connection URL so it can be logged."""
    parts = urlsplit(dsn)
    if parts.password is None:
        return dsn
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
    return urlunsplit(parts._replace(netloc=netloc))
