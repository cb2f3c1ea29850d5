from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional, Sequence
from urllib.parse import urlparse

from variant_engine.models.attribute import AttributeType

# Attribute values are stored as (value: str, type) pairs; this module turns
# the pair into a typed Python value on read and checks it on write.

MULTI_SELECT_SEPARATOR = ","

_TRUE_VALUES = {"true", "1", "yes", "y", "on"}
_FALSE_VALUES = {"false", "0", "no", "n", "off"}
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class TypedAttributeValue:
    type: AttributeType
    raw: str
    value: Any


def split_multi_select(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(MULTI_SELECT_SEPARATOR) if part.strip()]


def _parse_number(raw: str) -> float:
    number = float(raw.strip())
    if not math.isfinite(number):
        raise ValueError(f"Not a finite number: {raw!r}")
    return number


def _parse_boolean(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Not a boolean: {raw!r}")


def _parse_date(raw: str) -> date:
    return date.fromisoformat(raw.strip())


def _parse_url(raw: str) -> str:
    text = raw.strip()
    parsed = urlparse(text)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Not an http(s) URL: {raw!r}")
    return text


def _parse_email(raw: str) -> str:
    text = raw.strip()
    if not _EMAIL_RE.match(text):
        raise ValueError(f"Not an email address: {raw!r}")
    return text


def parse_attribute_value(attr_type: AttributeType, raw: str) -> TypedAttributeValue:
    """Coerce a stored string according to its attribute type.

    Raises ``ValueError`` when the string does not parse for the type.
    SELECT and TEXT stay strings; MULTI_SELECT becomes a list of options.
    """
    attr_type = AttributeType(attr_type)
    text = "" if raw is None else str(raw)
    if attr_type == AttributeType.NUMBER:
        value: Any = _parse_number(text)
    elif attr_type == AttributeType.BOOLEAN:
        value = _parse_boolean(text)
    elif attr_type == AttributeType.DATE:
        value = _parse_date(text)
    elif attr_type == AttributeType.URL:
        value = _parse_url(text)
    elif attr_type == AttributeType.EMAIL:
        value = _parse_email(text)
    elif attr_type == AttributeType.MULTI_SELECT:
        value = split_multi_select(text)
    else:
        value = text.strip()
    return TypedAttributeValue(type=attr_type, raw=text, value=value)


def check_attribute_value(
    attr_type: AttributeType,
    raw: str,
    options: Optional[Sequence[str]] = None,
) -> Optional[str]:
    """Return a problem description, or None when ``raw`` is acceptable for the type."""
    try:
        typed = parse_attribute_value(attr_type, raw)
    except ValueError as exc:
        return str(exc)

    allowed = list(options or [])
    if typed.type == AttributeType.SELECT and allowed and typed.value not in allowed:
        return f"{typed.value!r} is not one of {allowed}"
    if typed.type == AttributeType.MULTI_SELECT:
        if not typed.value:
            return "At least one option is required"
        unknown = [item for item in typed.value if allowed and item not in allowed]
        if unknown:
            return f"{unknown} not in {allowed}"
    return None
