"""Input cleanup shared by the help center services."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Iterable, TypeVar

E = TypeVar("E", bound=Enum)

_SCRIPT_BLOCK = re.compile(r"<script[\s\S]*?>[\s\S]*?</script>", re.IGNORECASE)
_JAVASCRIPT_SCHEME = re.compile(r"javascript:", re.IGNORECASE)


def sanitize_text(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()


def sanitize_rich_text(value: Any) -> str:
    """Strip ``<script>`` blocks and ``javascript:`` schemes from user supplied markup."""

    if not isinstance(value, str):
        return ""
    cleaned = _SCRIPT_BLOCK.sub("", value)
    cleaned = _JAVASCRIPT_SCHEME.sub("", cleaned)
    return cleaned.strip()


def parse_tags(value: Any) -> list[str]:
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return []
    return [tag for tag in (str(item).strip() for item in items) if tag]


def coerce_choice(enum_cls: type[E], value: Any, default: E | None) -> E | None:
    """Map ``value`` onto ``enum_cls``; anything unrecognised becomes ``default``."""

    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().upper())
        except ValueError:
            return default
    return default


def to_bool(value: Any, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"
