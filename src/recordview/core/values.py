"""Classification and coercion of primitive field values.

Records hold strings, numbers, booleans, dates, ``None`` or nothing at
all (:data:`MISSING`). Search kinds and the sort comparator both need to
tell these apart the same way; booleans are never numbers here.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timezone
from typing import Any

from dateutil import parser as date_parser

from recordview.core.records import MISSING

__all__ = ["value_kind", "as_number", "as_datetime", "is_number"]


def value_kind(value: Any) -> str:
    """One of ``absent``, ``null``, ``boolean``, ``number``, ``date``, ``string``, ``other``."""
    if value is MISSING:
        return "absent"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, (datetime, date)):
        return "date"
    if isinstance(value, str):
        return "string"
    return "other"


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def as_number(value: Any) -> float | None:
    """Numbers as-is, numeric strings parsed; anything else (or NaN) is None."""
    if is_number(value):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def as_datetime(value: Any) -> datetime | None:
    """Timezone-aware datetime for dates, datetimes and ISO-8601 strings.

    Naive values are taken to be UTC so that every comparison is between
    aware datetimes.
    """
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            result = date_parser.isoparse(value.strip())
        except (ValueError, OverflowError):
            return None
    else:
        return None
    if result.tzinfo is None:
        result = result.replace(tzinfo=timezone.utc)
    return result
