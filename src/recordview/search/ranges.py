"""Number-range and date-range filter kinds.

Both kinds take, per field, a list of intervals; a field matches when its
value falls in any of them, and a record matches when every listed field
matches (or any one of them, with ``must_match_all_fields=False``).

Values that cannot be read as a number / date (absent, ``None``,
unparsable strings) only satisfy an interval that is unbounded on both
sides.

Date bounds may be ``datetime``/``date`` objects, ISO-8601 strings or the
symbolic ``"Now"``, each optionally shifted by an offset::

    {"start": "Now", "start_offset": {"days": -7}}        # the last week
    {"end": "2024-01-01", "end_offset": {"months": 1}}    # before February
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

from dateutil.relativedelta import relativedelta

from recordview.core.errors import InvalidOptionsError
from recordview.core.options import check_keys
from recordview.core.records import IdentifiedRecord
from recordview.core.values import as_datetime, as_number
from recordview.search.options import (
    DateRange,
    DateRangesOptions,
    NumberRange,
    NumberRangesOptions,
)

__all__ = [
    "normalize_number_ranges",
    "normalize_date_ranges",
    "referenced_fields",
    "match_number_ranges",
    "match_date_ranges",
    "resolve_offset",
]

_OPTIONS = {"ranges", "field", "must_match_all_fields"}
_OFFSET_UNITS = ("years", "months", "weeks", "days", "hours", "minutes", "seconds", "milliseconds")


def _per_field(raw: Mapping[str, Any], kind: str) -> dict[str, list[Any]]:
    check_keys(raw, _OPTIONS, kind)
    ranges = raw.get("ranges")
    field = raw.get("field")
    if field is not None:
        if isinstance(ranges, Mapping) or ranges is None:
            raise InvalidOptionsError(f"{kind} with 'field' needs a list of ranges", field="ranges")
        ranges = {field: ranges}
    if not isinstance(ranges, Mapping) or not ranges:
        raise InvalidOptionsError(f"{kind} needs at least one field in 'ranges'", field="ranges")
    per_field: dict[str, list[Any]] = {}
    for key, items in ranges.items():
        if isinstance(items, (Mapping, NumberRange, DateRange)):
            items = [items]
        items = list(items)
        if not items:
            raise InvalidOptionsError(f"no ranges given for field {key!r}", field=key)
        per_field[key] = items
    return per_field


# ── Number ranges ────────────────────────────────────────────────────────


def _number_bound(raw: Any, default: float, option: str) -> float:
    if raw is None:
        return default
    number = as_number(raw)
    if number is None:
        if isinstance(raw, float) and math.isnan(raw):
            raise InvalidOptionsError(f"{option} must not be NaN", field=option)
        raise InvalidOptionsError(f"{option} is not a number: {raw!r}", field=option, value=raw)
    return number


def _number_range(raw: Any) -> NumberRange:
    if isinstance(raw, NumberRange):
        return raw
    if isinstance(raw, Mapping):
        check_keys(raw, {"min", "max", "include_min", "include_max"}, "number range")
        return NumberRange(
            min=_number_bound(raw.get("min"), -math.inf, "min"),
            max=_number_bound(raw.get("max"), math.inf, "max"),
            include_min=bool(raw.get("include_min", False)),
            include_max=bool(raw.get("include_max", False)),
        )
    if isinstance(raw, (tuple, list)) and len(raw) == 2:
        return NumberRange(
            min=_number_bound(raw[0], -math.inf, "min"),
            max=_number_bound(raw[1], math.inf, "max"),
        )
    raise InvalidOptionsError(f"cannot interpret number range {raw!r}", field="ranges", value=raw)


def normalize_number_ranges(raw: Mapping[str, Any], **_: Any) -> NumberRangesOptions:
    per_field = _per_field(raw, "number ranges")
    return NumberRangesOptions(
        ranges={key: tuple(_number_range(item) for item in items) for key, items in per_field.items()},
        must_match_all_fields=bool(raw.get("must_match_all_fields", True)),
    )


def _number_in_range(value: float | None, bounds: NumberRange) -> bool:
    if bounds.unbounded:
        return True
    if value is None:
        return False
    above = bounds.min == -math.inf or value > bounds.min or (bounds.include_min and value == bounds.min)
    below = bounds.max == math.inf or value < bounds.max or (bounds.include_max and value == bounds.max)
    return above and below


def match_number_ranges(
    options: NumberRangesOptions, targets: Sequence[IdentifiedRecord]
) -> list[IdentifiedRecord]:
    combine = all if options.must_match_all_fields else any

    def matches(record: IdentifiedRecord) -> bool:
        return combine(
            any(_number_in_range(as_number(record.get(key)), bounds) for bounds in ranges)
            for key, ranges in options.ranges.items()
        )

    return [record for record in targets if matches(record)]


# ── Date ranges ──────────────────────────────────────────────────────────


def resolve_offset(raw: Any) -> relativedelta | timedelta | None:
    """Turn ``{"days": -7, "hours": 2}`` style offsets into a relativedelta."""
    if raw is None:
        return None
    if isinstance(raw, (relativedelta, timedelta)):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidOptionsError(f"cannot interpret date offset {raw!r}", field="offset", value=raw)
    check_keys(raw, set(_OFFSET_UNITS), "date offset")
    units = dict(raw)
    milliseconds = units.pop("milliseconds", 0)
    try:
        return relativedelta(**units, microseconds=int(milliseconds * 1000))
    except (TypeError, ValueError) as e:
        raise InvalidOptionsError(f"invalid date offset {raw!r}: {e}", field="offset", value=raw) from e


def _date_bound(raw: Any, offset: Any, option: str) -> datetime | None:
    shift = resolve_offset(offset)
    if raw is None:
        if shift is not None:
            raise InvalidOptionsError(f"{option}_offset given without {option}", field=f"{option}_offset")
        return None
    if isinstance(raw, str) and raw.strip().lower() == "now":
        bound = datetime.now(timezone.utc)
    else:
        bound = as_datetime(raw)
        if bound is None:
            raise InvalidOptionsError(f"{option} is not a date: {raw!r}", field=option, value=raw)
    return bound + shift if shift is not None else bound


def _date_range(raw: Any) -> DateRange:
    if isinstance(raw, DateRange):
        return DateRange(
            start=_date_bound(raw.start, None, "start"),
            end=_date_bound(raw.end, None, "end"),
            include_start=raw.include_start,
            include_end=raw.include_end,
        )
    if isinstance(raw, Mapping):
        check_keys(
            raw,
            {"start", "end", "include_start", "include_end", "start_offset", "end_offset"},
            "date range",
        )
        return DateRange(
            start=_date_bound(raw.get("start"), raw.get("start_offset"), "start"),
            end=_date_bound(raw.get("end"), raw.get("end_offset"), "end"),
            include_start=bool(raw.get("include_start", False)),
            include_end=bool(raw.get("include_end", False)),
        )
    if isinstance(raw, (tuple, list)) and len(raw) == 2:
        return DateRange(start=_date_bound(raw[0], None, "start"), end=_date_bound(raw[1], None, "end"))
    raise InvalidOptionsError(f"cannot interpret date range {raw!r}", field="ranges", value=raw)


def normalize_date_ranges(raw: Mapping[str, Any], **_: Any) -> DateRangesOptions:
    per_field = _per_field(raw, "date ranges")
    return DateRangesOptions(
        ranges={key: tuple(_date_range(item) for item in items) for key, items in per_field.items()},
        must_match_all_fields=bool(raw.get("must_match_all_fields", True)),
    )


def _date_in_range(value: datetime | None, bounds: DateRange) -> bool:
    if bounds.unbounded:
        return True
    if value is None:
        return False
    after = (
        bounds.start is None
        or value > bounds.start
        or (bounds.include_start and value == bounds.start)
    )
    before = bounds.end is None or value < bounds.end or (bounds.include_end and value == bounds.end)
    return after and before


def match_date_ranges(
    options: DateRangesOptions, targets: Sequence[IdentifiedRecord]
) -> list[IdentifiedRecord]:
    combine = all if options.must_match_all_fields else any

    def matches(record: IdentifiedRecord) -> bool:
        return combine(
            any(_date_in_range(as_datetime(record.get(key)), bounds) for bounds in ranges)
            for key, ranges in options.ranges.items()
        )

    return [record for record in targets if matches(record)]


def referenced_fields(options: NumberRangesOptions | DateRangesOptions) -> list[str]:
    return list(options.ranges)
