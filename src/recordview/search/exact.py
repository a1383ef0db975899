"""Exact-values filter kind.

Per field, a record matches when its value equals one of the listed
values. ``None`` matches only a listed ``None``; an absent field matches
only a listed :data:`MISSING`. Booleans never equal numbers, so
``True`` does not match ``1``. A per-field ``compare_fns`` entry
``(record_value, listed_value) -> bool`` replaces the default equality.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from recordview.core.errors import InvalidOptionsError
from recordview.core.options import check_keys
from recordview.core.records import MISSING, IdentifiedRecord
from recordview.search.options import ExactValuesOptions

__all__ = ["normalize", "referenced_fields", "match", "default_equals"]

_OPTIONS = {"values", "compare_fns", "must_match_all_fields"}


def default_equals(value: Any, expected: Any) -> bool:
    if value is MISSING or expected is MISSING:
        return value is expected
    if isinstance(value, bool) != isinstance(expected, bool):
        return False
    return value == expected


def normalize(raw: Mapping[str, Any], **_: Any) -> ExactValuesOptions:
    check_keys(raw, _OPTIONS, "exact values")
    values = raw.get("values")
    if not isinstance(values, Mapping) or not values:
        raise InvalidOptionsError("exact values needs at least one field in 'values'", field="values")
    per_field: dict[str, tuple[Any, ...]] = {}
    for key, listed in values.items():
        if isinstance(listed, (list, tuple, set, frozenset)):
            per_field[key] = tuple(listed)
        else:
            per_field[key] = (listed,)

    compare_fns = dict(raw.get("compare_fns") or {})
    for key, compare in compare_fns.items():
        if key not in per_field:
            raise InvalidOptionsError(f"compare function given for unlisted field {key!r}", field=key)
        if not callable(compare):
            raise InvalidOptionsError(f"compare function for {key!r} is not callable", field=key)

    return ExactValuesOptions(
        values=per_field,
        compare_fns=compare_fns,
        must_match_all_fields=bool(raw.get("must_match_all_fields", True)),
    )


def referenced_fields(options: ExactValuesOptions) -> list[str]:
    return list(options.values)


def match(options: ExactValuesOptions, targets: Sequence[IdentifiedRecord]) -> list[IdentifiedRecord]:
    combine = all if options.must_match_all_fields else any

    def field_matches(record: IdentifiedRecord, key: str) -> bool:
        equals = options.compare_fns.get(key, default_equals)
        value = record.get(key)
        return any(equals(value, expected) for expected in options.values[key])

    return [
        record
        for record in targets
        if combine(field_matches(record, key) for key in options.values)
    ]
