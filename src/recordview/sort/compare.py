"""Default value comparator for sort levels.

Rules, first match wins:

    1. ``None`` on either side: both ``None`` → 0; otherwise the null
       priority decides which side sorts first
    2. :data:`MISSING` on either side: same, with the absent priority
    3. str vs str: optional trim / case-fold, then lexicographic
    4. number vs number (booleans excluded): optional truncation
    5. date vs date: millisecond timestamps
    6. anything else: equal → 0, else ``<``

The null/absent result is a raw -1/+1 that the sorter still multiplies
by the level's direction, so ``AlwaysFirst`` under ``DESC`` puts nulls
last, exactly like ``FirstOnASC``.

A failure inside the comparator (e.g. ``"a" < 3``) is logged and the
pair is treated as equal.
"""

from __future__ import annotations

import math
from datetime import date
from functools import partial
from typing import Any

from recordview.core.logging import get_logger
from recordview.core.records import MISSING
from recordview.core.values import as_datetime, is_number
from recordview.sort.options import CompareFn, NestedMatchFn, NullPriority

__all__ = ["default_compare", "build_compare", "build_nested_match"]

logger = get_logger(__name__)


def _priority(a_is_empty: bool, b_is_empty: bool, priority: NullPriority) -> int:
    if priority.puts_first:
        return -1 if a_is_empty else 1
    return -1 if b_is_empty else 1


def _timestamp_ms(value: date) -> int:
    return int(as_datetime(value).timestamp() * 1000)


def default_compare(
    a: Any,
    b: Any,
    *,
    case_sensitive: bool = False,
    trim_whitespace: bool = True,
    truncate_decimals: bool = False,
    null_priority: NullPriority = NullPriority.FIRST_ON_ASC,
    absent_priority: NullPriority = NullPriority.FIRST_ON_ASC,
) -> int:
    try:
        if a is None or b is None:
            if a is None and b is None:
                return 0
            return _priority(a is None, b is None, null_priority)

        if a is MISSING or b is MISSING:
            if a is MISSING and b is MISSING:
                return 0
            return _priority(a is MISSING, b is MISSING, absent_priority)

        if isinstance(a, str) and isinstance(b, str):
            if trim_whitespace:
                a, b = a.strip(), b.strip()
            if not case_sensitive:
                a, b = a.lower(), b.lower()
            return (a > b) - (a < b)

        if is_number(a) and is_number(b):
            if truncate_decimals:
                a, b = math.trunc(a), math.trunc(b)
            return (a > b) - (a < b)

        if isinstance(a, date) and isinstance(b, date):
            a, b = _timestamp_ms(a), _timestamp_ms(b)
            return (a > b) - (a < b)

        if a == b:
            return 0
        return -1 if a < b else 1
    except Exception as exc:
        logger.error("default_compare_failed", left=repr(a), right=repr(b), error=str(exc))
        return 0


def build_compare(**options: Any) -> CompareFn:
    """Default comparator bound to one level's normalization options."""
    return partial(default_compare, **options)


def build_nested_match(compare: CompareFn) -> NestedMatchFn:
    """Equality-only view of ``compare``, used to cut tie ranges."""

    def nested_match(a: Any, b: Any) -> bool:
        return compare(a, b) == 0

    return nested_match
