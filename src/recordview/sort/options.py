"""Sort orders, null priorities, insertion policies and the processed sort level."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple, Union

__all__ = [
    "SortOrder",
    "NullPriority",
    "Position",
    "Placement",
    "PresetPosition",
    "RelativeToField",
    "AtIndex",
    "InsertPolicy",
    "DEFAULT_INSERT_POLICY",
    "SortLevel",
    "SortRange",
    "CompareFn",
    "NestedMatchFn",
]

CompareFn = Callable[[Any, Any], int]
NestedMatchFn = Callable[[Any, Any], bool]


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"
    ORIGINAL = "ORIGINAL"     # ascending identity, i.e. store insertion order
    TOGGLE = "TOGGLE"         # request only: advance the field's toggle cycle


class NullPriority(str, Enum):
    ALWAYS_FIRST = "AlwaysFirst"
    ALWAYS_LAST = "AlwaysLast"
    FIRST_ON_ASC = "FirstOnASC"
    LAST_ON_ASC = "LastOnASC"

    @property
    def puts_first(self) -> bool:
        return self in (NullPriority.ALWAYS_FIRST, NullPriority.FIRST_ON_ASC)


# ── Insertion policies ───────────────────────────────────────────────────


class Position(str, Enum):
    START = "Start"             # new outermost level
    END = "End"                 # new innermost level
    SAME_FIELD = "SameField"    # replace the level sorting this field


class Placement(str, Enum):
    REPLACE = "Replace"
    SUPER = "Super"     # just outside the named level
    NESTED = "Nested"   # just inside the named level


@dataclass(frozen=True)
class PresetPosition:
    position: Position = Position.SAME_FIELD
    fallback: InsertPolicy | None = None    # SAME_FIELD with no level for the field


@dataclass(frozen=True)
class RelativeToField:
    field: str
    placement: Placement = Placement.REPLACE
    fallback: InsertPolicy | None = None    # named field is not sorted


@dataclass(frozen=True)
class AtIndex:
    index: int                  # clamped to the level list
    replace: bool = False


InsertPolicy = Union[PresetPosition, RelativeToField, AtIndex]

DEFAULT_INSERT_POLICY = PresetPosition(Position.SAME_FIELD, fallback=PresetPosition(Position.END))


# ── Levels and ranges ────────────────────────────────────────────────────


@dataclass(frozen=True)
class SortLevel:
    """One applied sort key.

    ``compare_fn`` and ``nested_match_fn`` take the two field values. The
    order multiplier is applied by the sorter, never inside them.
    """

    field: str
    order: SortOrder
    compare_fn: CompareFn
    nested_match_fn: NestedMatchFn
    case_sensitive: bool = False
    trim_whitespace: bool = True
    truncate_decimals: bool = False
    null_priority: NullPriority = NullPriority.FIRST_ON_ASC
    absent_priority: NullPriority = NullPriority.FIRST_ON_ASC
    custom_compare: bool = False

    @property
    def multiplier(self) -> int:
        return -1 if self.order is SortOrder.DESC else 1


class SortRange(NamedTuple):
    """Half-open index interval ``[start, end)`` of tied records."""

    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start
