"""Stage kinds, scopes, dispositions and the per-kind processed options.

Each filter kind has its own frozen options record; together they form
the tagged union carried by :class:`Stage`. The engine dispatches on
``Stage.kind`` and never on the options' class.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

from recordview.core.errors import InvalidOptionsError
from recordview.core.options import check_keys, parse_enum
from recordview.core.records import IdentifiedRecord

__all__ = [
    "StageKind",
    "Scope",
    "PrevAction",
    "ClearTarget",
    "Disposition",
    "WordMatch",
    "StringQueryOptions",
    "NumberRange",
    "NumberRangesOptions",
    "DateRange",
    "DateRangesOptions",
    "ExactValuesOptions",
    "CustomOptions",
    "VoidOptions",
    "StageOptions",
    "Stage",
]


# ── Enums ────────────────────────────────────────────────────────────────


class StageKind(str, Enum):
    STRING_QUERY = "string_query"
    NUMBER_RANGES = "number_ranges"
    DATE_RANGES = "date_ranges"
    EXACT_VALUES = "exact_values"
    CUSTOM = "custom"
    VOID = "void"


class Scope(str, Enum):
    """What a stage is evaluated against."""

    ALL = "All"     # full base record set
    PREV = "Prev"   # composite view as it stood before the stage


class PrevAction(str, Enum):
    KEEP = "Keep"
    CLEAR_ALL = "ClearAll"
    CLEAR_SINGLE = "ClearSingle"


class ClearTarget(str, Enum):
    LAST = "Last"
    LAST_IF_SAME_KIND = "LastIfSameKind"


class WordMatch(str, Enum):
    EXACT_MATCH = "ExactMatch"
    CONTAINS = "Contains"
    STARTS_WITH = "StartsWith"
    ENDS_WITH = "EndsWith"


# ── Disposition ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Disposition:
    """What happens to earlier stages before a new one runs.

    ``target`` is only read for :attr:`PrevAction.CLEAR_SINGLE`: a
    :class:`ClearTarget` or an explicit stage index (negative wraps).
    """

    action: PrevAction = PrevAction.KEEP
    target: ClearTarget | int = ClearTarget.LAST

    @classmethod
    def keep(cls) -> Disposition:
        return cls(PrevAction.KEEP)

    @classmethod
    def clear_all(cls) -> Disposition:
        return cls(PrevAction.CLEAR_ALL)

    @classmethod
    def clear_single(cls, target: ClearTarget | str | int = ClearTarget.LAST) -> Disposition:
        if isinstance(target, bool):
            raise InvalidOptionsError("clear target must be a ClearTarget or an index", value=target)
        if not isinstance(target, int):
            target = parse_enum(ClearTarget, target, "clear target")
        return cls(PrevAction.CLEAR_SINGLE, target)

    @classmethod
    def parse(cls, raw: Any) -> Disposition:
        """Accept a Disposition, an action name, an index, or a mapping."""
        if raw is None:
            return cls.keep()
        if isinstance(raw, Disposition):
            return raw
        if isinstance(raw, int) and not isinstance(raw, bool):
            return cls.clear_single(raw)
        if isinstance(raw, Mapping):
            action = parse_enum(PrevAction, raw.get("action", PrevAction.KEEP), "disposition action")
            if action is PrevAction.CLEAR_SINGLE:
                return cls.clear_single(raw.get("target", ClearTarget.LAST))
            return cls(action)
        if isinstance(raw, str):
            if raw == "All":
                return cls.clear_all()
            for target in ClearTarget:
                if raw == target.value:
                    return cls.clear_single(target)
            action = parse_enum(PrevAction, raw, "disposition")
            if action is PrevAction.CLEAR_SINGLE:
                return cls.clear_single()
            return cls(action)
        raise InvalidOptionsError(f"cannot interpret disposition {raw!r}", field="disposition", value=raw)


# ── Per-kind options ─────────────────────────────────────────────────────

WordSeparator = Union[str, "re.Pattern[str]", Callable[[str], list[str]]]


@dataclass(frozen=True)
class StringQueryOptions:
    query: str
    include_fields: tuple[str, ...]
    exclude_fields: tuple[str, ...] = ()
    word_match: WordMatch = WordMatch.CONTAINS
    require_all_words: bool = True
    words_in_order: bool = False
    consecutive_words: bool = False
    converters: Mapping[str, Callable[[Any], str]] = field(default_factory=dict)
    ignore_whitespace: bool = True
    word_separators: tuple[WordSeparator, ...] = (" ",)
    case_sensitive: bool = False


@dataclass(frozen=True)
class NumberRange:
    """Numeric interval; the default bounds are unbounded and exclusive."""

    min: float = -math.inf
    max: float = math.inf
    include_min: bool = False
    include_max: bool = False

    @property
    def unbounded(self) -> bool:
        return self.min == -math.inf and self.max == math.inf


@dataclass(frozen=True)
class NumberRangesOptions:
    ranges: Mapping[str, tuple[NumberRange, ...]]
    must_match_all_fields: bool = True


@dataclass(frozen=True)
class DateRange:
    """Resolved interval; ``None`` means unbounded on that side."""

    start: datetime | None = None
    end: datetime | None = None
    include_start: bool = False
    include_end: bool = False

    @property
    def unbounded(self) -> bool:
        return self.start is None and self.end is None


@dataclass(frozen=True)
class DateRangesOptions:
    ranges: Mapping[str, tuple[DateRange, ...]]
    must_match_all_fields: bool = True


@dataclass(frozen=True)
class ExactValuesOptions:
    values: Mapping[str, tuple[Any, ...]]
    compare_fns: Mapping[str, Callable[[Any, Any], bool]] = field(default_factory=dict)
    must_match_all_fields: bool = True


@dataclass(frozen=True)
class CustomOptions:
    predicate: Callable[[IdentifiedRecord, list[IdentifiedRecord]], bool]
    name: str = "custom"


@dataclass(frozen=True)
class VoidOptions:
    pass


StageOptions = Union[
    StringQueryOptions,
    NumberRangesOptions,
    DateRangesOptions,
    ExactValuesOptions,
    CustomOptions,
    VoidOptions,
]


# ── Stage ────────────────────────────────────────────────────────────────


@dataclass(eq=False)
class Stage:
    """One applied filter in the engine's stack.

    ``results`` holds references into the stage's target set, in
    evaluation order, without duplicate identities.
    """

    kind: StageKind
    options: StageOptions
    scope: Scope = Scope.PREV
    revert: bool = False
    disposition: Disposition = field(default_factory=Disposition.keep)
    results: list[IdentifiedRecord] = field(default_factory=list)

    @property
    def result_identities(self) -> set[int]:
        return {record.identity for record in self.results}

    def __repr__(self) -> str:
        return (
            f"Stage(kind={self.kind.value}, scope={self.scope.value}, "
            f"revert={self.revert}, results={len(self.results)})"
        )
