"""
Sorter: hierarchical multi-key ordering of the shared view, in place.

Manifesto:
    A multi-column sort is a stack of levels where each level only breaks
    the ties the level above it left. Instead of a composite key, each
    level sorts inside the tie ranges of the previous one and records its
    own tie ranges for the next. Changing a level only invalidates that
    level and the ones nested under it.

Architecture:
    ::

        levels:  [ L0(name ASC) ,  L1(id DESC) ,  ... ]
        ranges:  [ R0           ,  R1          ,  ... ]   parallel flat lists

        resort level i:
            inputs  = [0, len(view))        if i == 0
                    = ranges[i - 1]         otherwise
            for r in inputs: stable-sort view[r] by Li
                             (ORIGINAL: by identity)
            ranges[i] = maximal runs inside each r where
                        Li.nested_match(prev, next) holds

        sort(field, order)
            TOGGLE ─► resolve next order in the field's cycle
            build level ─► resolve insert policy ─► splice
            resort from splice index to the end
            notify sort.options_changed / sort.performed / sort.view_changed

    Toggle cycle per field (default)::

        Unsorted ──► ASC ──► DESC ──► ORIGINAL ──► ASC ──► ...

Examples:
    >>> sorter.sort("name", "ASC")
    >>> sorter.sort("id", "DESC")           # ties on name broken by id
    >>> [r["name"] for r in sorter.get_view()]
    >>> sorter.sort("name")                 # toggle: ASC -> DESC
    >>> sorter.clear_sort()                 # back to identity order

Guardrails:
    ❌ DON'T: Change view membership; the search engine owns it
    ✅ DO: Let upstream changes arrive through search.results_changed
    ❌ DON'T: Expect an exception for an unknown field
    ✅ DO: Pass on_warning= to observe rejected levels

Tags:
    sort, multi-key, hierarchical, incremental, recordview
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from functools import cmp_to_key
from typing import Any

from recordview.core.errors import InvalidOptionsError, InvalidReferenceError
from recordview.core.events import Event, EventBus
from recordview.core.fields import FieldRegistry, WarningCallback, check_references
from recordview.core.logging import get_logger
from recordview.core.records import IdentifiedRecord
from recordview.core.settings import RecordViewSettings, get_settings
from recordview.core.view import RecordView, same_sequence
from recordview.core.options import parse_enum
from recordview.sort.compare import build_compare, build_nested_match
from recordview.sort.options import (
    DEFAULT_INSERT_POLICY,
    AtIndex,
    CompareFn,
    InsertPolicy,
    NestedMatchFn,
    NullPriority,
    Placement,
    Position,
    PresetPosition,
    RelativeToField,
    SortLevel,
    SortOrder,
    SortRange,
)

__all__ = ["Sorter"]

logger = get_logger(__name__)


def _identity_key(record: IdentifiedRecord) -> int:
    return record.identity


class Sorter:
    """Multi-level sort over a :class:`RecordView`.

    Args:
        view: Shared view whose order this sorter owns
        fields: Registry used to validate the sorted field
        bus: Where ``sort.*`` notifications go; upstream changes arrive here
        settings: Toggle cycle and null priorities; ``get_settings()`` if omitted
        on_warning: Called with the InvalidReferenceError of a rejected level
    """

    def __init__(
        self,
        view: RecordView,
        fields: FieldRegistry,
        bus: EventBus,
        *,
        settings: RecordViewSettings | None = None,
        on_warning: WarningCallback | None = None,
    ) -> None:
        self._view = view
        self._view.claim(RecordView.ORDER, self)
        self._fields = fields
        self._bus = bus
        self._settings = settings or get_settings()
        self._on_warning = on_warning
        self._levels: list[SortLevel] = []
        self._ranges: list[list[SortRange]] = []
        self._last_view: list[IdentifiedRecord] = view.snapshot()
        self._subscriptions = [
            bus.subscribe("search.results_changed", self._on_upstream_changed),
            bus.subscribe("records.updated", self._on_upstream_changed),
        ]

    # ── Queries ──────────────────────────────────────────────────────────

    def get_view(self) -> list[IdentifiedRecord]:
        return self._view.snapshot()

    def get_levels(self) -> list[SortLevel]:
        return list(self._levels)

    def get_ranges(self) -> list[list[SortRange]]:
        """Tie ranges produced by each level, parallel to :meth:`get_levels`."""
        return [list(ranges) for ranges in self._ranges]

    def get_sorted_fields(self) -> list[str]:
        return [level.field for level in self._levels]

    def get_orders(self) -> list[SortOrder]:
        return [level.order for level in self._levels]

    def get_field_order(self, index_or_field: int | str) -> SortOrder | None:
        if isinstance(index_or_field, int):
            if 0 <= index_or_field < len(self._levels):
                return self._levels[index_or_field].order
            return None
        level = self._level_for(index_or_field)
        return level.order if level is not None else None

    def is_field_sorted(self, field: str) -> bool:
        return self._level_for(field) is not None

    def _level_for(self, field: str) -> SortLevel | None:
        return next((level for level in self._levels if level.field == field), None)

    def _index_of(self, field: str) -> int:
        return next((i for i, level in enumerate(self._levels) if level.field == field), -1)

    # ── Apply ────────────────────────────────────────────────────────────

    def sort(
        self,
        field: str,
        order: SortOrder | str = SortOrder.TOGGLE,
        *,
        insert_policy: InsertPolicy | None = None,
        compare_fn: CompareFn | None = None,
        nested_match_fn: NestedMatchFn | None = None,
        case_sensitive: bool = False,
        trim_whitespace: bool = True,
        truncate_decimals: bool = False,
        null_priority: NullPriority | str | None = None,
        absent_priority: NullPriority | str | None = None,
        toggle_orders: Sequence[SortOrder | str] | None = None,
        toggle_index: int | None = None,
    ) -> SortLevel | None:
        """Apply one sort level. Returns it, or None when rejected."""
        if not check_references(
            self._fields, [field], component="sorter", operation="sort", on_warning=self._on_warning
        ):
            return None

        order = parse_enum(SortOrder, order, "sort order")
        if order is SortOrder.TOGGLE:
            order = self._next_toggle_order(field, toggle_orders, toggle_index)

        level = self._build_level(
            field,
            order,
            compare_fn=compare_fn,
            nested_match_fn=nested_match_fn,
            case_sensitive=case_sensitive,
            trim_whitespace=trim_whitespace,
            truncate_decimals=truncate_decimals,
            null_priority=null_priority,
            absent_priority=absent_priority,
        )

        splice = self._resolve_insertion(insert_policy or DEFAULT_INSERT_POLICY, field)
        if splice is None:
            return None
        index, delete_count = splice

        previous_levels = list(self._levels)
        self._levels[index:index + delete_count] = [level]

        # One level per field
        duplicates = [i for i, other in enumerate(self._levels) if other.field == field and other is not level]
        for i in reversed(duplicates):
            del self._levels[i]
        start = min([index, *duplicates])
        start = min(start, len(self._levels) - 1)

        del self._ranges[start:]
        self._resort_from(start)
        logger.debug(
            "level_applied",
            field=field,
            order=order.value,
            position=self._levels.index(level),
            levels=len(self._levels),
        )

        self._bus.emit("sort.options_changed", "sorter", levels=self.get_levels(), previous=previous_levels)
        self._bus.emit("sort.performed", "sorter", level=level)
        self._publish_view()
        return level

    apply_level = sort

    def clear_sort(self) -> None:
        """Drop every level and restore identity order."""
        previous_levels = list(self._levels)
        self._levels.clear()
        self._ranges.clear()
        self._view.sort_range(self, 0, len(self._view), key=_identity_key)
        if previous_levels:
            self._bus.emit("sort.options_changed", "sorter", levels=[], previous=previous_levels)
        self._publish_view()

    clear_levels = clear_sort

    # ── Level construction ───────────────────────────────────────────────

    def _next_toggle_order(
        self,
        field: str,
        toggle_orders: Sequence[SortOrder | str] | None,
        toggle_index: int | None,
    ) -> SortOrder:
        cycle = [
            parse_enum(SortOrder, order, "toggle order")
            for order in (toggle_orders or self._settings.toggle_orders)
        ]
        if not cycle or SortOrder.TOGGLE in cycle:
            raise InvalidOptionsError("toggle_orders must list concrete sort orders", field="toggle_orders")
        if toggle_index is not None:
            if not 0 <= toggle_index < len(cycle):
                raise InvalidOptionsError(
                    f"toggle_index {toggle_index} outside a cycle of {len(cycle)}",
                    field="toggle_index",
                    value=toggle_index,
                )
            return cycle[toggle_index]

        current = self._level_for(field)
        if current is None:
            return parse_enum(SortOrder, self._settings.first_toggle_order, "first toggle order")
        position = cycle.index(current.order) if current.order in cycle else -1
        return cycle[(position + 1) % len(cycle)]

    def _build_level(
        self,
        field: str,
        order: SortOrder,
        *,
        compare_fn: CompareFn | None,
        nested_match_fn: NestedMatchFn | None,
        case_sensitive: bool,
        trim_whitespace: bool,
        truncate_decimals: bool,
        null_priority: NullPriority | str | None,
        absent_priority: NullPriority | str | None,
    ) -> SortLevel:
        nulls = parse_enum(NullPriority, null_priority or self._settings.null_priority, "null priority")
        absents = parse_enum(NullPriority, absent_priority or self._settings.absent_priority, "absent priority")
        compare = compare_fn or build_compare(
            case_sensitive=case_sensitive,
            trim_whitespace=trim_whitespace,
            truncate_decimals=truncate_decimals,
            null_priority=nulls,
            absent_priority=absents,
        )
        return SortLevel(
            field=field,
            order=order,
            compare_fn=compare,
            nested_match_fn=nested_match_fn or build_nested_match(compare),
            case_sensitive=case_sensitive,
            trim_whitespace=trim_whitespace,
            truncate_decimals=truncate_decimals,
            null_priority=nulls,
            absent_priority=absents,
            custom_compare=compare_fn is not None,
        )

    def _resolve_insertion(self, policy: InsertPolicy, field: str) -> tuple[int, int] | None:
        """Splice index and delete count (0 insert, 1 replace) for a new level."""
        count = len(self._levels)
        if isinstance(policy, PresetPosition):
            if policy.position is Position.START:
                return 0, 0
            if policy.position is Position.END:
                return count, 0
            existing = self._index_of(field)
            if existing >= 0:
                return existing, 1
            return self._resolve_insertion(policy.fallback or PresetPosition(Position.END), field)

        if isinstance(policy, RelativeToField):
            anchor = self._index_of(policy.field)
            if anchor < 0:
                if policy.fallback is not None:
                    return self._resolve_insertion(policy.fallback, field)
                self._warn_unsorted_anchor(policy.field)
                return None
            if policy.placement is Placement.REPLACE:
                return anchor, 1
            if policy.placement is Placement.SUPER:
                return anchor, 0
            return anchor + 1, 0

        if isinstance(policy, AtIndex):
            if policy.replace and count:
                return max(0, min(policy.index, count - 1)), 1
            return max(0, min(policy.index, count)), 0

        raise InvalidOptionsError(f"unknown insert policy {policy!r}", field="insert_policy", value=policy)

    def _warn_unsorted_anchor(self, anchor: str) -> None:
        error = InvalidReferenceError(
            f"insert policy names {anchor!r}, which has no sort level",
            field=anchor,
            constraint="sorted_field",
        ).with_context(component="sorter", operation="sort:insert_policy")
        logger.warning("insert_anchor_missing", field=anchor, levels=self.get_sorted_fields())
        if self._on_warning is not None:
            self._on_warning(error)

    # ── Re-sorting ───────────────────────────────────────────────────────

    def _resort_from(self, start: int) -> None:
        for index in range(start, len(self._levels)):
            level = self._levels[index]
            if index == 0:
                inputs = [SortRange(0, len(self._view))] if len(self._view) else []
            else:
                inputs = self._ranges[index - 1]
            key = self._key_for(level)
            for bounds in inputs:
                self._view.sort_range(self, bounds.start, bounds.end, key=key)
            produced = self._cut_ranges(level, inputs)
            if index < len(self._ranges):
                self._ranges[index] = produced
            else:
                self._ranges.append(produced)
        del self._ranges[len(self._levels):]

    def _key_for(self, level: SortLevel) -> Any:
        if level.order is SortOrder.ORIGINAL:
            return _identity_key
        field, compare, multiplier = level.field, level.compare_fn, level.multiplier
        return cmp_to_key(lambda a, b: multiplier * compare(a.get(field), b.get(field)))

    def _cut_ranges(self, level: SortLevel, inputs: Iterable[SortRange]) -> list[SortRange]:
        if level.order is SortOrder.ORIGINAL:
            # Identities are unique: every record is its own range
            return [SortRange(i, i + 1) for bounds in inputs for i in range(bounds.start, bounds.end)]
        field, equal = level.field, level.nested_match_fn
        produced: list[SortRange] = []
        for bounds in inputs:
            run_start = bounds.start
            for i in range(bounds.start + 1, bounds.end):
                if not equal(self._view[i - 1].get(field), self._view[i].get(field)):
                    produced.append(SortRange(run_start, i))
                    run_start = i
            produced.append(SortRange(run_start, bounds.end))
        return produced

    # ── Upstream changes ─────────────────────────────────────────────────

    def _on_upstream_changed(self, event: Event) -> None:
        if self._levels:
            self._ranges.clear()
            self._resort_from(0)
        self._publish_view()

    def _publish_view(self) -> bool:
        current = self._view.snapshot()
        if same_sequence(current, self._last_view):
            return False
        previous, self._last_view = self._last_view, current
        self._bus.emit("sort.view_changed", "sorter", view=list(current), previous=previous)
        return True

    def close(self) -> None:
        for sub_id in self._subscriptions:
            self._bus.unsubscribe(sub_id)
        self._subscriptions = []
