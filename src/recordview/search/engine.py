"""
Search engine: an ordered stack of filter stages over the record store.

Manifesto:
    Filtering a live dataset should cost work proportional to what
    changed. Each stage keeps its own result list; store deltas are pushed
    through the stack stage by stage instead of re-running every filter
    over the whole base set.

    - **Composable:** stages stack, each against the base set or the
      previous composite
    - **Incremental:** additions, removals and updates touch only the
      affected records
    - **Quiet:** ``search.results_changed`` fires only when membership or
      order of the composite really changed

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                      SearchEngine                            │
        ├─────────────────────────────────────────────────────────────┤
        │  search(kind, options)                                       │
        │    1. normalize options (per-kind handler)                   │
        │    2. check field references ──► warning + no-op             │
        │    3. apply disposition (Keep / ClearAll / ClearSingle)      │
        │    4. target = base set | composite before this stage        │
        │    5. match (+ revert = complement within target)            │
        │    6. push stage, recompute composite, notify                │
        ├─────────────────────────────────────────────────────────────┤
        │  composite view: scan stages backward, collect results,      │
        │  stop at (and include) the first Prev-scoped stage, then     │
        │  reverse and de-duplicate by identity                        │
        └─────────────────────────────────────────────────────────────┘

        records.added ─────┐
        records.removed ───┼──► stage results ──► composite ──► RecordView
        records.updated ───┘                           │
                                                       └──► search.results_changed

Examples:
    >>> engine.search("number_ranges", field="age", ranges=[{"min": 20}])
    Stage(kind=number_ranges, scope=Prev, revert=False, results=...)
    >>> engine.search("string_query", query="john", scope="All")
    >>> [r["name"] for r in engine.get_composite_view()]

Guardrails:
    ❌ DON'T: Write to the RecordView's order; the sorter owns it
    ✅ DO: Read the composite through get_composite_view()
    ❌ DON'T: Expect an exception for an unknown field
    ✅ DO: Pass on_warning= to observe rejected stages

Tags:
    search, filter-stack, incremental, recordview
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from recordview.core.events import Event
from recordview.core.fields import FieldRegistry, WarningCallback, check_references
from recordview.core.logging import get_logger
from recordview.core.options import parse_enum
from recordview.core.records import IdentifiedRecord, RecordStore
from recordview.core.settings import RecordViewSettings, get_settings
from recordview.core.view import RecordView, same_sequence
from recordview.search import custom, exact, ranges, string_query
from recordview.search.options import (
    ClearTarget,
    Disposition,
    PrevAction,
    Scope,
    Stage,
    StageKind,
    StageOptions,
)

__all__ = ["SearchEngine", "KindHandler", "KIND_HANDLERS"]

logger = get_logger(__name__)


@dataclass(frozen=True)
class KindHandler:
    """Normalize / field-reference / match functions for one stage kind."""

    normalize: Callable[..., StageOptions]
    fields: Callable[[Any], list[str]]
    match: Callable[[Any, Sequence[IdentifiedRecord]], list[IdentifiedRecord]]


KIND_HANDLERS: dict[StageKind, KindHandler] = {
    StageKind.STRING_QUERY: KindHandler(
        string_query.normalize, string_query.referenced_fields, string_query.match
    ),
    StageKind.NUMBER_RANGES: KindHandler(
        ranges.normalize_number_ranges, ranges.referenced_fields, ranges.match_number_ranges
    ),
    StageKind.DATE_RANGES: KindHandler(
        ranges.normalize_date_ranges, ranges.referenced_fields, ranges.match_date_ranges
    ),
    StageKind.EXACT_VALUES: KindHandler(exact.normalize, exact.referenced_fields, exact.match),
    StageKind.CUSTOM: KindHandler(custom.normalize_custom, custom.no_fields, custom.match_custom),
    StageKind.VOID: KindHandler(custom.normalize_void, custom.no_fields, custom.match_void),
}


def _dedupe(records: Sequence[IdentifiedRecord]) -> list[IdentifiedRecord]:
    seen: set[int] = set()
    unique: list[IdentifiedRecord] = []
    for record in records:
        if record.identity not in seen:
            seen.add(record.identity)
            unique.append(record)
    return unique


class SearchEngine:
    """Filter-stage stack maintained incrementally against a :class:`RecordStore`.

    Args:
        store: Base record set; its bus carries every notification
        fields: Registry used to validate field references
        view: Shared view whose membership this engine owns
        settings: Defaults (scope, word match); ``get_settings()`` if omitted
        on_warning: Called with the InvalidReferenceError of a rejected stage
    """

    def __init__(
        self,
        store: RecordStore,
        fields: FieldRegistry,
        view: RecordView | None = None,
        *,
        settings: RecordViewSettings | None = None,
        on_warning: WarningCallback | None = None,
    ) -> None:
        self._store = store
        self._fields = fields
        self._bus = store.bus
        self._settings = settings or get_settings()
        self._on_warning = on_warning
        self._stages: list[Stage] = []
        self._composite: list[IdentifiedRecord] = store.records
        self._view = view if view is not None else RecordView()
        self._view.claim(RecordView.MEMBERSHIP, self)
        self._view.replace(self, self._composite)
        self._subscriptions = [
            self._bus.subscribe("records.added", self._on_added),
            self._bus.subscribe("records.removed", self._on_removed),
            self._bus.subscribe("records.updated", self._on_updated),
        ]

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def view(self) -> RecordView:
        return self._view

    def get_stages(self) -> list[Stage]:
        return list(self._stages)

    def get_composite_view(self) -> list[IdentifiedRecord]:
        return list(self._composite)

    # ── Apply ────────────────────────────────────────────────────────────

    def search(
        self,
        kind: StageKind | str,
        options: Mapping[str, Any] | None = None,
        /,
        **kwargs: Any,
    ) -> Stage | None:
        """Apply one filter stage. Returns it, or None when rejected.

        Shared options: ``scope`` (``All``/``Prev``), ``revert`` and
        ``disposition`` (see :class:`Disposition`). Everything else is
        handed to the kind's normalizer.
        """
        raw = {**(options or {}), **kwargs}
        kind = parse_enum(StageKind, kind, "stage kind")
        scope = parse_enum(Scope, raw.pop("scope", self._settings.default_search_scope), "scope")
        revert = bool(raw.pop("revert", False))
        disposition = Disposition.parse(raw.pop("disposition", None))

        handler = KIND_HANDLERS[kind]
        processed = handler.normalize(raw, fields=self._fields, settings=self._settings)
        if not check_references(
            self._fields,
            handler.fields(processed),
            component="search",
            operation=f"search:{kind.value}",
            on_warning=self._on_warning,
        ):
            return None

        previous_stages = list(self._stages)
        previous_composite = self._composite
        self._apply_disposition(disposition, kind)

        stage = Stage(kind=kind, options=processed, scope=scope, revert=revert, disposition=disposition)
        targets = self._targets_for(len(self._stages), scope)
        stage.results = self._evaluate(stage, targets)
        self._stages.append(stage)
        logger.debug(
            "stage_applied",
            kind=kind.value,
            scope=scope.value,
            revert=revert,
            targets=len(targets),
            matched=len(stage.results),
            stages=len(self._stages),
        )

        self._commit(previous_composite)
        self._bus.emit("search.options_changed", "search", stages=self.get_stages(), previous=previous_stages)
        self._bus.emit("search.performed", "search", stage=stage, results=list(stage.results))
        return stage

    apply_stage = search

    def search_by_string_query(self, **options: Any) -> Stage | None:
        return self.search(StageKind.STRING_QUERY, **options)

    def search_by_number_ranges(self, **options: Any) -> Stage | None:
        return self.search(StageKind.NUMBER_RANGES, **options)

    def search_by_date_ranges(self, **options: Any) -> Stage | None:
        return self.search(StageKind.DATE_RANGES, **options)

    def search_by_exact_values(self, **options: Any) -> Stage | None:
        return self.search(StageKind.EXACT_VALUES, **options)

    def search_by_custom_fn(
        self,
        predicate: Callable[[IdentifiedRecord, list[IdentifiedRecord]], bool],
        **options: Any,
    ) -> Stage | None:
        return self.search(StageKind.CUSTOM, predicate=predicate, **options)

    def search_by_void(self, **options: Any) -> Stage | None:
        """Pass-through stage, for revert-only or disposition-only steps."""
        return self.search(StageKind.VOID, **options)

    # ── Clear ────────────────────────────────────────────────────────────

    def clear_stages(
        self,
        disposition: Disposition | str | int | Mapping[str, Any] = PrevAction.CLEAR_ALL.value,
        kind: StageKind | str | None = None,
    ) -> None:
        """Drop stages by a disposition rule without applying a new stage.

        ``kind`` is what ``LastIfSameKind`` compares against; without it
        that rule clears nothing.
        """
        rule = Disposition.parse(disposition)
        resolved = parse_enum(StageKind, kind, "stage kind") if kind is not None else None
        previous_stages = list(self._stages)
        previous_composite = self._composite
        self._apply_disposition(rule, resolved)
        if len(self._stages) == len(previous_stages):
            return
        self._commit(previous_composite)
        self._bus.emit("search.options_changed", "search", stages=self.get_stages(), previous=previous_stages)

    def clear_search(self) -> None:
        self.clear_stages(Disposition.clear_all())

    # ── Internals ────────────────────────────────────────────────────────

    def _apply_disposition(self, disposition: Disposition, kind: StageKind | None) -> None:
        if disposition.action is PrevAction.KEEP or not self._stages:
            return
        if disposition.action is PrevAction.CLEAR_ALL:
            self._stages.clear()
            return

        target = disposition.target
        last = len(self._stages) - 1
        if target is ClearTarget.LAST:
            index = last
        elif target is ClearTarget.LAST_IF_SAME_KIND:
            if kind is None or self._stages[last].kind is not kind:
                return
            index = last
        else:
            index = target + len(self._stages) if target < 0 else target
            if not 0 <= index <= last:
                logger.debug("disposition_target_missing", index=target, stages=len(self._stages))
                return

        del self._stages[index]
        # Later stages were defined relative to the dropped one
        self._recompute_from(index)

    def _recompute_from(self, start: int) -> None:
        for index in range(start, len(self._stages)):
            stage = self._stages[index]
            stage.results = self._evaluate(stage, self._targets_for(index, stage.scope))

    def _targets_for(self, index: int, scope: Scope) -> list[IdentifiedRecord]:
        if index == 0 or scope is Scope.ALL:
            return self._store.records
        return self._composite_of(self._stages[:index])

    def _composite_of(self, stages: Sequence[Stage]) -> list[IdentifiedRecord]:
        if not stages:
            return self._store.records
        collected: list[list[IdentifiedRecord]] = []
        for stage in reversed(stages):
            collected.append(stage.results)
            if stage.scope is Scope.PREV:
                break
        return _dedupe([record for results in reversed(collected) for record in results])

    def _evaluate(self, stage: Stage, targets: Sequence[IdentifiedRecord]) -> list[IdentifiedRecord]:
        matched = _dedupe(KIND_HANDLERS[stage.kind].match(stage.options, targets))
        if not stage.revert:
            return matched
        hit = {record.identity for record in matched}
        return [record for record in targets if record.identity not in hit]

    def _evaluate_subset(
        self, index: int, stage: Stage, candidates: Sequence[IdentifiedRecord]
    ) -> list[IdentifiedRecord]:
        """Evaluate stage ``index`` for ``candidates`` only."""
        if stage.kind is not StageKind.CUSTOM:
            return self._evaluate(stage, candidates)
        # Custom predicates receive the whole target set
        wanted = {record.identity for record in candidates}
        targets = self._targets_for(index, stage.scope)
        return [record for record in self._evaluate(stage, targets) if record.identity in wanted]

    def _upstream(self, index: int, stage: Stage, records: Sequence[IdentifiedRecord]) -> list[IdentifiedRecord]:
        """The subset of ``records`` inside stage ``index``'s target set."""
        if index == 0 or stage.scope is Scope.ALL:
            return list(records)
        allowed = {record.identity for record in self._composite_of(self._stages[:index])}
        return [record for record in records if record.identity in allowed]

    def _commit(self, previous: list[IdentifiedRecord]) -> bool:
        self._composite = self._composite_of(self._stages)
        if same_sequence(previous, self._composite):
            return False
        self._view.replace(self, self._composite)
        self._bus.emit(
            "search.results_changed",
            "search",
            results=list(self._composite),
            previous=list(previous),
        )
        return True

    # ── Store deltas ─────────────────────────────────────────────────────

    def _on_removed(self, event: Event) -> None:
        gone = {record.identity for record in event.payload["removed"]}
        previous = self._composite
        for stage in self._stages:
            stage.results = [record for record in stage.results if record.identity not in gone]
        self._commit(previous)

    def _on_added(self, event: Event) -> None:
        added: list[IdentifiedRecord] = event.payload["added"]
        previous = self._composite
        for index, stage in enumerate(self._stages):
            candidates = self._upstream(index, stage, added)
            if not candidates:
                continue
            present = stage.result_identities
            stage.results.extend(
                record for record in self._evaluate_subset(index, stage, candidates) if record.identity not in present
            )
        self._commit(previous)

    def _on_updated(self, event: Event) -> None:
        updated: list[IdentifiedRecord] = event.payload["updated"]
        touched = {record.identity for record in updated}
        previous = self._composite
        for index, stage in enumerate(self._stages):
            candidates = self._upstream(index, stage, updated)
            matched = (
                {record.identity for record in self._evaluate_subset(index, stage, candidates)}
                if candidates
                else set()
            )
            present = stage.result_identities
            stage.results = [
                record
                for record in stage.results
                if record.identity not in touched or record.identity in matched
            ]
            stage.results.extend(
                record for record in updated if record.identity in matched and record.identity not in present
            )
        self._commit(previous)

    def close(self) -> None:
        """Stop following the store."""
        for sub_id in self._subscriptions:
            self._bus.unsubscribe(sub_id)
        self._subscriptions = []
