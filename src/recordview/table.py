"""
RecordTable - the whole pipeline wired on one event bus.

Architecture:
    ::

        ┌──────────────┐  records.*   ┌──────────────┐ search.results_changed
        │ RecordStore  │ ───────────► │ SearchEngine │ ───────────────┐
        └──────┬───────┘              └──────┬───────┘                ▼
               │ records.removed             │ membership      ┌──────────┐
               ▼                             ▼                 │  Sorter  │
        ┌──────────────┐              ┌──────────────┐  order  └────┬─────┘
        │   Selector   │              │  RecordView  │ ◄────────────┘
        └──────────────┘              └──────┬───────┘   sort.view_changed
                                             ▼                  │
                                      ┌──────────────┐          │
                                      │  Paginator   │ ◄────────┘
                                      └──────────────┘

Examples:
    >>> table = RecordTable(
    ...     [{"id": 1, "name": "Ahmed"}, {"id": 2, "name": "Ali"}, {"id": 3, "name": "Ahmed"}]
    ... )
    >>> _ = table.sort("name", "ASC")
    >>> _ = table.sort("id", "DESC")
    >>> [(r["name"], r["id"]) for r in table.view]
    [('Ahmed', 3), ('Ahmed', 1), ('Ali', 2)]

Tags:
    facade, pipeline, recordview
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from recordview.core.events import EventBus
from recordview.core.fields import Field, FieldRegistry, WarningCallback
from recordview.core.records import IdentifiedRecord, RecordStore
from recordview.core.settings import RecordViewSettings, get_settings
from recordview.core.view import RecordView
from recordview.paginator import Paginator
from recordview.search.engine import SearchEngine
from recordview.search.options import Stage, StageKind
from recordview.selector import Selector
from recordview.sort.engine import Sorter
from recordview.sort.options import SortLevel, SortOrder

__all__ = ["RecordTable", "infer_fields"]


def infer_fields(records: Iterable[Mapping[str, Any]]) -> list[str]:
    """Union of record keys, in first-seen order."""
    keys: dict[str, None] = {}
    for record in records:
        for key in record:
            keys.setdefault(key, None)
    return list(keys)


class RecordTable:
    """Store, registry, search engine, sorter, paginator and selector together.

    Args:
        records: Initial records
        fields: Field definitions; inferred from ``records`` when omitted
        settings: Shared defaults; ``get_settings()`` when omitted
        bus: Event bus to publish on; a private one when omitted
        page_size: Paginator page size; settings default when omitted
        on_warning: Receives InvalidReferenceError for rejected stages/levels
    """

    def __init__(
        self,
        records: Iterable[Mapping[str, Any]] = (),
        fields: Iterable[Field | str | Mapping[str, Any]] | None = None,
        *,
        settings: RecordViewSettings | None = None,
        bus: EventBus | None = None,
        page_size: int | None = None,
        on_warning: WarningCallback | None = None,
    ) -> None:
        records = list(records)
        self.settings = settings or get_settings()
        self.bus = bus if bus is not None else EventBus()
        self.fields = FieldRegistry(infer_fields(records) if fields is None else fields, bus=self.bus)
        self.store = RecordStore(self.fields, self.bus)
        self.view = RecordView()
        self.search_engine = SearchEngine(
            self.store, self.fields, self.view, settings=self.settings, on_warning=on_warning
        )
        self.sorter = Sorter(self.view, self.fields, self.bus, settings=self.settings, on_warning=on_warning)
        self.paginator = Paginator(self.view, self.bus, page_size=page_size, settings=self.settings)
        self.selector = Selector(self.store)
        if records:
            self.store.initialize(records)

    # ── Records ──────────────────────────────────────────────────────────

    @property
    def records(self) -> list[IdentifiedRecord]:
        return self.store.records

    def add(self, records: Iterable[Mapping[str, Any]]) -> list[IdentifiedRecord]:
        return self.store.add(records)

    def remove(self, refs: Iterable[Any]) -> list[bool]:
        return self.store.remove(refs)

    def update_by_identities(self, patches: Sequence[Mapping[str, Any]], identities: Sequence[int]) -> list[bool]:
        return self.store.update_by_identities(patches, identities)

    # ── Pipeline ─────────────────────────────────────────────────────────

    def search(self, kind: StageKind | str, options: Mapping[str, Any] | None = None, /, **kwargs: Any) -> Stage | None:
        return self.search_engine.search(kind, options, **kwargs)

    def sort(self, field: str, order: SortOrder | str = SortOrder.TOGGLE, **options: Any) -> SortLevel | None:
        return self.sorter.sort(field, order, **options)

    @property
    def page(self) -> list[IdentifiedRecord]:
        return self.paginator.items

    def close(self) -> None:
        self.paginator.close()
        self.selector.close()
        self.sorter.close()
        self.search_engine.close()
        self.bus.close()
