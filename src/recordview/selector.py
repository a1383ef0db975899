"""Selection tracking by identity.

The selector keeps a set of selected identities, mirrors each record's
state in ``record.meta.selected``, and forgets identities the store
removes.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Literal, Union

from recordview.core.errors import InvalidOptionsError, ShapeMismatchError
from recordview.core.events import Event
from recordview.core.logging import get_logger
from recordview.core.records import IdentifiedRecord, RecordRef, RecordStore

__all__ = ["Selector", "SelectState"]

logger = get_logger(__name__)

SelectState = Union[bool, Literal["toggle"]]


class Selector:
    """Selected identities over a :class:`RecordStore`.

    Example::

        selector = Selector(store)
        selector.select(record)                  # True
        selector.select(record, "toggle")        # False
        selector.count_selected_in(paginator.items)
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._bus = store.bus
        self._selected: set[int] = set()
        self._subscription = self._bus.subscribe("records.removed", self._on_removed)

    @property
    def selected_identities(self) -> frozenset[int]:
        return frozenset(self._selected)

    @property
    def count_selected(self) -> int:
        return len(self._selected)

    def selected_records(self) -> list[IdentifiedRecord]:
        """Selected records in store order."""
        return [record for record in self._store.records if record.identity in self._selected]

    def is_selected(self, ref: RecordRef) -> bool:
        record = self._resolve(ref)
        return record is not None and record.identity in self._selected

    def count_selected_in(self, refs: Iterable[RecordRef]) -> int:
        """How many of ``refs`` (records or identities) are selected."""
        count = 0
        for ref in refs:
            identity = ref if isinstance(ref, int) and not isinstance(ref, bool) else None
            if identity is None:
                record = self._resolve(ref)
                identity = record.identity if record is not None else None
            if identity is not None and identity in self._selected:
                count += 1
        return count

    # ── Mutations ────────────────────────────────────────────────────────

    def select(self, ref: RecordRef, state: SelectState = True) -> bool:
        """Set one record's selection state. Returns the resulting state."""
        changed: list[int] = []
        result = self._apply(ref, state, changed)
        self._notify(changed)
        return result

    def select_many(self, refs: Sequence[RecordRef], states: SelectState | Sequence[SelectState] = True) -> list[bool]:
        if isinstance(states, (bool, str)):
            states = [states] * len(refs)
        if len(states) != len(refs):
            raise ShapeMismatchError(
                f"{len(states)} selection states for {len(refs)} records",
                expected=len(refs),
                actual=len(states),
            ).with_context(component="selector", operation="select_many")
        changed: list[int] = []
        results = [self._apply(ref, state, changed) for ref, state in zip(refs, states)]
        self._notify(changed)
        return results

    def clear_selection(self) -> None:
        changed = sorted(self._selected)
        for identity in changed:
            record = self._store.get(identity)
            if record is not None:
                record.meta.selected = False
        self._selected.clear()
        self._notify(changed)

    def _apply(self, ref: RecordRef, state: SelectState, changed: list[int]) -> bool:
        if state not in (True, False, "toggle"):
            raise InvalidOptionsError(f"invalid selection state {state!r}", field="state", value=state)
        record = self._resolve(ref)
        if record is None:
            logger.warning("select_unknown_record", ref=repr(ref))
            return False
        current = record.identity in self._selected
        wanted = (not current) if state == "toggle" else bool(state)
        if wanted != current:
            if wanted:
                self._selected.add(record.identity)
            else:
                self._selected.discard(record.identity)
            changed.append(record.identity)
        record.meta.selected = wanted
        return wanted

    def _resolve(self, ref: RecordRef) -> IdentifiedRecord | None:
        if isinstance(ref, IdentifiedRecord):
            return self._store.get(ref.identity)
        if isinstance(ref, int) and not isinstance(ref, bool):
            return self._store.get(ref)
        [record] = self._store.find([ref])
        return record

    def _notify(self, changed: list[int]) -> None:
        if changed:
            self._bus.emit(
                "selection.changed",
                "selector",
                selected=frozenset(self._selected),
                changed=list(changed),
            )

    def _on_removed(self, event: Event) -> None:
        gone = [record.identity for record in event.payload["removed"] if record.identity in self._selected]
        for identity in gone:
            self._selected.discard(identity)
        self._notify(gone)

    def close(self) -> None:
        self._bus.unsubscribe(self._subscription)
