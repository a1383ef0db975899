"""
Identified records and the record store.

The store owns the canonical ordered list of records. Every record gets an
integer identity at insertion, drawn from a monotonic counter that is
never rewound, so identities are never reused, even after the same data is
removed and added again. Downstream components (search engine, sorter,
paginator, selector) only ever hold references to the store's
:class:`IdentifiedRecord` objects; they subset and reorder, never copy.

Architecture:
    ::

        add(records) ──► wrap + assign identity ──► records.added
        remove(refs) ──► find + drop ─────────────► records.removed
        update_*(...) ─► patch in place ──────────► records.updated
                                                    (updated, previous, changes)

Examples:
    >>> store = RecordStore()
    >>> [rec] = store.add([{"name": "Ali", "age": 31}])
    >>> rec.identity, rec["name"]
    (1, 'Ali')
    >>> store.update_by_identities([{"age": 32}], [1])
    [True]
    >>> rec["age"]
    32

Guardrails:
    ❌ DON'T: Mutate record fields directly
    ✅ DO: Go through update_* so the pipeline sees the change
    ❌ DON'T: Pass patch and target lists of different lengths
    ✅ DO: Expect ShapeMismatchError when you do

Tags:
    records, store, identity, recordview
"""

from __future__ import annotations

import itertools
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any, Union

from recordview.core.errors import InvalidOptionsError, ShapeMismatchError
from recordview.core.events import EventBus
from recordview.core.fields import FieldRegistry
from recordview.core.logging import get_logger

__all__ = [
    "MISSING",
    "RecordMeta",
    "IdentifiedRecord",
    "RecordRef",
    "RecordStore",
]

logger = get_logger(__name__)


class _Missing:
    """Marker for a field a record does not have (distinct from ``None``)."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class RecordMeta:
    """Store-managed metadata. ``identity`` is read-only for the record's lifetime."""

    __slots__ = ("_identity", "selected")

    def __init__(self, identity: int, selected: bool = False) -> None:
        self._identity = identity
        self.selected = selected

    @property
    def identity(self) -> int:
        return self._identity

    def __repr__(self) -> str:
        return f"RecordMeta(identity={self._identity}, selected={self.selected})"


class IdentifiedRecord:
    """A record plus its store metadata.

    Reads behave like a mapping; absent fields come back as :data:`MISSING`
    from :meth:`get`. Equality is object identity, which is what the
    pipeline relies on when it compares views.
    """

    __slots__ = ("_data", "_meta")

    def __init__(self, data: Mapping[str, Any], identity: int) -> None:
        self._data: dict[str, Any] = dict(data)
        self._meta = RecordMeta(identity)

    @property
    def meta(self) -> RecordMeta:
        return self._meta

    @property
    def identity(self) -> int:
        return self._meta.identity

    def get(self, key: str, default: Any = MISSING) -> Any:
        return self._data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def keys(self):
        return self._data.keys()

    def items(self):
        return self._data.items()

    def to_dict(self) -> dict[str, Any]:
        """Shallow copy of the field values."""
        return dict(self._data)

    def evolve(self, changes: Mapping[str, Any]) -> IdentifiedRecord:
        """Detached copy carrying the same identity, for :meth:`RecordStore.update`."""
        copy = IdentifiedRecord({**self._data, **changes}, self.identity)
        copy.meta.selected = self.meta.selected
        return copy

    def __repr__(self) -> str:
        return f"IdentifiedRecord({self.identity}, {self._data!r})"


RecordRef = Union[int, IdentifiedRecord, Mapping[str, Any]]


class RecordStore:
    """Canonical ordered collection of identified records.

    Args:
        fields: Registry records are projected onto; an empty registry keeps
            every key as given
        bus: Where ``records.*`` notifications are published
    """

    def __init__(self, fields: FieldRegistry | None = None, bus: EventBus | None = None) -> None:
        self._fields = fields if fields is not None else FieldRegistry()
        self._bus = bus if bus is not None else EventBus()
        self._records: list[IdentifiedRecord] = []
        self._by_identity: dict[int, IdentifiedRecord] = {}
        self._identities = itertools.count(1)
        self._loading = False

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def records(self) -> list[IdentifiedRecord]:
        return list(self._records)

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def loading(self) -> bool:
        return self._loading

    def set_loading(self, loading: bool) -> None:
        if loading != self._loading:
            self._loading = loading
            self._bus.emit("records.loading", "store", loading=loading)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[IdentifiedRecord]:
        return iter(list(self._records))

    def get(self, identity: int) -> IdentifiedRecord | None:
        return self._by_identity.get(identity)

    def assign_identity(self) -> int:
        """Next identity. Monotonic and never reused."""
        return next(self._identities)

    # ── Mutations ────────────────────────────────────────────────────────

    def initialize(self, records: Iterable[Mapping[str, Any]]) -> list[IdentifiedRecord]:
        """Replace the whole collection. Old records are reported as removed."""
        previous = self._records
        self._records = []
        self._by_identity = {}
        if previous:
            logger.debug("records_cleared", count=len(previous))
            self._bus.emit("records.removed", "store", removed=previous)
        return self.add(records)

    def add(self, records: Iterable[Mapping[str, Any]]) -> list[IdentifiedRecord]:
        added = [IdentifiedRecord(self._project(record), self.assign_identity()) for record in records]
        if not added:
            return []
        self._records.extend(added)
        for record in added:
            self._by_identity[record.identity] = record
        logger.debug("records_added", count=len(added), total=len(self._records))
        self._bus.emit("records.added", "store", added=added)
        return added

    def remove(self, refs: Iterable[RecordRef]) -> list[bool]:
        """Remove each referenced record. Returns one flag per ref."""
        removed: list[IdentifiedRecord] = []
        results: list[bool] = []
        for ref in refs:
            index = self.find_index(ref)
            if index < 0:
                results.append(False)
                continue
            record = self._records.pop(index)
            del self._by_identity[record.identity]
            removed.append(record)
            results.append(True)
        if removed:
            logger.debug("records_removed", count=len(removed), total=len(self._records))
            self._bus.emit("records.removed", "store", removed=removed)
        return results

    def update(self, records: Iterable[IdentifiedRecord]) -> list[bool]:
        """Write back detached copies (see :meth:`IdentifiedRecord.evolve`) by identity."""
        pairs: list[tuple[IdentifiedRecord | None, Mapping[str, Any]]] = []
        for record in records:
            if not isinstance(record, IdentifiedRecord):
                raise InvalidOptionsError(
                    "update() expects identified records; use update_by_identities for plain patches",
                    value=record,
                )
            pairs.append((self._by_identity.get(record.identity), record.to_dict()))
        return self._apply_updates(pairs)

    def update_by_identities(
        self, patches: Sequence[Mapping[str, Any]], identities: Sequence[int]
    ) -> list[bool]:
        if len(patches) != len(identities):
            raise ShapeMismatchError(
                f"{len(patches)} patches for {len(identities)} identities",
                expected=len(identities),
                actual=len(patches),
            ).with_context(component="store", operation="update_by_identities")
        return self._apply_updates(
            [(self._by_identity.get(identity), patch) for patch, identity in zip(patches, identities)]
        )

    def update_by_indexes(
        self, patches: Sequence[Mapping[str, Any]], indexes: Sequence[int]
    ) -> list[bool]:
        if len(patches) != len(indexes):
            raise ShapeMismatchError(
                f"{len(patches)} patches for {len(indexes)} indexes",
                expected=len(indexes),
                actual=len(patches),
            ).with_context(component="store", operation="update_by_indexes")
        pairs = []
        for patch, index in zip(patches, indexes):
            target = self._records[index] if 0 <= index < len(self._records) else None
            pairs.append((target, patch))
        return self._apply_updates(pairs)

    def _apply_updates(
        self, pairs: list[tuple[IdentifiedRecord | None, Mapping[str, Any]]]
    ) -> list[bool]:
        updated: list[IdentifiedRecord] = []
        previous: list[dict[str, Any]] = []
        changes: list[dict[str, Any]] = []
        results: list[bool] = []
        for target, patch in pairs:
            if target is None:
                results.append(False)
                continue
            results.append(True)
            diff = {
                key: value
                for key, value in self._project(patch).items()
                if not _same_value(target.get(key), value)
            }
            if not diff:
                continue
            snapshot = target.to_dict()
            for key, value in diff.items():
                if value is MISSING:
                    target._data.pop(key, None)
                else:
                    target._data[key] = value
            if target in updated:
                # Same record patched twice in one call
                idx = updated.index(target)
                changes[idx].update(diff)
                continue
            updated.append(target)
            previous.append(snapshot)
            changes.append(diff)
        if updated:
            logger.debug("records_updated", count=len(updated))
            self._bus.emit("records.updated", "store", updated=updated, previous=previous, changes=changes)
        return results

    # ── Lookup ───────────────────────────────────────────────────────────

    def find_index(self, ref: RecordRef) -> int:
        """Index by identity, identified record, or structural equality; -1 if absent."""
        if isinstance(ref, bool):
            return -1
        if isinstance(ref, int):
            record = self._by_identity.get(ref)
        elif isinstance(ref, IdentifiedRecord):
            record = self._by_identity.get(ref.identity)
        elif isinstance(ref, Mapping):
            wanted = self._project(ref)
            return next((i for i, r in enumerate(self._records) if r._data == wanted), -1)
        else:
            return -1
        if record is None:
            return -1
        return self._records.index(record)

    def find_indexes(self, refs: Iterable[RecordRef]) -> list[int]:
        return [self.find_index(ref) for ref in refs]

    def find_all_indexes(self, ref: RecordRef) -> list[int]:
        """Every index matching ``ref``; several only for structural lookups."""
        if isinstance(ref, Mapping) and not isinstance(ref, IdentifiedRecord):
            wanted = self._project(ref)
            return [i for i, r in enumerate(self._records) if r._data == wanted]
        index = self.find_index(ref)
        return [index] if index >= 0 else []

    def find(self, refs: Iterable[RecordRef]) -> list[IdentifiedRecord | None]:
        return [self._records[i] if i >= 0 else None for i in self.find_indexes(refs)]

    def _project(self, record: Mapping[str, Any]) -> dict[str, Any]:
        if not len(self._fields):
            return dict(record)
        return {key: value for key, value in record.items() if self._fields.has_field(key)}


def _same_value(old: Any, new: Any) -> bool:
    if old is MISSING or new is MISSING:
        return old is new
    return type(old) is type(new) and old == new
