"""Shared ordered view of record references.

The search engine and the sorter work on one list of references. The
search engine decides *which* records are in it; the sorter decides their
*order*. :class:`RecordView` makes that split explicit: each kind of write
is claimed by exactly one owner, and a write by anyone else raises
:class:`ViewOwnershipError`. Readers (paginator, selector, callers) get
snapshots.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import Any

from recordview.core.errors import ViewOwnershipError
from recordview.core.records import IdentifiedRecord

__all__ = ["RecordView", "same_sequence"]


def same_sequence(left: Sequence[IdentifiedRecord], right: Sequence[IdentifiedRecord]) -> bool:
    """Equal length and the same record object at every index."""
    if len(left) != len(right):
        return False
    return all(a is b for a, b in zip(left, right))


class RecordView:
    """Single-owner handle over the ordered list of references."""

    MEMBERSHIP = "membership"
    ORDER = "order"

    def __init__(self, records: Iterable[IdentifiedRecord] = ()) -> None:
        self._items: list[IdentifiedRecord] = list(records)
        self._owners: dict[str, object] = {}

    def claim(self, role: str, owner: object) -> None:
        """Register ``owner`` as the only writer for ``role``."""
        if role not in (self.MEMBERSHIP, self.ORDER):
            raise ValueError(f"unknown view role {role!r}")
        current = self._owners.get(role)
        if current is not None and current is not owner:
            raise ViewOwnershipError(f"{role} writes are already owned by {type(current).__name__}")
        self._owners[role] = owner

    def _check(self, role: str, writer: object) -> None:
        owner = self._owners.get(role)
        if owner is not None and owner is not writer:
            raise ViewOwnershipError(
                f"{type(writer).__name__} may not perform {role} writes",
            ).with_context(component="view", operation=role)

    # ── Writes ───────────────────────────────────────────────────────────

    def replace(self, writer: object, records: Iterable[IdentifiedRecord]) -> None:
        """Set the view's membership (and provisional order)."""
        self._check(self.MEMBERSHIP, writer)
        self._items = list(records)

    def sort_range(
        self,
        writer: object,
        start: int,
        end: int,
        key: Callable[[IdentifiedRecord], Any],
    ) -> None:
        """Stable in-place sort of ``[start, end)``."""
        self._check(self.ORDER, writer)
        if end - start > 1:
            self._items[start:end] = sorted(self._items[start:end], key=key)

    # ── Reads ────────────────────────────────────────────────────────────

    def snapshot(self) -> list[IdentifiedRecord]:
        return list(self._items)

    def same_as(self, other: Sequence[IdentifiedRecord]) -> bool:
        return same_sequence(self._items, other)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[IdentifiedRecord]:
        return iter(list(self._items))

    def __getitem__(self, index):
        return self._items[index]
