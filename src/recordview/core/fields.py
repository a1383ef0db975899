"""Field registry: the set of record fields the pipeline may reference.

Search stages and sort levels name fields by key. The registry is the
authority on which keys exist; a reference to anything else is reported
as an invalid reference (warning + no-op) rather than raised.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from recordview.core.errors import InvalidOptionsError, InvalidReferenceError
from recordview.core.events import EventBus
from recordview.core.logging import get_logger

__all__ = ["Field", "FieldRegistry", "check_references", "WarningCallback"]

logger = get_logger(__name__)

WarningCallback = Callable[[InvalidReferenceError], None]


@dataclass(frozen=True)
class Field:
    """Descriptive metadata for one record field.

    Attributes:
        key: Field name as it appears in records
        title: Display title (defaults to the key)
        searchable: Included when a string query lists no fields
        sortable: Offered as a sort key by front ends
        visible: Shown by front ends
        metadata: Free-form extras
    """

    key: str
    title: str = ""
    searchable: bool = True
    sortable: bool = True
    visible: bool = True
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if not self.key:
            raise InvalidOptionsError("field key must be a non-empty string", field="key", value=self.key)
        if not self.title:
            object.__setattr__(self, "title", self.key)

    @classmethod
    def coerce(cls, raw: Field | str | Mapping[str, Any]) -> Field:
        """Build a Field from a key, a mapping, or return it unchanged."""
        if isinstance(raw, Field):
            return raw
        if isinstance(raw, str):
            return cls(key=raw)
        if isinstance(raw, Mapping):
            return cls(**dict(raw))
        raise InvalidOptionsError(f"cannot build a field from {type(raw).__name__}", value=raw)


class FieldRegistry:
    """Ordered collection of :class:`Field` definitions.

    Example::

        registry = FieldRegistry(["UserName", "Amount", {"key": "Date", "title": "When"}])
        registry.has_field("Amount")      # True
        registry.keys()                   # ['UserName', 'Amount', 'Date']
    """

    def __init__(
        self,
        fields: Iterable[Field | str | Mapping[str, Any]] = (),
        bus: EventBus | None = None,
    ) -> None:
        self._bus = bus
        self._fields: dict[str, Field] = {}
        self._load(fields)

    def _load(self, fields: Iterable[Field | str | Mapping[str, Any]]) -> None:
        for raw in fields:
            item = Field.coerce(raw)
            if item.key in self._fields:
                raise InvalidOptionsError(f"duplicate field {item.key!r}", field=item.key)
            self._fields[item.key] = item

    def initialize(self, fields: Iterable[Field | str | Mapping[str, Any]]) -> None:
        """Replace every field definition."""
        previous = self.fields
        self._fields = {}
        self._load(fields)
        logger.debug("fields_initialized", count=len(self._fields))
        self._notify(previous)

    def update_fields(self, fields: Iterable[Field | Mapping[str, Any]]) -> list[bool]:
        """Merge new metadata into existing fields; unknown keys are skipped."""
        previous = self.fields
        results: list[bool] = []
        for raw in fields:
            if isinstance(raw, Field):
                changes = {k: v for k, v in raw.__dict__.items() if k != "key"}
                key = raw.key
            else:
                changes = {k: v for k, v in dict(raw).items() if k != "key"}
                key = raw.get("key")
            current = self._fields.get(key)
            if current is None:
                logger.warning("update_unknown_field", field=key)
                results.append(False)
                continue
            self._fields[key] = replace(current, **changes)
            results.append(True)
        if any(results):
            self._notify(previous)
        return results

    def _notify(self, previous: list[Field]) -> None:
        if self._bus is not None:
            self._bus.emit("fields.changed", "fields", fields=self.fields, previous=previous)

    def has_field(self, key: str) -> bool:
        return key in self._fields

    def get_field(self, key: str) -> Field | None:
        return self._fields.get(key)

    def keys(self) -> list[str]:
        """Field keys in declaration order."""
        return list(self._fields)

    def searchable_keys(self) -> list[str]:
        return [f.key for f in self._fields.values() if f.searchable]

    @property
    def fields(self) -> list[Field]:
        return list(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, key: object) -> bool:
        return key in self._fields


def check_references(
    registry: FieldRegistry,
    keys: Iterable[str],
    *,
    component: str,
    operation: str,
    on_warning: WarningCallback | None = None,
) -> bool:
    """Return True when every key is registered; otherwise warn and return False."""
    unknown = [key for key in keys if not registry.has_field(key)]
    if not unknown:
        return True
    error = InvalidReferenceError(
        f"unknown field(s): {', '.join(map(str, unknown))}",
        field=unknown[0],
        value=unknown,
        constraint="registered_field",
    ).with_context(component=component, operation=operation)
    logger.warning("invalid_field_reference", fields=unknown, component=component, operation=operation)
    if on_warning is not None:
        on_warning(error)
    return False
