"""
recordview.core - primitives shared by every pipeline component.

Layering (leaves first):
    ::

        errors ─► logging ─► settings
                     │
                  events ─► fields ─► records ─► view

Nothing in ``core`` imports from ``search``, ``sort`` or the collaborators.
"""

from recordview.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    InvalidOptionsError,
    InvalidReferenceError,
    RecordViewError,
    ShapeMismatchError,
    ValidationError,
    ViewOwnershipError,
)
from recordview.core.events import Event, EventBus
from recordview.core.fields import Field, FieldRegistry
from recordview.core.records import MISSING, IdentifiedRecord, RecordMeta, RecordStore
from recordview.core.settings import RecordViewSettings, clear_settings_cache, get_settings
from recordview.core.view import RecordView

__all__ = [
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "Event",
    "EventBus",
    "Field",
    "FieldRegistry",
    "IdentifiedRecord",
    "InvalidOptionsError",
    "InvalidReferenceError",
    "MISSING",
    "RecordMeta",
    "RecordStore",
    "RecordView",
    "RecordViewError",
    "RecordViewSettings",
    "ShapeMismatchError",
    "ValidationError",
    "ViewOwnershipError",
    "clear_settings_cache",
    "get_settings",
]
