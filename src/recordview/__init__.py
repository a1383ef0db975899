"""
recordview - incrementally maintained filter/sort pipeline over in-memory records.

Layers (lowest first):
    ::

        core        errors, logging, settings, events, fields, records, view
        search      filter-stage stack (string query, ranges, exact, custom, void)
        sort        hierarchical multi-key sorter
        paginator   page window over the sorted view
        selector    selected identities
        table       RecordTable facade wiring all of the above on one bus
        cli         ``recordview query`` front end

Quick start::

    from recordview import RecordTable

    table = RecordTable(rows, page_size=20)
    table.search("string_query", query="ali", include_fields=["UserName"])
    table.sort("Amount", "DESC")
    table.page            # first 20 matching rows, largest amount first
"""

from recordview.core import (
    MISSING,
    ConfigError,
    Event,
    EventBus,
    Field,
    FieldRegistry,
    IdentifiedRecord,
    InvalidOptionsError,
    InvalidReferenceError,
    RecordStore,
    RecordView,
    RecordViewError,
    RecordViewSettings,
    ShapeMismatchError,
    ViewOwnershipError,
    get_settings,
)
from recordview.paginator import UNBOUNDED, Paginator
from recordview.search import Disposition, Scope, SearchEngine, Stage, StageKind
from recordview.selector import Selector
from recordview.sort import SortLevel, SortOrder, Sorter
from recordview.table import RecordTable

__version__ = "0.1.0"

__all__ = [
    "MISSING",
    "UNBOUNDED",
    "ConfigError",
    "Disposition",
    "Event",
    "EventBus",
    "Field",
    "FieldRegistry",
    "IdentifiedRecord",
    "InvalidOptionsError",
    "InvalidReferenceError",
    "Paginator",
    "RecordStore",
    "RecordTable",
    "RecordView",
    "RecordViewError",
    "RecordViewSettings",
    "Scope",
    "SearchEngine",
    "Selector",
    "ShapeMismatchError",
    "SortLevel",
    "SortOrder",
    "Sorter",
    "Stage",
    "StageKind",
    "ViewOwnershipError",
    "__version__",
    "get_settings",
]
