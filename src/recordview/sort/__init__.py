"""Hierarchical multi-key sorting of the shared view."""

from recordview.sort.compare import default_compare
from recordview.sort.engine import Sorter
from recordview.sort.options import (
    AtIndex,
    NullPriority,
    Placement,
    Position,
    PresetPosition,
    RelativeToField,
    SortLevel,
    SortOrder,
    SortRange,
)

__all__ = [
    "AtIndex",
    "NullPriority",
    "Placement",
    "Position",
    "PresetPosition",
    "RelativeToField",
    "SortLevel",
    "SortOrder",
    "SortRange",
    "Sorter",
    "default_compare",
]
