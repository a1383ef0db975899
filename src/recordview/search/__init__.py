"""Filter-stage composition: the search engine and its six stage kinds."""

from recordview.search.engine import KIND_HANDLERS, SearchEngine
from recordview.search.options import (
    ClearTarget,
    DateRange,
    Disposition,
    NumberRange,
    PrevAction,
    Scope,
    Stage,
    StageKind,
    WordMatch,
)

__all__ = [
    "ClearTarget",
    "DateRange",
    "Disposition",
    "KIND_HANDLERS",
    "NumberRange",
    "PrevAction",
    "Scope",
    "SearchEngine",
    "Stage",
    "StageKind",
    "WordMatch",
]
