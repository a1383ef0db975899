"""Custom-predicate and pass-through ("void") filter kinds."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from recordview.core.errors import InvalidOptionsError
from recordview.core.options import check_keys
from recordview.core.records import IdentifiedRecord
from recordview.search.options import CustomOptions, VoidOptions

__all__ = [
    "normalize_custom",
    "match_custom",
    "normalize_void",
    "match_void",
    "no_fields",
]


def normalize_custom(raw: Mapping[str, Any], **_: Any) -> CustomOptions:
    check_keys(raw, {"predicate", "name"}, "custom")
    predicate = raw.get("predicate")
    if not callable(predicate):
        raise InvalidOptionsError("custom stage needs a callable 'predicate'", field="predicate")
    return CustomOptions(predicate=predicate, name=str(raw.get("name") or getattr(predicate, "__name__", "custom")))


def match_custom(options: CustomOptions, targets: Sequence[IdentifiedRecord]) -> list[IdentifiedRecord]:
    # Caller code: exceptions propagate
    candidates = list(targets)
    return [record for record in candidates if options.predicate(record, candidates)]


def normalize_void(raw: Mapping[str, Any], **_: Any) -> VoidOptions:
    check_keys(raw, set(), "void")
    return VoidOptions()


def match_void(options: VoidOptions, targets: Sequence[IdentifiedRecord]) -> list[IdentifiedRecord]:
    return list(targets)


def no_fields(options: Any) -> list[str]:
    return []
