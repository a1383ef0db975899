"""Helpers for turning caller-supplied option values into typed ones."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from recordview.core.errors import InvalidOptionsError

__all__ = ["parse_enum", "check_keys"]


def parse_enum(enum_cls: type[Enum], raw: Any, option: str) -> Any:
    """Resolve a member by value or name, raising InvalidOptionsError."""
    if isinstance(raw, enum_cls):
        return raw
    for member in enum_cls:
        if raw == member.value or (isinstance(raw, str) and raw.upper() == member.name):
            return member
    allowed = ", ".join(str(m.value) for m in enum_cls)
    raise InvalidOptionsError(f"invalid {option} {raw!r} (expected one of: {allowed})", field=option, value=raw)


def check_keys(raw: Mapping[str, Any], allowed: set[str], kind: str) -> None:
    """Reject option keys a kind does not understand."""
    unknown = sorted(set(raw) - allowed)
    if unknown:
        raise InvalidOptionsError(
            f"unknown {kind} option(s): {', '.join(unknown)}",
            value=unknown,
            constraint="known_option",
        )
