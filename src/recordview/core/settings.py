"""Environment-driven settings for recordview.

``RecordViewSettings`` holds the defaults every component falls back to
when a caller does not pass an explicit option: default page size, the
default search scope and word-match strategy, the sorter's toggle cycle
and null/absent prioritization.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Unknown literals fail at load time
    - **Environment-driven:** ``RECORDVIEW_*`` env vars and ``.env`` files
    - **Sensible defaults:** Works out of the box

Examples:
    >>> from recordview.core.settings import get_settings
    >>> get_settings().default_page_size
    10

    $ RECORDVIEW_FIRST_TOGGLE_ORDER=DESC recordview query data.json ...

Tags:
    settings, configuration, pydantic, environment, recordview

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from recordview.core.errors import ConfigError

_TOGGLE_ORDERS = ("ASC", "DESC", "ORIGINAL")

Priority = Literal["AlwaysFirst", "AlwaysLast", "FirstOnASC", "LastOnASC"]


class RecordViewSettings(BaseSettings):
    """Defaults shared by the search engine, sorter and paginator.

    Fields
    ──────
    log_level            : Structlog log level
    log_format           : ``console`` or ``json``
    service_name         : ``service.name`` stamped on every log line
    default_page_size    : Paginator page size (negative = unbounded)
    default_search_scope : Scope of a stage that does not name one
    default_word_match   : String-query word matching strategy
    first_toggle_order   : Order a toggle resolves to on an unsorted field
    toggle_orders        : Cycle a toggle advances through
    null_priority        : Where ``None`` values sort
    absent_priority      : Where absent values sort
    """

    model_config = SettingsConfigDict(
        env_prefix="RECORDVIEW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["console", "json"] = Field(default="console")
    service_name: str = Field(default="recordview")

    # ── Pagination ───────────────────────────────────────────────
    default_page_size: int = Field(default=10, description="Negative means unbounded")

    # ── Search ───────────────────────────────────────────────────
    default_search_scope: Literal["All", "Prev"] = Field(default="Prev")
    default_word_match: Literal["ExactMatch", "Contains", "StartsWith", "EndsWith"] = Field(
        default="Contains"
    )

    # ── Sort ─────────────────────────────────────────────────────
    first_toggle_order: Literal["ASC", "DESC", "ORIGINAL"] = Field(default="ASC")
    toggle_orders: list[str] = Field(default_factory=lambda: list(_TOGGLE_ORDERS))
    null_priority: Priority = Field(default="FirstOnASC")
    absent_priority: Priority = Field(default="FirstOnASC")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value!r}")
        return value

    @field_validator("toggle_orders")
    @classmethod
    def _check_toggle_orders(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("toggle_orders must not be empty")
        unknown = [order for order in value if order not in _TOGGLE_ORDERS]
        if unknown:
            raise ValueError(f"unknown sort orders in toggle_orders: {unknown}")
        return value


_settings_cache: dict[str, RecordViewSettings] = {}


def get_settings(*, _force_reload: bool = False) -> RecordViewSettings:
    """Load, validate, and cache a :class:`RecordViewSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    try:
        settings = RecordViewSettings()
    except PydanticValidationError as exc:
        raise ConfigError(f"invalid recordview settings: {exc.error_count()} error(s)", cause=exc) from exc
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = ["RecordViewSettings", "get_settings", "clear_settings_cache"]
