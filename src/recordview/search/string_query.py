"""String-query filter kind.

The query and every included field value are split into words by the
configured separators (applied one after another). A record matches when
its words satisfy the query words under the configured word-match
strategy and phrase constraints:

    ==========================  =============================================
    require_all + in_order +    the query words appear as one adjacent run,
    consecutive                 in order
    require_all + in_order      the query words appear in order, gaps allowed
    require_all + consecutive   the query words fill one adjacent window,
                                any order
    require_all                 every query word matches some record word
    any                         at least one query word matches
    ==========================  =============================================

Words of different fields are separated by an empty boundary token, so
an adjacency constraint never spans two fields.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from recordview.core.errors import InvalidOptionsError
from recordview.core.fields import FieldRegistry
from recordview.core.records import IdentifiedRecord
from recordview.core.settings import RecordViewSettings
from recordview.core.values import value_kind
from recordview.core.options import check_keys, parse_enum
from recordview.search.options import StringQueryOptions, WordMatch

__all__ = ["normalize", "referenced_fields", "match", "split_words", "record_words"]

_OPTIONS = {
    "query",
    "include_fields",
    "exclude_fields",
    "word_match",
    "require_all_words",
    "words_in_order",
    "consecutive_words",
    "convert_to_string",
    "ignore_whitespace",
    "word_separators",
    "case_sensitive",
}

_BOUNDARY = ""


def _number_to_str(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


_DEFAULT_CONVERTERS: dict[str, Callable[[Any], str]] = {
    "string": str,
    "number": _number_to_str,
    "boolean": lambda value: "true" if value else "false",
    "date": lambda value: value.isoformat(),
    "null": lambda value: "null",
}


# ── Normalization ────────────────────────────────────────────────────────


def _converters(raw: Any) -> dict[str, Callable[[Any], str]]:
    if raw is None or raw is False:
        return {"string": str}
    if raw is True:
        return dict(_DEFAULT_CONVERTERS)
    if not isinstance(raw, Mapping):
        raise InvalidOptionsError("convert_to_string must be a bool or a mapping", field="convert_to_string")
    converters: dict[str, Callable[[Any], str]] = {"string": str}
    for kind, converter in raw.items():
        if kind not in _DEFAULT_CONVERTERS:
            raise InvalidOptionsError(
                f"cannot convert {kind!r} values (expected one of: {', '.join(_DEFAULT_CONVERTERS)})",
                field="convert_to_string",
                value=kind,
            )
        if converter is None or converter is False:
            converters.pop(kind, None)
        elif converter is True:
            converters[kind] = _DEFAULT_CONVERTERS[kind]
        elif callable(converter):
            converters[kind] = converter
        else:
            raise InvalidOptionsError(f"converter for {kind!r} is not callable", field="convert_to_string")
    return converters


def _separators(raw: Any) -> tuple[Any, ...]:
    if raw is None:
        return (" ",)
    if isinstance(raw, (str, re.Pattern)) or callable(raw):
        raw = [raw]
    separators = tuple(raw)
    for separator in separators:
        if isinstance(separator, str):
            if not separator:
                raise InvalidOptionsError("word separator must not be empty", field="word_separators")
        elif not isinstance(separator, re.Pattern) and not callable(separator):
            raise InvalidOptionsError(
                f"unsupported word separator {separator!r}", field="word_separators", value=separator
            )
    return separators


def _field_list(raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (raw,)
    return tuple(raw)


def normalize(
    raw: Mapping[str, Any], *, fields: FieldRegistry, settings: RecordViewSettings
) -> StringQueryOptions:
    check_keys(raw, _OPTIONS, "string query")
    query = raw.get("query")
    if query is None:
        raise InvalidOptionsError("string query requires 'query'", field="query")

    include = _field_list(raw.get("include_fields"))
    exclude = _field_list(raw.get("exclude_fields"))
    if include and exclude:
        raise InvalidOptionsError(
            "include_fields and exclude_fields are mutually exclusive", field="include_fields"
        )
    if not include:
        include = tuple(key for key in fields.searchable_keys() if key not in exclude)

    words_in_order = bool(raw.get("words_in_order", False))
    consecutive_words = bool(raw.get("consecutive_words", False))
    if (words_in_order or consecutive_words) and len(include) != 1:
        raise InvalidOptionsError(
            "words_in_order and consecutive_words need exactly one included field",
            field="include_fields",
            value=list(include),
            constraint="single_field",
        )

    return StringQueryOptions(
        query=str(query),
        include_fields=include,
        exclude_fields=exclude,
        word_match=parse_enum(WordMatch, raw.get("word_match", settings.default_word_match), "word_match"),
        require_all_words=bool(raw.get("require_all_words", True)),
        words_in_order=words_in_order,
        consecutive_words=consecutive_words,
        converters=_converters(raw.get("convert_to_string")),
        ignore_whitespace=bool(raw.get("ignore_whitespace", True)),
        word_separators=_separators(raw.get("word_separators")),
        case_sensitive=bool(raw.get("case_sensitive", False)),
    )


def referenced_fields(options: StringQueryOptions) -> list[str]:
    return list(options.include_fields) + list(options.exclude_fields)


# ── Word handling ────────────────────────────────────────────────────────


def split_words(
    text: str,
    separators: Iterable[Any] = (" ",),
    *,
    ignore_whitespace: bool = True,
    case_sensitive: bool = False,
) -> list[str]:
    """Split ``text`` by each separator in turn; drop empty words."""
    pieces = [text]
    for separator in separators:
        split: list[str] = []
        for piece in pieces:
            if isinstance(separator, str):
                parts = piece.split(separator)
            elif isinstance(separator, re.Pattern):
                parts = separator.split(piece)
            else:
                parts = separator(piece)
            split.extend(part for part in parts if part is not None)
        pieces = split
    if ignore_whitespace:
        pieces = [piece.strip() for piece in pieces]
    if not case_sensitive:
        pieces = [piece.lower() for piece in pieces]
    return [piece for piece in pieces if piece]


def record_words(record: IdentifiedRecord, options: StringQueryOptions) -> list[str]:
    """Words of every included field, fields separated by a boundary token."""
    words: list[str] = []
    for key in options.include_fields:
        value = record.get(key)
        converter = options.converters.get(value_kind(value))
        if converter is None:
            continue
        field_words = split_words(
            converter(value),
            options.word_separators,
            ignore_whitespace=options.ignore_whitespace,
            case_sensitive=options.case_sensitive,
        )
        if not field_words:
            continue
        if words:
            words.append(_BOUNDARY)
        words.extend(field_words)
    return words


_MATCHERS: dict[WordMatch, Callable[[str, str], bool]] = {
    WordMatch.EXACT_MATCH: lambda word, query: word == query,
    WordMatch.CONTAINS: lambda word, query: query in word,
    WordMatch.STARTS_WITH: lambda word, query: word.startswith(query),
    WordMatch.ENDS_WITH: lambda word, query: word.endswith(query),
}


def _in_order_consecutive(words: Sequence[str], query: Sequence[str], hit) -> bool:
    span = len(query)
    return any(
        all(hit(words[start + offset], query[offset]) for offset in range(span))
        for start in range(len(words) - span + 1)
    )


def _in_order(words: Sequence[str], query: Sequence[str], hit) -> bool:
    position = 0
    for word in words:
        if position < len(query) and hit(word, query[position]):
            position += 1
    return position == len(query)


def _assignable(window: Sequence[str], query: Sequence[str], hit) -> bool:
    """Each query word takes a distinct word of the window."""
    used = [False] * len(window)

    def place(index: int) -> bool:
        if index == len(query):
            return True
        for slot, word in enumerate(window):
            if not used[slot] and hit(word, query[index]):
                used[slot] = True
                if place(index + 1):
                    return True
                used[slot] = False
        return False

    return place(0)


def _consecutive(words: Sequence[str], query: Sequence[str], hit) -> bool:
    span = len(query)
    return any(
        _assignable(words[start:start + span], query, hit)
        for start in range(len(words) - span + 1)
    )


def _words_match(words: Sequence[str], query: Sequence[str], options: StringQueryOptions) -> bool:
    hit = _MATCHERS[options.word_match]
    if not options.require_all_words:
        return any(hit(word, q) for q in query for word in words)
    if options.words_in_order and options.consecutive_words:
        return _in_order_consecutive(words, query, hit)
    if options.words_in_order:
        return _in_order(words, query, hit)
    if options.consecutive_words:
        return _consecutive(words, query, hit)
    return all(any(hit(word, q) for word in words) for q in query)


def match(options: StringQueryOptions, targets: Sequence[IdentifiedRecord]) -> list[IdentifiedRecord]:
    query = split_words(
        options.query,
        options.word_separators,
        ignore_whitespace=options.ignore_whitespace,
        case_sensitive=options.case_sensitive,
    )
    if not query:
        return list(targets)
    return [record for record in targets if _words_match(record_words(record, options), query, options)]
