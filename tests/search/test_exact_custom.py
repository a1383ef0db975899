"""Tests for the exact-values, custom-predicate and void filter kinds."""

import pytest

from recordview.core.errors import InvalidOptionsError
from recordview.core.records import MISSING, IdentifiedRecord
from recordview.search import custom, exact


@pytest.fixture
def records(transactions):
    return [IdentifiedRecord(data, i + 1) for i, data in enumerate(transactions)]


def _ids(records):
    return [r["TransactionID"] for r in records]


class TestDefaultEquals:
    @pytest.mark.parametrize(
        "value, expected, result",
        [
            ("Ali", "Ali", True),
            (1, 1.0, True),
            (True, 1, False),
            (0, False, False),
            (None, None, True),
            (MISSING, None, False),
            (MISSING, MISSING, True),
            (None, MISSING, False),
        ],
    )
    def test_default_equals(self, value, expected, result):
        assert exact.default_equals(value, expected) is result


class TestExactValues:
    def _match(self, records, raw):
        return _ids(exact.match(exact.normalize(raw), records))

    def test_any_listed_value(self, records):
        assert self._match(records, {"values": {"Status": ["Pending", "Failed"]}}) == ["T2", "T4", "T7"]

    def test_scalar_is_a_single_value(self, records):
        assert self._match(records, {"values": {"UserName": "Ahmed"}}) == ["T3", "T6"]

    def test_null_and_absent(self, records):
        assert self._match(records, {"values": {"Amount": [None]}}) == ["T4"]
        assert self._match(records, {"values": {"Amount": [MISSING]}}) == ["T7"]

    def test_all_fields_by_default(self, records):
        raw = {"values": {"UserName": "Ali", "Status": "Pending"}}
        assert self._match(records, raw) == ["T2", "T7"]

    def test_any_field(self, records):
        raw = {"values": {"UserName": "Ahmed", "Status": "Failed"}, "must_match_all_fields": False}
        assert self._match(records, raw) == ["T3", "T4", "T6"]

    def test_compare_fns(self, records):
        raw = {
            "values": {"UserName": "ali"},
            "compare_fns": {"UserName": lambda value, listed: str(value).lower() == listed},
        }
        assert self._match(records, raw) == ["T2", "T4", "T7"]

    @pytest.mark.parametrize(
        "raw",
        [
            {"values": {}},
            {"values": {"Status": "Pending"}, "compare_fns": {"UserName": lambda a, b: True}},
            {"values": {"Status": "Pending"}, "compare_fns": {"Status": "nope"}},
            {"values": {"Status": "Pending"}, "strict": True},
        ],
    )
    def test_malformed(self, raw):
        with pytest.raises(InvalidOptionsError):
            exact.normalize(raw)

    def test_referenced_fields(self):
        assert exact.referenced_fields(exact.normalize({"values": {"a": 1, "b": 2}})) == ["a", "b"]


class TestCustom:
    def test_predicate_sees_candidates(self, records):
        def largest(record, candidates):
            amounts = [c["Amount"] for c in candidates if isinstance(c.get("Amount"), (int, float))]
            return record.get("Amount") == max(amounts)

        options = custom.normalize_custom({"predicate": largest})
        assert options.name == "largest"
        assert _ids(custom.match_custom(options, records)) == ["T2"]

    def test_predicate_errors_propagate(self, records):
        def broken(record, candidates):
            raise KeyError("boom")

        with pytest.raises(KeyError):
            custom.match_custom(custom.normalize_custom({"predicate": broken}), records)

    def test_predicate_required(self):
        with pytest.raises(InvalidOptionsError):
            custom.normalize_custom({"predicate": "not callable"})

    def test_void_passes_everything(self, records):
        assert custom.match_void(custom.normalize_void({}), records) == records

    def test_void_takes_no_options(self):
        with pytest.raises(InvalidOptionsError):
            custom.normalize_void({"query": "x"})
