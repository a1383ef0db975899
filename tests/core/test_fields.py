"""Tests for Field and FieldRegistry."""

import pytest

from recordview.core.errors import InvalidOptionsError, InvalidReferenceError
from recordview.core.fields import Field, FieldRegistry, check_references


class TestField:
    def test_title_defaults_to_key(self):
        assert Field("Amount").title == "Amount"

    def test_coerce(self):
        assert Field.coerce("Amount") == Field("Amount")
        assert Field.coerce({"key": "Date", "title": "When"}).title == "When"

    def test_empty_key_rejected(self):
        with pytest.raises(InvalidOptionsError):
            Field("")


class TestFieldRegistry:
    def test_keys_in_declaration_order(self, registry):
        assert registry.keys()[:3] == ["TransactionID", "UserName", "Date"]
        assert "Amount" in registry
        assert registry.has_field("Nickname") is False

    def test_duplicate_rejected(self):
        with pytest.raises(InvalidOptionsError):
            FieldRegistry(["a", "a"])

    def test_searchable_keys(self):
        registry = FieldRegistry(["a", {"key": "b", "searchable": False}])
        assert registry.searchable_keys() == ["a"]

    def test_update_fields(self, registry, events):
        assert registry.update_fields([{"key": "Amount", "title": "Value"}, {"key": "Nope"}]) == [True, False]
        assert registry.get_field("Amount").title == "Value"
        assert [e.event_type for e in events] == ["fields.changed"]

    def test_initialize_replaces(self, registry, events):
        registry.initialize(["x"])
        assert registry.keys() == ["x"]
        assert events[-1].payload["previous"][0].key == "TransactionID"


class TestCheckReferences:
    def test_known_fields_pass(self, registry):
        assert check_references(registry, ["Amount"], component="search", operation="search")

    def test_unknown_field_warns(self, registry):
        seen = []
        ok = check_references(
            registry, ["Amount", "Nickname"], component="sorter", operation="sort", on_warning=seen.append
        )
        assert ok is False
        [error] = seen
        assert isinstance(error, InvalidReferenceError)
        assert error.field == "Nickname"
        assert error.context.component == "sorter"
