"""Tests for Selector state, meta mirroring and removal tracking."""

import pytest

from recordview.core.errors import InvalidOptionsError, ShapeMismatchError
from recordview.core.records import RecordStore
from recordview.selector import Selector


@pytest.fixture
def selector(store, transactions):
    store.add(transactions)
    return Selector(store)


@pytest.fixture
def selection_events(bus):
    seen = []
    bus.subscribe("selection.changed", seen.append)
    return seen


class TestSelect:
    def test_select_by_record_and_identity(self, selector, store):
        first = store.records[0]
        assert selector.select(first) is True
        assert selector.select(3) is True
        assert selector.selected_identities == frozenset({1, 3})
        assert selector.count_selected == 2
        assert first.meta.selected is True

    def test_deselect(self, selector, store):
        selector.select(2)
        assert selector.select(2, False) is False
        assert selector.count_selected == 0
        assert store.get(2).meta.selected is False

    def test_toggle(self, selector):
        assert selector.select(4, "toggle") is True
        assert selector.select(4, "toggle") is False

    def test_select_by_structure(self, selector, transactions):
        assert selector.select(transactions[4]) is True
        assert selector.is_selected(5)

    def test_partial_structure_does_not_match(self, selector):
        assert selector.select({"TransactionID": "T5"}) is False

    def test_unknown_record_is_ignored(self, selector):
        assert selector.select(42) is False
        assert selector.count_selected == 0

    def test_invalid_state(self, selector):
        with pytest.raises(InvalidOptionsError):
            selector.select(1, "maybe")


class TestSelectMany:
    def test_single_state_for_all(self, selector):
        assert selector.select_many([1, 2, 3]) == [True, True, True]

    def test_state_per_record(self, selector):
        selector.select_many([1, 2], True)
        assert selector.select_many([1, 2], [False, "toggle"]) == [False, False]
        assert selector.count_selected == 0

    def test_shape_mismatch(self, selector):
        with pytest.raises(ShapeMismatchError) as exc_info:
            selector.select_many([1, 2, 3], [True])
        assert exc_info.value.expected == 3
        assert exc_info.value.actual == 1


class TestQueries:
    def test_selected_records_in_store_order(self, selector):
        selector.select_many([6, 2])
        assert [r["TransactionID"] for r in selector.selected_records()] == ["T2", "T6"]

    def test_count_selected_in(self, selector, store):
        selector.select_many([1, 2, 5])
        assert selector.count_selected_in(store.records[:3]) == 2
        assert selector.count_selected_in([5, 6, 99]) == 1

    def test_lookups_do_not_copy_the_store(self, selector, store, transactions, monkeypatch):
        records = store.records

        def no_copy(self):
            raise AssertionError("store.records copied during a selection lookup")

        monkeypatch.setattr(RecordStore, "records", property(no_copy))
        assert selector.select_many([1, records[1], transactions[2]]) == [True, True, True]
        assert selector.count_selected_in([1, 2, 3, 4]) == 3
        assert selector.count_selected_in(records[:2]) == 2

    def test_clear_selection(self, selector, store):
        selector.select_many([1, 2])
        selector.clear_selection()
        assert selector.count_selected == 0
        assert not any(r.meta.selected for r in store.records)


class TestStoreChanges:
    def test_removed_records_are_forgotten(self, selector, store, selection_events):
        selector.select_many([1, 2])
        selection_events.clear()
        store.remove([2])
        assert selector.selected_identities == frozenset({1})
        assert selection_events[0].payload["changed"] == [2]

    def test_selection_survives_update(self, selector, store):
        selector.select(3)
        store.update_by_identities([{"Amount": 1}], [3])
        assert selector.is_selected(3)
        assert store.get(3).meta.selected is True


class TestNotifications:
    def test_changed_event(self, selector, selection_events):
        selector.select_many([1, 2])
        [event] = selection_events
        assert event.payload["selected"] == frozenset({1, 2})
        assert event.payload["changed"] == [1, 2]

    def test_no_event_without_change(self, selector, selection_events):
        selector.select(1, False)
        assert selection_events == []
