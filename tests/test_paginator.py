"""Tests for Paginator page windows and page.* notifications."""

import pytest

from recordview.core.errors import InvalidOptionsError
from recordview.core.events import EventBus
from recordview.core.settings import RecordViewSettings
from recordview.core.view import RecordView
from recordview.paginator import UNBOUNDED, Paginator
from recordview.table import RecordTable


def _ids(records):
    return [r["TransactionID"] for r in records]


@pytest.fixture
def paginator(table):
    return table.paginator


@pytest.fixture
def page_events(table):
    seen = []
    table.bus.subscribe("page.*", seen.append)
    return seen


class TestPages:
    def test_first_page(self, paginator):
        assert paginator.page_count == 3
        assert paginator.page_number == 1
        assert paginator.page_index == 0
        assert _ids(paginator.items) == ["T1", "T2", "T3"]

    def test_walk_forward_and_back(self, paginator):
        assert paginator.next_page() == 2
        assert _ids(paginator.items) == ["T4", "T5", "T6"]
        assert paginator.next_page() == 3
        assert _ids(paginator.items) == ["T7"]
        assert paginator.next_page() == 3
        assert paginator.previous_page() == 2

    @pytest.mark.parametrize("requested, shown", [(0, 1), (-4, 1), (2, 2), (99, 3)])
    def test_page_number_is_clamped(self, paginator, requested, shown):
        assert paginator.set_page_number(requested) == shown

    def test_unbounded_page_size(self, paginator):
        paginator.set_page_size(-5)
        assert paginator.page_size == UNBOUNDED
        assert paginator.page_count == 1
        assert len(paginator.items) == 7

    def test_zero_page_size_rejected(self, paginator):
        with pytest.raises(InvalidOptionsError):
            paginator.set_page_size(0)
        with pytest.raises(InvalidOptionsError):
            Paginator(RecordView(), EventBus(), page_size=0)

    def test_default_size_from_settings(self, transactions):
        table = RecordTable(transactions, settings=RecordViewSettings(default_page_size=5))
        assert table.paginator.page_size == 5
        assert table.paginator.page_count == 2


class TestFollowsTheView:
    def test_shrinking_view_clamps_page(self, table, paginator):
        paginator.set_page_number(3)
        table.search("exact_values", values={"UserName": "Ali"})
        assert paginator.page_count == 1
        assert paginator.page_number == 1
        assert _ids(paginator.items) == ["T2", "T4", "T7"]

    def test_empty_view(self, table, paginator):
        table.search("void", revert=True)
        assert paginator.page_count == 0
        assert paginator.page_number == 1
        assert paginator.items == []

    def test_sorting_refreshes_items(self, table, paginator):
        table.sort("Amount", "DESC")
        assert _ids(paginator.items) == ["T2", "T5", "T1"]


class TestNotifications:
    def test_page_change(self, paginator, page_events):
        paginator.set_page_number(2)
        assert [e.event_type for e in page_events] == ["page.number_changed", "page.items_changed"]
        assert page_events[0].payload["page_number"] == 2

    def test_size_change(self, paginator, page_events):
        paginator.set_page_size(5)
        assert [e.event_type for e in page_events] == [
            "page.size_changed",
            "page.count_changed",
            "page.items_changed",
        ]

    def test_same_size_is_silent(self, paginator, page_events):
        paginator.set_page_size(3)
        assert page_events == []

    def test_clamped_request_without_change_is_silent(self, paginator, page_events):
        paginator.previous_page()
        assert page_events == []
