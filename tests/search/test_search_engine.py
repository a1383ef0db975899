"""Tests for SearchEngine: stage stacking, composite view, dispositions and incremental maintenance."""

import pytest

from recordview.core.errors import InvalidOptionsError, InvalidReferenceError, ViewOwnershipError
from recordview.core.view import RecordView
from recordview.search.engine import KIND_HANDLERS, SearchEngine
from recordview.search.options import Disposition, Scope, StageKind


def _ids(records):
    return [r["TransactionID"] for r in records]


@pytest.fixture
def warnings():
    return []


@pytest.fixture
def engine(store, registry, settings, warnings, transactions):
    engine = SearchEngine(store, registry, settings=settings, on_warning=warnings.append)
    store.add(transactions)
    return engine


def _over_100(engine, **extra):
    return engine.search("number_ranges", field="Amount", ranges=[{"min": 100}], **extra)


class TestKindDispatch:
    def test_every_kind_has_a_handler(self):
        assert set(KIND_HANDLERS) == set(StageKind)


class TestBaseline:
    def test_no_stages_shows_every_record(self, engine, store):
        assert engine.get_stages() == []
        assert engine.get_composite_view() == store.records
        assert engine.view.snapshot() == store.records

    def test_engine_owns_membership(self, engine):
        with pytest.raises(ViewOwnershipError):
            engine.view.replace(object(), [])


class TestApplyStage:
    def test_single_stage(self, engine):
        stage = _over_100(engine)
        assert stage.kind is StageKind.NUMBER_RANGES
        assert stage.scope is Scope.PREV
        assert _ids(stage.results) == ["T1", "T2", "T5"]
        assert _ids(engine.get_composite_view()) == ["T1", "T2", "T5"]
        assert _ids(engine.view) == ["T1", "T2", "T5"]

    def test_prev_scope_narrows(self, engine):
        _over_100(engine)
        stage = engine.search("string_query", query="ali")
        assert _ids(stage.results) == ["T2"]
        assert _ids(engine.get_composite_view()) == ["T2"]

    def test_all_scope_unions_with_previous(self, engine):
        _over_100(engine)
        stage = engine.search("string_query", query="ali", scope="All")
        assert _ids(stage.results) == ["T2", "T4", "T7"]
        assert _ids(engine.get_composite_view()) == ["T1", "T2", "T5", "T4", "T7"]

    def test_all_scope_stages_only(self, engine):
        engine.search("exact_values", values={"UserName": "Ahmed"}, scope="All")
        engine.search("exact_values", values={"Status": "Failed"}, scope="All")
        assert _ids(engine.get_composite_view()) == ["T3", "T6", "T4"]

    def test_backward_scan_stops_at_prev_stage(self, engine):
        engine.search("exact_values", values={"UserName": ["Ahmed", "Zeeshan"]}, scope="All")
        engine.search("exact_values", values={"PaymentMethod": "Card"})
        engine.search("exact_values", values={"Status": "Failed"}, scope="All")
        # stage 1 is Prev-scoped, so stage 0 does not contribute
        assert _ids(engine.get_composite_view()) == ["T1", "T6", "T4"]

    def test_revert_is_complement_within_target(self, engine):
        _over_100(engine)
        stage = engine.search("string_query", query="zeeshan", revert=True)
        assert _ids(stage.results) == ["T2"]

    def test_void_with_revert_empties_view(self, engine):
        engine.search_by_void(revert=True)
        assert engine.get_composite_view() == []

    def test_options_mapping_and_kwargs_merge(self, engine):
        stage = engine.search("string_query", {"query": "ali"}, include_fields=["UserName"])
        assert stage.options.include_fields == ("UserName",)

    def test_convenience_methods(self, engine):
        assert _ids(engine.search_by_string_query(query="ahmed").results) == ["T3", "T6"]
        assert engine.search_by_number_ranges(field="Amount", ranges=[{"max": 20}]).results[0]["TransactionID"] == "T6"
        assert engine.search_by_date_ranges(field="Date", ranges=[{"end": "2024-01-10"}], scope="All").results[0][
            "TransactionID"
        ] == "T1"
        assert _ids(engine.search_by_exact_values(values={"Status": "Failed"}, scope="All").results) == ["T4"]
        stage = engine.search_by_custom_fn(lambda r, _: r["UserName"] == "Zeeshan", scope="All")
        assert _ids(stage.results) == ["T1", "T5"]

    def test_apply_stage_alias(self, engine):
        assert _ids(engine.apply_stage("exact_values", values={"Status": "Failed"}).results) == ["T4"]

    def test_unknown_kind_raises(self, engine):
        with pytest.raises(InvalidOptionsError):
            engine.search("fuzzy", query="x")


class TestInvalidReferences:
    def test_unknown_field_is_a_warning_and_no_op(self, engine, warnings):
        _over_100(engine)
        before = engine.get_composite_view()
        assert engine.search("exact_values", values={"Nickname": "A"}) is None
        assert len(engine.get_stages()) == 1
        assert engine.get_composite_view() == before
        [warning] = warnings
        assert isinstance(warning, InvalidReferenceError)
        assert warning.field == "Nickname"

    def test_unknown_include_field(self, engine, warnings):
        assert engine.search("string_query", query="x", include_fields=["Nickname"]) is None
        assert len(warnings) == 1


class TestDispositions:
    def test_clear_all_before_apply(self, engine):
        _over_100(engine)
        engine.search("string_query", query="ali")
        engine.search("exact_values", values={"Status": "Failed"}, disposition="ClearAll")
        assert len(engine.get_stages()) == 1
        assert _ids(engine.get_composite_view()) == ["T4"]

    def test_clear_single_last_replaces(self, engine):
        _over_100(engine)
        engine.search("string_query", query="ali")
        engine.search("string_query", query="zeeshan", disposition="ClearSingle")
        assert [s.kind for s in engine.get_stages()] == [StageKind.NUMBER_RANGES, StageKind.STRING_QUERY]
        assert _ids(engine.get_composite_view()) == ["T1", "T5"]

    def test_last_if_same_kind(self, engine):
        _over_100(engine)
        engine.search("string_query", query="ali", disposition="LastIfSameKind")
        assert len(engine.get_stages()) == 2
        engine.search("string_query", query="zeeshan", disposition="LastIfSameKind")
        assert len(engine.get_stages()) == 2
        assert _ids(engine.get_composite_view()) == ["T1", "T5"]

    def test_missing_index_target_is_no_op(self, engine):
        _over_100(engine)
        engine.search("string_query", query="ali", disposition=Disposition.clear_single(5))
        assert len(engine.get_stages()) == 2

    def test_negative_index_target(self, engine):
        _over_100(engine)
        engine.search("string_query", query="ali", scope="All")
        engine.clear_stages(-2)
        assert [s.kind for s in engine.get_stages()] == [StageKind.STRING_QUERY]

    def test_removing_middle_stage_recomputes_later_ones(self, engine):
        _over_100(engine)
        engine.search("exact_values", values={"Status": "Completed"})
        assert _ids(engine.get_composite_view()) == ["T1", "T5"]
        engine.clear_stages(Disposition.clear_single(0))
        assert _ids(engine.get_composite_view()) == ["T1", "T3", "T5", "T6"]

    def test_clear_is_idempotent(self, engine, store, events):
        _over_100(engine)
        engine.clear_stages("ClearAll")
        state = (engine.get_stages(), engine.get_composite_view())
        events.clear()
        engine.clear_stages("ClearAll")
        assert (engine.get_stages(), engine.get_composite_view()) == state
        assert engine.get_composite_view() == store.records
        assert events == []

    def test_all_is_clear_all(self, engine):
        _over_100(engine)
        engine.clear_stages("All")
        engine.clear_stages("All")
        assert engine.get_stages() == []

    def test_clear_search(self, engine, store):
        _over_100(engine)
        engine.clear_search()
        assert engine.get_stages() == []
        assert engine.get_composite_view() == store.records

    def test_last_if_same_kind_without_kind_clears_nothing(self, engine):
        _over_100(engine)
        engine.clear_stages("LastIfSameKind")
        assert len(engine.get_stages()) == 1
        engine.clear_stages("LastIfSameKind", kind="number_ranges")
        assert engine.get_stages() == []


class TestNotifications:
    def test_event_order(self, engine, events):
        events.clear()
        _over_100(engine)
        assert [e.event_type for e in events if e.event_type.startswith("search.")] == [
            "search.results_changed",
            "search.options_changed",
            "search.performed",
        ]

    def test_no_results_changed_when_composite_is_unchanged(self, engine, events):
        events.clear()
        engine.search_by_void()
        assert "search.results_changed" not in [e.event_type for e in events]


class TestIncremental:
    def test_update_brings_record_into_range(self, engine, store):
        _over_100(engine)
        store.update_by_identities([{"Amount": 500}], [3])
        assert _ids(engine.get_stages()[0].results) == ["T1", "T2", "T5", "T3"]
        assert _ids(engine.get_composite_view()) == ["T1", "T2", "T5", "T3"]

    def test_update_drops_record_out_of_range(self, engine, store):
        _over_100(engine)
        store.update_by_identities([{"Amount": 5}], [2])
        assert _ids(engine.get_composite_view()) == ["T1", "T5"]

    def test_update_propagates_through_prev_stages(self, engine, store):
        _over_100(engine)
        engine.search("exact_values", values={"UserName": "Ahmed"})
        assert engine.get_composite_view() == []
        store.update_by_identities([{"Amount": 500}], [3])
        assert _ids(engine.get_composite_view()) == ["T3"]

    def test_added_records_are_filtered(self, engine, store):
        _over_100(engine)
        store.add([{"TransactionID": "T8", "Amount": 300}, {"TransactionID": "T9", "Amount": 3}])
        assert _ids(engine.get_composite_view()) == ["T1", "T2", "T5", "T8"]

    def test_removed_records_leave_every_stage(self, engine, store):
        _over_100(engine)
        engine.search("string_query", query="ali", scope="All")
        store.remove([2])
        assert _ids(engine.get_stages()[0].results) == ["T1", "T5"]
        assert _ids(engine.get_stages()[1].results) == ["T4", "T7"]

    def test_revert_stage_stays_consistent_on_update(self, engine, store):
        engine.search("exact_values", values={"Status": "Completed"}, revert=True)
        assert _ids(engine.get_composite_view()) == ["T2", "T4", "T7"]
        store.update_by_identities([{"Status": "Pending"}], [1])
        assert _ids(engine.get_composite_view()) == ["T2", "T4", "T7", "T1"]

    def test_custom_predicate_sees_whole_target_set(self, engine, store):
        def above_smallest(record, targets):
            amounts = [t["Amount"] for t in targets if isinstance(t.get("Amount"), (int, float))]
            return isinstance(record.get("Amount"), (int, float)) and record["Amount"] > min(amounts)

        engine.search_by_custom_fn(above_smallest)
        assert "T6" not in _ids(engine.get_composite_view())
        store.add([{"TransactionID": "T8", "Amount": 300}])
        assert _ids(engine.get_composite_view())[-1] == "T8"

    def test_close_stops_following_the_store(self, engine, store):
        _over_100(engine)
        engine.close()
        store.add([{"TransactionID": "T8", "Amount": 300}])
        assert _ids(engine.get_composite_view()) == ["T1", "T2", "T5"]


class TestSharedView:
    def test_uses_the_given_view(self, store, registry, settings):
        view = RecordView()
        engine = SearchEngine(store, registry, view, settings=settings)
        store.add([{"TransactionID": "T1"}])
        assert engine.view is view
        assert len(view) == 1
