"""Tests for the recordview CLI."""

import json

import pytest
from typer.testing import CliRunner

from recordview.cli.app import app

runner = CliRunner()


@pytest.fixture
def data_file(tmp_path, transactions):
    path = tmp_path / "transactions.json"
    path.write_text(json.dumps(transactions), encoding="utf-8")
    return path


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "scores.csv"
    path.write_text("id,name,score\n1,Ahmed,7\n2,Ali,12\n3,Sara,null\n", encoding="utf-8")
    return path


def _query(*args):
    return runner.invoke(app, ["query", *map(str, args)])


def _ids(result):
    assert result.exit_code == 0, result.output
    return [item["TransactionID"] for item in json.loads(result.stdout)["items"]]


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("recordview ")


class TestQueryJson:
    def test_everything_on_one_page(self, data_file):
        result = _query(data_file, "--json")
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["total"] == 7
        assert payload["page"] == 1
        assert payload["page_count"] == 1
        assert payload["items"][3]["Amount"] is None

    def test_string_query(self, data_file):
        assert _ids(_query(data_file, "-q", "ali", "-f", "UserName", "--json")) == ["T2", "T4", "T7"]

    def test_inclusive_range_and_sort(self, data_file):
        result = _query(data_file, "-r", "Amount:250:980", "-s", "Amount:desc", "--json")
        assert _ids(result) == ["T5", "T1"]

    def test_open_range(self, data_file):
        assert _ids(_query(data_file, "-r", "Amount::20", "--json")) == ["T6"]

    def test_equals_any_value(self, data_file):
        result = _query(data_file, "-e", "Status=Pending", "-e", "Status=Failed", "--json")
        assert _ids(result) == ["T2", "T4", "T7"]

    def test_multi_level_sort(self, data_file):
        result = _query(data_file, "-s", "UserName", "-s", "Amount:desc", "--json")
        assert _ids(result) == ["T3", "T6", "T2", "T7", "T4", "T5", "T1"]

    def test_paging(self, data_file):
        result = _query(data_file, "-n", "2", "-p", "2", "--json")
        assert _ids(result) == ["T3", "T4"]
        payload = json.loads(result.stdout)
        assert payload["page_count"] == 4
        assert payload["page_size"] == 2

    def test_page_past_the_end_is_clamped(self, data_file):
        result = _query(data_file, "-n", "5", "-p", "9", "--json")
        assert json.loads(result.stdout)["page"] == 2

    def test_csv_values_are_parsed(self, csv_file):
        result = _query(csv_file, "-s", "score:desc", "--json")
        assert result.exit_code == 0
        items = json.loads(result.stdout)["items"]
        assert [item["name"] for item in items] == ["Ali", "Ahmed", "Sara"]
        assert items[0]["score"] == 12


class TestQueryTable:
    def test_table_output(self, data_file):
        result = _query(data_file, "-n", "3")
        assert result.exit_code == 0
        assert "Page 1 of 3 (7 matching)" in result.output

    def test_no_matches(self, data_file):
        result = _query(data_file, "-q", "nobody")
        assert result.exit_code == 0
        assert "No matching records." in result.output


class TestErrors:
    def test_unknown_sort_field_is_a_warning(self, data_file):
        result = _query(data_file, "-s", "Nickname")
        assert result.exit_code == 0
        assert "Warning" in result.output
        assert "Nickname" in result.output

    def test_zero_page_size(self, data_file):
        result = _query(data_file, "-n", "0")
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_malformed_range(self, data_file):
        result = _query(data_file, "-r", "Amount:1")
        assert result.exit_code == 1
        assert "invalid --range" in result.output

    def test_not_an_array(self, tmp_path):
        path = tmp_path / "object.json"
        path.write_text('{"a": 1}', encoding="utf-8")
        result = _query(path)
        assert result.exit_code == 1

    def test_missing_file(self, tmp_path):
        result = _query(tmp_path / "absent.json")
        assert result.exit_code != 0
