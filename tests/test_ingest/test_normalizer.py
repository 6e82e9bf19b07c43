"""Tests for import row normalization."""

from datetime import date, datetime

import pytest

from app.ingest.normalizer import (
    normalize_due_date,
    normalize_row,
    normalize_rows,
    normalize_status,
    parse_int,
    parse_manual_text,
)


class TestNormalizeRow:
    """Tests for mapping spreadsheet rows to tasks."""

    def test_canonical_headers(self):
        row = {
            "Feature Name": "Login",
            "Module": "Auth",
            "Due Date": "2026-02-20",
            "Velocity": "5",
            "Bugs": "2",
            "Status": "In Progress",
        }

        task = normalize_row(row, 0)

        assert task.name == "Login"
        assert task.module == "Auth"
        assert task.due_date == "2026-02-20"
        assert task.velocity == 5
        assert task.bugs == 2
        assert task.status == "in-progress"

    def test_blank_cells_default(self):
        row = {"Feature Name": "Login", "Velocity": "5", "Bugs": "", "Status": "In-Progress"}

        task = normalize_row(row, 0)

        assert task.model_dump() == {
            "name": "Login",
            "module": "",
            "due_date": "",
            "velocity": 5,
            "bugs": 0,
            "status": "in-progress",
        }

    def test_alias_headers(self):
        row = {"task": "Search", "module": "API", "dueDate": "2026-04-01", "storyPoints": 8, "bugs": 1}

        task = normalize_row(row, 0)

        assert task.name == "Search"
        assert task.velocity == 8
        assert task.due_date == "2026-04-01"

    def test_headers_match_case_insensitively(self):
        task = normalize_row({"FEATURE NAME": "Export", "VELOCITY": "3"}, 0)

        assert task.name == "Export"
        assert task.velocity == 3

    def test_first_non_empty_alias_wins(self):
        task = normalize_row({"Feature Name": "", "name": "Fallback"}, 0)

        assert task.name == "Fallback"

    def test_missing_fields_take_defaults(self):
        """An empty row still yields a complete task."""
        task = normalize_row({}, 4)

        assert task.name == "Task 5"
        assert task.module == ""
        assert task.due_date == ""
        assert task.velocity == 0
        assert task.bugs == 0
        assert task.status == "todo"

    def test_unparseable_values_degrade(self):
        row = {"name": "Broken", "Velocity": "lots", "Bugs": "-3", "Due Date": "someday", "Status": "blocked"}

        task = normalize_row(row, 0)

        assert task.velocity == 0
        assert task.bugs == 0
        assert task.due_date == ""
        assert task.status == "todo"

    def test_nan_cells_are_empty(self):
        task = normalize_row({"name": float("nan"), "Velocity": float("nan")}, 1)

        assert task.name == "Task 2"
        assert task.velocity == 0

    def test_headers_differing_only_in_case_keep_filled_value(self):
        task = normalize_row({"Name": "Checkout", "name": "", "Bugs": 2, "bugs": None}, 0)

        assert task.name == "Checkout"
        assert task.bugs == 2

    def test_out_of_range_numbers_fall_back(self):
        row = {"name": "Huge", "Velocity": "99999999999999999999999", "Bugs": 2**31}

        task = normalize_row(row, 0)

        assert task.velocity == 0
        assert task.bugs == 0

    def test_largest_column_value_is_kept(self):
        task = normalize_row({"name": "Big", "Velocity": str(2**31 - 1)}, 0)

        assert task.velocity == 2**31 - 1

    def test_long_text_is_truncated(self):
        task = normalize_row({"name": "x" * 600, "Module": "m" * 300}, 0)

        assert len(task.name) == 500
        assert len(task.module) == 255


class TestNormalizeRows:
    def test_normalizes_every_row(self):
        rows = [{"name": "A"}, {"name": "B"}, {}]

        tasks = normalize_rows(rows)

        assert [t.name for t in tasks] == ["A", "B", "Task 3"]

    def test_truncates_to_max_rows(self):
        rows = [{"name": f"T{i}"} for i in range(5)]

        tasks = normalize_rows(rows, max_rows=3)

        assert len(tasks) == 3

    def test_empty_input(self):
        assert normalize_rows([]) == []


class TestParseInt:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("5", 5),
            ("5.9", 5),
            ("3 pts", 3),
            (4.0, 4),
            (7, 7),
            ("", 0),
            (None, 0),
            ("abc", 0),
            (True, 0),
            (float("inf"), 0),
        ],
    )
    def test_lenient_parse(self, value, expected):
        assert parse_int(value) == expected


class TestNormalizeStatus:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("todo", "todo"),
            ("To Do", "todo"),
            ("TODO", "todo"),
            ("In Progress", "in-progress"),
            ("in_progress", "in-progress"),
            ("IN-PROGRESS", "in-progress"),
            ("Done", "done"),
            ("", "todo"),
            (None, "todo"),
            ("blocked", "todo"),
        ],
    )
    def test_folds_labels(self, value, expected):
        assert normalize_status(value) == expected


class TestNormalizeDueDate:
    def test_iso_string(self):
        assert normalize_due_date("2026-02-20") == "2026-02-20"

    def test_iso_datetime_string_drops_time(self):
        assert normalize_due_date("2026-02-20T23:30:00Z") == "2026-02-20"

    def test_date_and_datetime_objects(self):
        assert normalize_due_date(date(2026, 5, 1)) == "2026-05-01"
        assert normalize_due_date(datetime(2026, 5, 1, 18, 45)) == "2026-05-01"

    def test_excel_serial_number(self):
        assert normalize_due_date(45342) == "2024-02-20"
        assert normalize_due_date(45342.75) == "2024-02-20"

    def test_excel_serial_as_text(self):
        assert normalize_due_date("45342") == "2024-02-20"

    def test_common_layouts(self):
        assert normalize_due_date("02/20/2026") == "2026-02-20"
        assert normalize_due_date("20.02.2026") == "2026-02-20"

    def test_empty_and_invalid(self):
        assert normalize_due_date(None) == ""
        assert normalize_due_date("") == ""
        assert normalize_due_date("next sprint") == ""
        assert normalize_due_date(-5) == ""


class TestParseManualText:
    def test_full_lines(self):
        text = "Login, Auth, 2026-02-20, 5, 2, in-progress\nSearch, API, 2026-03-01, 3, 0, done"

        tasks = parse_manual_text(text)

        assert len(tasks) == 2
        assert tasks[0].name == "Login"
        assert tasks[0].module == "Auth"
        assert tasks[0].status == "in-progress"
        assert tasks[1].velocity == 3
        assert tasks[1].status == "done"

    def test_partial_lines_use_defaults(self):
        tasks = parse_manual_text("Checkout, Payments")

        assert tasks[0].name == "Checkout"
        assert tasks[0].due_date == ""
        assert tasks[0].velocity == 0
        assert tasks[0].status == "todo"

    def test_blank_lines_skipped(self):
        tasks = parse_manual_text("\n\nA, X\n   \n, Y\n")

        assert len(tasks) == 2
        assert tasks[0].name == "A"
        assert tasks[1].name == "Task 2"

    def test_empty_text(self):
        assert parse_manual_text("") == []

    def test_out_of_range_line_does_not_affect_others(self):
        tasks = parse_manual_text("Alpha, Core, , 99999999999999999999999, 0, todo\nBeta, Core, , 3, 0, todo")

        assert [t.name for t in tasks] == ["Alpha", "Beta"]
        assert tasks[0].velocity == 0
        assert tasks[1].velocity == 3

    def test_long_name_is_truncated(self):
        tasks = parse_manual_text("y" * 700 + ", Core")

        assert tasks[0].name == "y" * 500
        assert tasks[0].module == "Core"
