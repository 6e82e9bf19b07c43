"""Tests for CSV/Excel upload parsing."""

import io
from datetime import datetime

import pandas as pd
import pytest

from app.core.errors import ImportParseError
from app.ingest import normalize_rows, read_table


def make_xlsx(rows: list[dict]) -> bytes:
    buffer = io.BytesIO()
    pd.DataFrame(rows).to_excel(buffer, index=False)
    return buffer.getvalue()


class TestReadTable:
    def test_csv_rows(self):
        content = b"Feature Name,Module,Velocity,Bugs,Status\nLogin,Auth,5,2,todo\nSearch,API,3,,done\n"

        rows = read_table(content, "tasks.csv")

        assert len(rows) == 2
        assert rows[0]["Feature Name"] == "Login"
        assert rows[0]["Velocity"] == "5"
        assert rows[1]["Bugs"] is None

    def test_csv_skips_blank_rows(self):
        content = b"name,velocity\nA,1\n,\nB,2\n"

        rows = read_table(content, "tasks.csv")

        assert [r["name"] for r in rows] == ["A", "B"]

    def test_xlsx_keeps_native_types(self):
        content = make_xlsx(
            [
                {"Feature Name": "Login", "Due Date": datetime(2026, 2, 20), "Velocity": 5},
                {"Feature Name": "Search", "Due Date": None, "Velocity": 3},
            ]
        )

        rows = read_table(content, "Sprint.XLSX")
        tasks = normalize_rows(rows)

        assert len(tasks) == 2
        assert tasks[0].due_date == "2026-02-20"
        assert tasks[0].velocity == 5
        assert tasks[1].due_date == ""

    def test_empty_file(self):
        with pytest.raises(ImportParseError):
            read_table(b"", "tasks.csv")

    def test_unsupported_extension(self):
        with pytest.raises(ImportParseError) as exc_info:
            read_table(b"hello", "tasks.pdf")

        assert ".pdf" in exc_info.value.message

    def test_corrupt_excel(self):
        with pytest.raises(ImportParseError) as exc_info:
            read_table(b"not really a workbook", "tasks.xlsx")

        assert exc_info.value.status_code == 400
