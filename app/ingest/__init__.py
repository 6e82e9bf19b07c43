from app.ingest.normalizer import (
    normalize_due_date,
    normalize_row,
    normalize_rows,
    normalize_status,
    parse_manual_text,
)
from app.ingest.spreadsheet import read_table

__all__ = [
    "normalize_due_date",
    "normalize_row",
    "normalize_rows",
    "normalize_status",
    "parse_manual_text",
    "read_table",
]
