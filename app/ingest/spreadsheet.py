"""Read uploaded CSV/Excel files into rows keyed by column header."""

import io
from pathlib import PurePath
from typing import Any

import pandas as pd

from app.core.errors import ImportParseError
from app.core.logging import get_logger

logger = get_logger(__name__)

CSV_EXTENSIONS = {".csv", ".txt"}
EXCEL_EXTENSIONS = {".xlsx", ".xlsm", ".xls"}


def _frame_to_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    df = df.dropna(how="all")
    df.columns = [str(c).strip() for c in df.columns]
    # NaN/NaT cells become None so the normalizer sees them as empty
    df = df.astype(object).where(df.notna(), None)
    return df.to_dict(orient="records")


def read_table(content: bytes, filename: str) -> list[dict[str, Any]]:
    """
    Parse a CSV or Excel upload into a list of row dicts.

    CSV cells are read as text; Excel cells keep their native types
    (numbers, datetimes) and only the first sheet is read.

    Raises:
        ImportParseError: If the file is empty, of an unsupported type,
            or cannot be parsed at all
    """
    if not content:
        raise ImportParseError("Uploaded file is empty")

    suffix = PurePath(filename or "").suffix.lower()
    buffer = io.BytesIO(content)

    try:
        if suffix in CSV_EXTENSIONS:
            df = pd.read_csv(buffer, dtype=str, keep_default_na=False, na_values=[""])
        elif suffix in EXCEL_EXTENSIONS:
            df = pd.read_excel(buffer, sheet_name=0, dtype=object)
        else:
            raise ImportParseError(
                f"Unsupported file type '{suffix or filename}'. Use CSV or Excel."
            )
    except ImportParseError:
        raise
    except Exception as e:
        logger.bind(filename=filename, error=str(e)).warning("import_file_unreadable")
        raise ImportParseError("Error parsing file. Please check the format.") from e

    rows = _frame_to_rows(df)
    logger.bind(filename=filename, rows=len(rows)).info("import_file_read")
    return rows
