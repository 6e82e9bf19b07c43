import math
import re
from datetime import date, datetime
from typing import Any

from app.core.datetime_utils import excel_serial_to_date, parse_calendar_date
from app.core.logging import get_logger
from app.models.task import INT_COLUMN_MAX, MODULE_MAX_LENGTH, NAME_MAX_LENGTH
from app.schemas.task import NormalizedTask

logger = get_logger(__name__)

# Column aliases in priority order; matched case-insensitively
NAME_ALIASES = ("Feature Name", "name", "task", "Task", "Name")
MODULE_ALIASES = ("Module", "module")
DUE_DATE_ALIASES = ("Due Date", "dueDate", "due date")
VELOCITY_ALIASES = ("Velocity", "velocity", "storyPoints", "points", "Points")
BUGS_ALIASES = ("Bugs", "bugs")
STATUS_ALIASES = ("Status", "status")

VALID_STATUSES = {"todo", "in-progress", "done"}
DEFAULT_STATUS = "todo"

# Non-ISO date layouts accepted from spreadsheets and free text
DATE_FORMATS = ("%m/%d/%Y", "%d.%m.%Y", "%Y/%m/%d", "%d %b %Y", "%b %d, %Y")

# Plausible Excel serial range (1900-01-01 .. 9999-12-31)
EXCEL_SERIAL_RANGE = (1, 2958465)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_SEPARATORS = re.compile(r"[\s_]+")


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def _lookup(row: dict[str, Any], aliases: tuple[str, ...]) -> Any:
    """First non-empty value among the aliases, keys compared case-insensitively."""
    for alias in aliases:
        wanted = alias.lower()
        for key, value in row.items():
            if str(key).strip().lower() == wanted and not _is_empty(value):
                return value
    return None


def parse_int(value: Any, default: int = 0) -> int:
    """
    Lenient integer parse.

    "5" -> 5, "5.9" -> 5, "3 pts" -> 3, 4.0 -> 4; anything else -> default.
    """
    if _is_empty(value) or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default

    match = _LEADING_INT.match(str(value))
    if not match:
        return default
    return int(match.group(1))


def parse_count(value: Any, field: str) -> int:
    """Non-negative integer that fits the database column; anything else is 0."""
    number = parse_int(value)
    if number > INT_COLUMN_MAX:
        logger.bind(field=field, value=str(value)[:50]).warning("import_value_out_of_range")
        return 0
    return max(0, number)


def clip_text(value: str, limit: int, field: str) -> str:
    if len(value) <= limit:
        return value
    logger.bind(field=field, length=len(value), limit=limit).warning("import_value_truncated")
    return value[:limit].rstrip()


def normalize_status(value: Any) -> str:
    """
    Fold a status label into the task status enum.

    "In Progress", "in_progress" and "IN-PROGRESS" all become "in-progress".
    Unknown values fall back to "todo".
    """
    if _is_empty(value):
        return DEFAULT_STATUS

    folded = _SEPARATORS.sub("-", str(value).strip().lower())
    if folded in VALID_STATUSES:
        return folded
    if folded == "to-do":
        return "todo"

    logger.bind(status=str(value)).warning("import_status_unknown")
    return DEFAULT_STATUS


def normalize_due_date(value: Any) -> str:
    """
    Normalize a due date cell into ISO YYYY-MM-DD.

    Accepts ISO strings (time part ignored), date/datetime objects,
    pandas Timestamps, Excel serial numbers and a few common layouts.
    Returns "" when the value is empty or unparseable.
    """
    if _is_empty(value) or isinstance(value, bool):
        return ""

    if isinstance(value, datetime | date):
        return parse_calendar_date(value).isoformat()

    if isinstance(value, int | float):
        if EXCEL_SERIAL_RANGE[0] <= value <= EXCEL_SERIAL_RANGE[1]:
            return excel_serial_to_date(value).isoformat()
        return ""

    text = str(value).strip()
    parsed = parse_calendar_date(text)
    if parsed:
        return parsed.isoformat()

    # Spreadsheets read as text keep serials as strings ("45342" or "45342.0")
    try:
        serial = float(text)
    except ValueError:
        serial = None
    if serial is not None and EXCEL_SERIAL_RANGE[0] <= serial <= EXCEL_SERIAL_RANGE[1]:
        return excel_serial_to_date(serial).isoformat()

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue

    logger.bind(value=text[:50]).warning("import_due_date_unparseable")
    return ""


def _build_task(
    name: Any, module: Any, due: Any, velocity: Any, bugs: Any, status: Any, number: int
) -> NormalizedTask:
    name = str(name).strip() if not _is_empty(name) else ""
    module = str(module).strip() if not _is_empty(module) else ""

    return NormalizedTask(
        name=clip_text(name, NAME_MAX_LENGTH, "name") or f"Task {number}",
        module=clip_text(module, MODULE_MAX_LENGTH, "module"),
        due_date=normalize_due_date(due),
        velocity=parse_count(velocity, "velocity"),
        bugs=parse_count(bugs, "bugs"),
        status=normalize_status(status),
    )


def normalize_row(row: dict[str, Any], index: int) -> NormalizedTask:
    """
    Map one spreadsheet/CSV row into the canonical task shape.

    Never raises: a malformed cell degrades to its default, oversized text
    is truncated to the column width and out-of-range numbers become 0.

    Args:
        row: Row keyed by column header
        index: Zero-based row position (used for the fallback name)
    """
    return _build_task(
        _lookup(row, NAME_ALIASES),
        _lookup(row, MODULE_ALIASES),
        _lookup(row, DUE_DATE_ALIASES),
        _lookup(row, VELOCITY_ALIASES),
        _lookup(row, BUGS_ALIASES),
        _lookup(row, STATUS_ALIASES),
        index + 1,
    )


def normalize_rows(rows: list[dict[str, Any]], max_rows: int | None = None) -> list[NormalizedTask]:
    """Normalize every row; rows beyond max_rows are dropped with a warning."""
    if max_rows is not None and len(rows) > max_rows:
        logger.bind(rows=len(rows), max_rows=max_rows).warning("import_rows_truncated")
        rows = rows[:max_rows]

    tasks = [normalize_row(row, i) for i, row in enumerate(rows)]
    logger.bind(count=len(tasks)).info("import_rows_normalized")
    return tasks


def parse_manual_text(text: str) -> list[NormalizedTask]:
    """
    Parse free text, one task per line:

        Feature Name, Module, Due Date, Velocity, Bugs, Status

    Missing trailing fields take the same defaults as spreadsheet rows.
    Blank lines are skipped and do not consume a task number.
    """
    tasks: list[NormalizedTask] = []
    for line in (text or "").splitlines():
        if not line.strip():
            continue

        parts = [p.strip() for p in line.split(",")]
        parts += [""] * (6 - len(parts))
        tasks.append(_build_task(*parts[:6], number=len(tasks) + 1))

    logger.bind(count=len(tasks)).info("import_text_parsed")
    return tasks
