"""
CSV helpers for uploaded files.
Turns a byte buffer into header + row dictionaries and extracts task rows.
"""

import csv
import io
from dataclasses import dataclass, field
from datetime import UTC, datetime

from storecast.models.domain.distribution_domain import TaskSpecification

DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y", "%m/%d/%Y", "%Y/%m/%d")

_TITLE_KEYS = {"title", "task", "tasktitle", "name"}
_DESCRIPTION_KEYS = {"description", "desc", "details"}
_DUE_DATE_KEYS = {"duedate", "due", "deadline", "date"}


@dataclass(slots=True)
class ParsedCsv:
    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)
    separator: str = ","


def _decode(buffer: bytes) -> str:
    return buffer.decode("utf-8-sig", errors="replace")


def _split_lines(buffer: bytes) -> list[str]:
    return [line.strip() for line in _decode(buffer).splitlines() if line.strip()]


def detect_separator(header_line: str) -> str:
    return ";" if ";" in header_line else ","


def _read(lines: list[str], separator: str) -> list[list[str]]:
    reader = csv.reader(io.StringIO("\n".join(lines)), delimiter=separator, quotechar='"')
    return [[value.strip() for value in record] for record in reader]


def parse_csv(buffer: bytes) -> ParsedCsv:
    """
    Parse a header-first CSV; ``;`` is used when the header line contains one.
    Blank lines are ignored and missing trailing cells become "".
    """
    lines = _split_lines(buffer)
    if not lines:
        return ParsedCsv()

    separator = detect_separator(lines[0])
    records = _read(lines, separator)
    headers = records[0]
    rows = [
        {header: (record[i] if i < len(record) else "") for i, header in enumerate(headers)}
        for record in records[1:]
    ]
    return ParsedCsv(headers=headers, rows=rows, separator=separator)


def parse_due_date(value: str | None) -> datetime | None:
    """Parse a calendar date (or ISO timestamp) to an absolute UTC instant."""
    if not value or not value.strip():
        return None
    value = value.strip()

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=UTC)
        except ValueError:
            continue

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _normalize_header(header: str) -> str:
    return "".join(ch for ch in header.lower() if ch.isalnum())


def _column_for(headers: list[str], keys: set[str]) -> int | None:
    for index, header in enumerate(headers):
        if _normalize_header(header) in keys:
            return index
    return None


def parse_task_rows(buffer: bytes) -> list[TaskSpecification]:
    """
    Extract task specifications from a ``title; description; dueDate`` file.

    A header row is honoured when it names a title column; otherwise columns
    are positional. Rows without a title are dropped.
    """
    lines = _split_lines(buffer)
    if not lines:
        return []

    separator = detect_separator(lines[0])
    records = _read(lines, separator)

    headers = records[0]
    title_col = _column_for(headers, _TITLE_KEYS)
    if title_col is not None:
        description_col = _column_for(headers, _DESCRIPTION_KEYS)
        due_col = _column_for(headers, _DUE_DATE_KEYS)
        records = records[1:]
    else:
        title_col, description_col, due_col = 0, 1, 2

    def cell(record: list[str], index: int | None) -> str:
        if index is None or index >= len(record):
            return ""
        return record[index]

    tasks = []
    for record in records:
        title = cell(record, title_col)
        if not title:
            continue
        tasks.append(
            TaskSpecification(
                title=title,
                description=cell(record, description_col),
                due_date=parse_due_date(cell(record, due_col)),
            )
        )
    return tasks
