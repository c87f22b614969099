from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from . import models
from .compliance import EnrichedRecord
from .dates import format_iso_date, parse_iso_date
from .schemas import MAX_RENEWAL_MONTHS

logger = logging.getLogger(__name__)

EXPORT_HEADER = [
    "employee",
    "department",
    "training",
    "completionDate",
    "dueDate",
    "renewalMonths",
    "nextDue",
    "status",
    "category",
    "delivery",
]

IMPORT_COLUMNS = ("employee", "department", "training", "completionDate", "dueDate", "renewalMonths")

IMPORT_DEFAULT_DEPARTMENT = "General"
IMPORT_DEFAULT_TRAINING = "Training"


class CsvImportError(ValueError):
    pass


# ---------------------------------------------------------------------------
# EXPORT
# ---------------------------------------------------------------------------


def export_filename(today: date) -> str:
    return f"training_export_{today.isoformat()}.csv"


def export_csv(rows: Sequence[EnrichedRecord]) -> str:
    """
    Render enriched rows with the fixed header. Every field is quoted and
    embedded quotes are doubled; lines are separated by a bare newline.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_HEADER)
    for r in rows:
        renewal = r.effective_renewal_months
        writer.writerow(
            [
                r.employee_name or "",
                r.department or "",
                r.training_name,
                format_iso_date(r.record.completion_date),
                format_iso_date(r.record.due_date),
                "" if renewal is None else renewal,
                format_iso_date(r.next_due),
                r.status.value,
                r.category or "",
                r.delivery or "",
            ]
        )
    # no trailing newline after the last row
    return buffer.getvalue().rstrip("\n")


# ---------------------------------------------------------------------------
# IMPORT
# ---------------------------------------------------------------------------


@dataclass
class ImportRow:
    employee: str
    department: str
    training: str
    completion_date: Optional[date]
    due_date: Optional[date]
    renewal_months: Optional[int]


@dataclass
class ImportSummary:
    employees_created: int
    records_created: int


def _parse_int(value: str) -> Optional[int]:
    text = value.strip()
    if not text:
        return None
    try:
        months = int(float(text))
    except (ValueError, OverflowError):
        return None
    if not 0 <= months <= MAX_RENEWAL_MONTHS:
        return None
    return months


def parse_import_rows(text: str) -> List[ImportRow]:
    """
    Parse CSV text into rows without touching the database.

    Columns are found by case-insensitive header name, so their order does
    not matter and missing ones read as blank. Blank lines are skipped.
    Fewer than a header plus one data line yields no rows.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        return []

    try:
        table = list(csv.reader(lines, skipinitialspace=True, strict=True))
    except csv.Error as exc:
        raise CsvImportError(f"Malformed CSV: {exc}") from exc

    header = [h.strip().lower() for h in table[0]]
    index: Dict[str, int] = {}
    for name in IMPORT_COLUMNS:
        try:
            index[name] = header.index(name.lower())
        except ValueError:
            continue

    def cell(cols: List[str], name: str) -> str:
        i = index.get(name)
        if i is None or i >= len(cols):
            return ""
        return cols[i].strip()

    rows: List[ImportRow] = []
    for cols in table[1:]:
        rows.append(
            ImportRow(
                employee=cell(cols, "employee"),
                department=cell(cols, "department") or IMPORT_DEFAULT_DEPARTMENT,
                training=cell(cols, "training") or IMPORT_DEFAULT_TRAINING,
                completion_date=parse_iso_date(cell(cols, "completionDate")),
                due_date=parse_iso_date(cell(cols, "dueDate")),
                renewal_months=_parse_int(cell(cols, "renewalMonths")),
            )
        )
    return rows


def import_csv(db: Session, text: str) -> ImportSummary:
    """
    Create one record per data row, resolving employees by exact
    (name, department) against existing ones and ones created earlier in the
    same file. Imported records carry no template id.

    The file is fully parsed before anything is added, so a malformed file
    leaves the session untouched.
    """
    rows = parse_import_rows(text)
    if not rows:
        return ImportSummary(employees_created=0, records_created=0)

    known: Dict[Tuple[str, str], models.Employee] = {}
    for e in db.query(models.Employee).order_by(models.Employee.created_at.asc()).all():
        known.setdefault((e.name, e.department), e)

    employees_created = 0
    for row in rows:
        key = (row.employee, row.department)
        employee = known.get(key)
        if employee is None:
            employee = models.Employee(name=row.employee, department=row.department)
            db.add(employee)
            db.flush()
            known[key] = employee
            employees_created += 1

        db.add(
            models.TrainingRecord(
                employee_id=employee.id,
                training_name=row.training,
                completion_date=row.completion_date,
                due_date=row.due_date,
                renewal_months=row.renewal_months,
            )
        )
        db.flush()

    logger.info(
        "csv import applied",
        extra={"employees_created": employees_created, "records_created": len(rows)},
    )
    return ImportSummary(employees_created=employees_created, records_created=len(rows))
