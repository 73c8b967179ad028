from __future__ import annotations

import io
import logging
import numbers
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd

from .models import PERCENTAGE_FIELDS, SCORE_FIELDS, Employee, ImportBatch, ManualDataEntry

logger = logging.getLogger(__name__)

# File header -> record field, in template order.
COLUMN_FIELDS: dict[str, str] = {
    "ProductivityRate": "productivityRate",
    "PrebookRate": "prebookRate",
    "FirstTimeRetentionRate": "firstTimeRetentionRate",
    "RepeatRetentionRate": "repeatRetentionRate",
    "RetailPercentage": "retailPercentage",
    "NewClients": "newClients",
    "AverageTicket": "averageTicket",
    "ServiceSalesPerHour": "serviceSalesPerHour",
    "ClientsRetailPercentage": "clientsRetailPercentage",
    "HoursSold": "hoursSold",
    "HappinessScore": "happinessScore",
    "NetCashPercentage": "netCashPercentage",
    "AttendanceRate": "attendanceRate",
    "TrainingHours": "trainingHours",
    "CustomerSatisfactionScore": "customerSatisfactionScore",
}
TEMPLATE_COLUMNS: tuple[str, ...] = ("EmployeeName", *COLUMN_FIELDS)
# Example row shipped in the downloadable template.
TEMPLATE_SAMPLE: dict[str, Any] = {
    "EmployeeName": "John Doe",
    "ProductivityRate": 85,
    "PrebookRate": 75,
    "FirstTimeRetentionRate": 80,
    "RepeatRetentionRate": 90,
    "RetailPercentage": 25,
    "NewClients": 30,
    "AverageTicket": 250,
    "ServiceSalesPerHour": 150,
    "ClientsRetailPercentage": 60,
    "HoursSold": 120,
    "HappinessScore": 8.5,
    "NetCashPercentage": 70,
    "AttendanceRate": 95,
    "TrainingHours": 8,
    "CustomerSatisfactionScore": 9.0,
}
REQUIRED_COLUMNS: tuple[str, ...] = ("ProductivityRate", "NewClients", "AverageTicket", "HappinessScore")
INTEGER_FIELDS = frozenset({"newClients"})

FIELD_LABELS: dict[str, str] = {
    "productivityRate": "Productivity rate",
    "prebookRate": "Prebook rate",
    "firstTimeRetentionRate": "First-time retention rate",
    "repeatRetentionRate": "Repeat retention rate",
    "retailPercentage": "Retail percentage",
    "clientsRetailPercentage": "Clients retail percentage",
    "netCashPercentage": "Net cash percentage",
    "attendanceRate": "Attendance rate",
    "happinessScore": "Happiness score",
    "customerSatisfactionScore": "Customer satisfaction score",
}

_LEADING_NUMBER_RE = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_LEADING_INT_RE = re.compile(r"^\s*[+-]?\d+")


class ImportFormatError(ValueError):
    """The uploaded file cannot be read or lacks required columns."""


def _as_str(v: Any) -> str:
    if v is None or (not isinstance(v, str) and pd.isna(v)):
        return ""
    return str(v).strip()


def parse_number(value: Any, *, integer: bool = False) -> float:
    """
    Lenient cell parsing: leading numeric prefix ("85%" -> 85), anything unparseable -> 0.
    Integers truncate toward zero.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, numbers.Real):
        if pd.isna(value) or abs(value) == float("inf"):
            return 0
        return float(int(value)) if integer else float(value)

    text = _as_str(value)
    match = (_LEADING_INT_RE if integer else _LEADING_NUMBER_RE).match(text)
    if match is None:
        return 0
    return float(match.group(0))


def build_template(fmt: str = "csv") -> bytes:
    """Blank import file (header plus one example row) as CSV or XLSX bytes."""
    frame = pd.DataFrame([TEMPLATE_SAMPLE], columns=list(TEMPLATE_COLUMNS))
    if fmt == "csv":
        return frame.to_csv(index=False).encode("utf-8")
    if fmt == "xlsx":
        buf = io.BytesIO()
        frame.to_excel(buf, index=False, sheet_name="Template", engine="openpyxl")
        return buf.getvalue()
    raise ImportFormatError(f"Unsupported template format {fmt!r}; use csv or xlsx")


def read_import_frame(content: bytes, filename: str) -> pd.DataFrame:
    suffix = Path(filename).suffix.lower()
    try:
        if suffix == ".xlsx":
            df = pd.read_excel(io.BytesIO(content), engine="openpyxl")
        elif suffix in (".csv", ""):
            df = pd.read_csv(io.BytesIO(content))
        else:
            raise ImportFormatError(f"Unsupported file type {suffix!r}; upload a .csv or .xlsx file")
    except ImportFormatError:
        raise
    except Exception as e:
        raise ImportFormatError(f"Could not parse {filename}: {e}") from e

    # Normalize columns: strip spaces
    df.columns = [str(c).strip() for c in df.columns]

    if "EmployeeName" not in df.columns and "Email" not in df.columns:
        raise ImportFormatError("Missing columns: EmployeeName (or Email)")
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ImportFormatError(f"Missing columns: {', '.join(missing)}")
    return df


def validate_entry(entry: Mapping[str, Any]) -> list[str]:
    """Range checks: percentages within 0-100, scores within 1-10."""
    errors: list[str] = []
    if not entry.get("employeeId"):
        errors.append("Employee is required")
    for name in PERCENTAGE_FIELDS:
        if name not in entry:
            continue
        value = float(entry.get(name) or 0)
        if value < 0 or value > 100:
            errors.append(f"{FIELD_LABELS[name]} must be between 0-100%")
    for name in SCORE_FIELDS:
        if name not in entry:
            continue
        value = float(entry.get(name) or 0)
        if value < 1 or value > 10:
            errors.append(f"{FIELD_LABELS[name]} must be between 1-10")
    return errors


def _match_employee(row: Mapping[str, Any], employees: Iterable[Employee]) -> Employee | None:
    name = _as_str(row.get("EmployeeName")).lower()
    email = _as_str(row.get("Email")).lower()
    for emp in employees:
        if (name and emp.name.lower() == name) or (email and emp.email.lower() == email):
            return emp
    return None


def import_kpi_rows(
    rows: Iterable[Mapping[str, Any]],
    *,
    employees: Iterable[Employee],
    month: str | int,
    year: int,
    file_name: str = "upload",
    uploaded_by: str | None = None,
    now: datetime | None = None,
) -> ImportBatch:
    """
    Convert raw import rows into ManualDataEntry records.

    Rows that match no employee are reported and skipped. Rows that fail a range check are still
    returned, flagged isValidated=False with their messages.
    """
    month_no = int(month)
    if not 1 <= month_no <= 12:
        raise ValueError("month must be between 1 and 12")
    ts = now or datetime.now(timezone.utc)
    stamp = int(ts.timestamp() * 1000)
    roster = list(employees)

    batch = ImportBatch(
        id=f"batch-{stamp}",
        fileName=file_name,
        month=f"{month_no:02d}",
        year=int(year),
        uploadedAt=ts,
        uploadedBy=uploaded_by,
    )

    for index, row in enumerate(rows):
        batch.recordCount += 1
        row_no = index + 1
        employee = _match_employee(row, roster)
        if employee is None:
            batch.errorCount += 1
            batch.errors.append(
                f"Row {row_no}: Employee not found - {_as_str(row.get('EmployeeName')) or _as_str(row.get('Email'))}"
            )
            continue

        try:
            fields: dict[str, Any] = {
                "employeeId": employee.id,
                "divisionId": employee.divisionId,
            }
            for column, name in COLUMN_FIELDS.items():
                if column not in row:
                    # Optional column absent from the file: keep the model default, skip range checks.
                    continue
                fields[name] = parse_number(row.get(column), integer=name in INTEGER_FIELDS)

            problems = validate_entry(fields)
            entry = ManualDataEntry(
                id=f"import-{stamp}-{index}",
                employeeName=employee.name,
                month=batch.month,
                year=batch.year,
                enteredBy=uploaded_by,
                enteredAt=ts,
                lastModified=ts,
                isValidated=not problems,
                validationErrors=problems,
                **fields,
            )
        except ValueError as e:
            batch.errorCount += 1
            batch.errors.append(f"Row {row_no}: {e}")
            continue

        batch.entries.append(entry)
        if problems:
            batch.errorCount += 1
            batch.errors.append(f"Row {row_no}: {', '.join(problems)}")
        else:
            batch.successCount += 1

    batch.status = "completed"
    logger.info(
        "IMPORT: %s -> %d rows, %d valid, %d with errors",
        file_name,
        batch.recordCount,
        batch.successCount,
        batch.errorCount,
    )
    return batch


def import_kpi_file(
    content: bytes,
    filename: str,
    *,
    employees: Iterable[Employee],
    month: str | int,
    year: int,
    uploaded_by: str | None = None,
    now: datetime | None = None,
) -> ImportBatch:
    df = read_import_frame(content, filename)
    rows = df.to_dict(orient="records")
    return import_kpi_rows(
        rows,
        employees=employees,
        month=month,
        year=year,
        file_name=filename,
        uploaded_by=uploaded_by,
        now=now,
    )
