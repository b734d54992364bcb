# FILE: app/services/excel_export.py
from __future__ import annotations

import base64
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.billing import Bill
from app.models.doctor import Doctor
from app.models.lab_test import LabTest, TestParameter
from app.models.patient import Patient, PatientTest, TestResult
from app.services.errors import NotFoundError, ValidationError
from app.utils.timezone import now_local

logger = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

Sheet = Tuple[str, Sequence[str], Iterable[Sequence[Any]]]


def exports_dir() -> Path:
    p = Path(settings.EXPORTS_DIR).resolve()
    p.mkdir(parents=True, exist_ok=True)
    return p


def _cell(x: Any) -> Any:
    if isinstance(x, Decimal):
        return float(x)
    return x


def _table_rows(db: Session, model) -> Tuple[List[str], List[List[Any]]]:
    """Raw snapshot of a table: every column, ordered by id."""
    attrs = list(model.__mapper__.column_attrs)
    cols = [a.columns[0].name for a in attrs]
    rows = [[_cell(getattr(obj, a.key)) for a in attrs]
            for obj in db.query(model).order_by(model.id.asc()).all()]
    return cols, rows


def _write_workbook(sheets: Sequence[Sheet], kind: str) -> Path:
    wb = Workbook()
    wb.remove(wb.active)

    for title, headers, rows in sheets:
        ws = wb.create_sheet(title=title[:31])
        ws.append(list(headers))
        for r in rows:
            ws.append([_cell(v) for v in r])
        # autosize
        for col in range(1, len(headers) + 1):
            ws.column_dimensions[get_column_letter(col)].width = 18

    stamp = now_local().strftime("%Y-%m-%d_%H%M%S")
    path = exports_dir() / f"{kind}_{stamp}.xlsx"
    wb.save(path)
    logger.info("[EXPORT] wrote %s", path.name)
    return path


def export_patients(db: Session) -> Dict[str, Any]:
    headers = [
        "Patient ID", "Full Name", "Age", "Gender", "Phone Number", "Address",
        "State", "Pincode", "Medical History", "Allergies",
        "Insurance Policy Number", "Created At"
    ]
    patients = db.query(Patient).order_by(Patient.id.asc()).all()
    rows = [[
        p.patient_id, p.full_name, p.age, p.gender, p.phone_number,
        p.address_line_1, p.state, p.pincode, p.medical_history, p.allergies,
        p.insurance_policy_number, p.created_at
    ] for p in patients]
    path = _write_workbook([("Patients", headers, rows)], "patients")
    return {
        "success": True,
        "message": f"Exported {len(rows)} patients successfully",
        "filename": path.name,
        "filepath": str(path),
    }


def export_tests(db: Session) -> Dict[str, Any]:
    headers = ["Test Name", "Description", "Price", "Created At"]
    rows = [[t.name, t.description, t.price, t.created_at]
            for t in db.query(LabTest).order_by(LabTest.id.asc()).all()]
    path = _write_workbook([("Tests", headers, rows)], "tests")
    return {
        "success": True,
        "message": f"Exported {len(rows)} tests successfully",
        "filename": path.name,
        "filepath": str(path),
    }


def export_lab_snapshot(db: Session) -> Dict[str, Any]:
    """
    Multi-sheet raw snapshot of the lab tables.
    """
    tables = [
        ("Patients", Patient),
        ("Tests", LabTest),
        ("Test Parameters", TestParameter),
        ("Bills", Bill),
        ("Doctors", Doctor),
        ("Patient Tests", PatientTest),
        ("Test Results", TestResult),
    ]
    sheets: List[Sheet] = []
    stats: Dict[str, int] = {}
    for title, model in tables:
        headers, rows = _table_rows(db, model)
        sheets.append((title, headers, rows))
        stats[model.__tablename__] = len(rows)

    path = _write_workbook(sheets, "complete_lab_report")
    return {
        "success": True,
        "message": "Complete lab report exported successfully",
        "filename": path.name,
        "filepath": str(path),
        "stats": {
            "patients": stats["patients"],
            "tests": stats["tests"],
            "bills": stats["bills"],
            "doctors": stats["doctors"],
        },
    }


# ---------------- Export file management ----------------

def _resolve_export(filename: str) -> Path:
    name = (filename or "").strip()
    if not name or Path(name).name != name or name in {".", ".."}:
        raise ValidationError("Invalid filename")
    path = exports_dir() / name
    if not path.is_file():
        raise NotFoundError("File not found")
    return path


def list_exports() -> List[Dict[str, Any]]:
    files = []
    for p in exports_dir().glob("*.xlsx"):
        st = p.stat()
        files.append({
            "filename": p.name,
            "size": st.st_size,
            "modified_at": datetime.fromtimestamp(st.st_mtime),
        })
    files.sort(key=lambda f: f["modified_at"], reverse=True)
    return files


def download_export(filename: str) -> Dict[str, Any]:
    path = _resolve_export(filename)
    return {
        "success": True,
        "data": base64.b64encode(path.read_bytes()).decode("ascii"),
        "filename": path.name,
        "mime_type": XLSX_MIME,
    }


def delete_export(filename: str) -> None:
    path = _resolve_export(filename)
    path.unlink()
    logger.info("[EXPORT] deleted %s", path.name)


def cleanup_exports(days_old: Optional[int] = None) -> int:
    """
    Delete export files last modified more than days_old days ago.
    """
    days = days_old if days_old is not None else settings.EXPORT_RETENTION_DAYS
    cutoff = datetime.now() - timedelta(days=days)
    deleted = 0
    for p in exports_dir().iterdir():
        if not p.is_file():
            continue
        if datetime.fromtimestamp(p.stat().st_mtime) < cutoff:
            p.unlink()
            deleted += 1
    logger.info("[EXPORT] cleanup removed %s file(s) older than %s day(s)",
                deleted, days)
    return deleted
