# FILE: app/services/lab_report.py
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.models.billing import Bill
from app.models.lab_test import LabTest, TestParameter
from app.models.patient import Patient, PatientTest, TestResult
from app.services.errors import NotFoundError

# "13-17", "13 - 17", "4.5 to 11", "-2 - 2"
_RANGE_RE = re.compile(
    r"^\s*(-?\d+(?:\.\d+)?)\s*(?:-|–|to)\s*(-?\d+(?:\.\d+)?)\s*$",
    re.IGNORECASE,
)


def _num(s: Any) -> Optional[Decimal]:
    try:
        return Decimal(str(s).strip())
    except (InvalidOperation, ValueError):
        return None


def parse_normal_range(text: Optional[str]) -> Optional[Tuple[Decimal, Decimal]]:
    """
    Numeric (low, high) when the range is written as low-high,
    None for qualitative ranges ("Negative", "< 200", "-").
    """
    if not text:
        return None
    m = _RANGE_RE.match(text)
    if not m:
        return None
    low, high = _num(m.group(1)), _num(m.group(2))
    if low is None or high is None or low > high:
        return None
    return low, high


def result_flag(value: Optional[str], normal_range: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    rng = parse_normal_range(normal_range)
    v = _num(value)
    if rng is None or v is None or not v.is_finite():
        return None
    low, high = rng
    if v < low:
        return "L"
    if v > high:
        return "H"
    return "N"


def get_report_rows(db: Session, patient_id: int) -> List[Dict[str, Any]]:
    """
    One row per (patient test, parameter), results left-joined by parameter.
    Tests are in assignment order, parameters in definition order.
    """
    patient_tests = (db.query(PatientTest, LabTest).join(
        LabTest, PatientTest.test_id == LabTest.id).filter(
            PatientTest.patient_id == patient_id).order_by(
                PatientTest.id.asc()).all())
    if not patient_tests:
        return []

    test_ids = {t.id for _, t in patient_tests}
    pt_ids = [pt.id for pt, _ in patient_tests]

    params_by_test: Dict[int, List[TestParameter]] = {}
    for prm in (db.query(TestParameter).filter(
            TestParameter.test_id.in_(test_ids)).order_by(
                TestParameter.id.asc()).all()):
        params_by_test.setdefault(prm.test_id, []).append(prm)

    results = {(r.patient_test_id, r.parameter_id): r
               for r in db.query(TestResult).filter(
                   TestResult.patient_test_id.in_(pt_ids)).all()}

    rows: List[Dict[str, Any]] = []
    for pt, test in patient_tests:
        for prm in params_by_test.get(test.id, []):
            res = results.get((pt.id, prm.id))
            value = res.value if res else None
            rows.append({
                "patient_test_id": pt.id,
                "test_name": test.name,
                "test_price": test.price,
                "report_impression": pt.report_impression,
                "parameter_id": prm.id,
                "parameter_name": prm.parameter_name,
                "unit": prm.unit,
                "normal_range": prm.normal_range,
                "result_value": value,
                "result_remarks": res.remarks if res else None,
                "flag": result_flag(value, prm.normal_range),
                "_status": pt.status,
            })
    return rows


def group_sections(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Report view: rows grouped per patient test, keeping first-seen order.
    """
    sections: Dict[int, Dict[str, Any]] = {}
    for row in rows:
        sec = sections.get(row["patient_test_id"])
        if sec is None:
            sec = sections[row["patient_test_id"]] = {
                "patient_test_id": row["patient_test_id"],
                "test_name": row["test_name"],
                "status": row["_status"],
                "report_impression": row["report_impression"],
                "rows": [],
            }
        sec["rows"].append(row)
    return list(sections.values())


def get_patient_report(db: Session, patient_id: int) -> Dict[str, Any]:
    patient = db.get(Patient, patient_id)
    if not patient:
        raise NotFoundError(f"Patient not found: {patient_id}")

    rows = get_report_rows(db, patient_id)
    bill = db.query(Bill).filter(Bill.patient_id == patient_id).first()

    return {
        "patient": patient,
        "doctor": patient.referring_doctor,
        "tests": rows,
        "sections": group_sections(rows),
        "bill": bill,
    }
