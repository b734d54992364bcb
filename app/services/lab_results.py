# FILE: app/services/lab_results.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.billing import Bill
from app.models.lab_test import TestParameter
from app.models.patient import Patient, PatientTest, PatientTestStatus, TestResult
from app.services.errors import (ConflictError, InternalError, LabError,
                                 NotFoundError, ValidationError)
from app.utils.timezone import now_local

logger = logging.getLogger(__name__)

PENDING = PatientTestStatus.PENDING.value
BILLED = PatientTestStatus.BILLED.value
COMPLETED = PatientTestStatus.COMPLETED.value

# manual status changes; billing itself re-stamps to billed unconditionally
ALLOWED_TRANSITIONS: Dict[str, Set[str]] = {
    PENDING: {BILLED},
    BILLED: {COMPLETED, PENDING},
    COMPLETED: {BILLED},
}


def _load_patient_tests(db: Session, ids: Iterable[int]) -> Dict[int, PatientTest]:
    wanted = set(ids)
    rows = db.query(PatientTest).filter(PatientTest.id.in_(wanted)).all()
    found = {pt.id: pt for pt in rows}
    missing = sorted(wanted - set(found))
    if missing:
        raise NotFoundError(
            f"Patient test not found: {', '.join(map(str, missing))}")
    return found


def ensure_bills_paid(db: Session, patient_ids: Iterable[int]) -> None:
    """
    Result entry happens only after the patient's bill is paid.
    """
    pids = set(patient_ids)
    paid = {
        b.patient_id: bool(b.is_paid)
        for b in db.query(Bill).filter(Bill.patient_id.in_(pids)).all()
    }
    unpaid = sorted(pid for pid in pids if not paid.get(pid))
    if unpaid:
        raise ConflictError("Bill must be paid before entering results",
                            details={"patientIds": unpaid})


def submit_test_results(
    db: Session,
    *,
    results: Sequence[Any],
    patient_test_ids: Sequence[int],
    impressions: Optional[Sequence[Any]] = None,
) -> Dict[str, Any]:
    """
    Save parameter values, complete the listed patient tests and store
    impressions, as one transaction.

    results: items with patient_test_id, parameter_id, value, remarks
    impressions: items with patient_test_id, impression
    A value already stored for (patient_test_id, parameter_id) is replaced.
    """
    impressions = list(impressions or [])
    try:
        touched = _load_patient_tests(
            db,
            set(patient_test_ids)
            | {r.patient_test_id for r in results}
            | {i.patient_test_id for i in impressions},
        )

        if settings.RESULTS_REQUIRE_PAID_BILL:
            ensure_bills_paid(db, {pt.patient_id for pt in touched.values()})

        param_ids = {r.parameter_id for r in results}
        params = {
            p.id: p
            for p in db.query(TestParameter).filter(
                TestParameter.id.in_(param_ids)).all()
        }

        seen: Set[tuple] = set()
        for r in results:
            prm = params.get(r.parameter_id)
            if not prm:
                raise NotFoundError(
                    f"Test parameter not found: {r.parameter_id}")
            pt = touched[r.patient_test_id]
            if prm.test_id != pt.test_id:
                raise ValidationError(
                    f"Parameter {prm.id} does not belong to the test of patient test {pt.id}")
            key = (r.patient_test_id, r.parameter_id)
            if key in seen:
                raise ValidationError(
                    f"Duplicate result for parameter {prm.id} in patient test {pt.id}")
            seen.add(key)

        existing = {
            (tr.patient_test_id, tr.parameter_id): tr
            for tr in db.query(TestResult).filter(
                TestResult.patient_test_id.in_({k[0] for k in seen})).all()
        }

        now = now_local()
        for r in results:
            row = existing.get((r.patient_test_id, r.parameter_id))
            if row is None:
                row = TestResult(
                    patient_test_id=r.patient_test_id,
                    parameter_id=r.parameter_id,
                    created_at=now,
                )
                db.add(row)
            row.value = r.value
            row.remarks = r.remarks
            row.updated_at = now

        completed: List[int] = []
        for pt_id in dict.fromkeys(patient_test_ids):
            pt = touched[pt_id]
            pt.status = COMPLETED
            pt.test_result_date = now
            if pt.test_entry_date is None:
                pt.test_entry_date = now
            completed.append(pt_id)

        for imp in impressions:
            touched[imp.patient_test_id].report_impression = imp.impression

        db.commit()
    except LabError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[RESULTS] submit failed patient_tests=%s",
                         list(patient_test_ids))
        raise InternalError("Failed to submit test results") from e

    logger.info("[RESULTS] saved %s result(s), completed patient_tests=%s",
                len(results), completed)
    return {
        "success": True,
        "message": "Test results submitted successfully",
        "results_saved": len(results),
        "completed": completed,
    }


def get_patient_tests(db: Session, patient_id: int) -> List[Dict[str, Any]]:
    """
    Test-entry screen: assigned tests with status and parameters.
    """
    patient = db.get(Patient, patient_id)
    if not patient:
        raise NotFoundError(f"Patient not found: {patient_id}")

    out: List[Dict[str, Any]] = []
    for pt in patient.patient_tests:
        out.append({
            "patient_test_id": pt.id,
            "test_id": pt.test_id,
            "test_name": pt.test.name,
            "status": pt.status,
            "report_impression": pt.report_impression,
            "test_entry_date": pt.test_entry_date,
            "test_result_date": pt.test_result_date,
            "parameters": list(pt.test.parameters),
        })
    return out


def update_patient_test_status(
    db: Session,
    *,
    patient_test_id: int,
    status: str,
    report_impression: Optional[str] = None,
) -> PatientTest:
    if status not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"Invalid status: {status}")

    pt = db.get(PatientTest, patient_test_id)
    if not pt:
        raise NotFoundError(f"Patient test not found: {patient_test_id}")

    current = pt.status or PENDING
    if status != current and status not in ALLOWED_TRANSITIONS.get(current, set()):
        raise ConflictError(f"Cannot move patient test from {current} to {status}")

    if status != current and status == BILLED:
        if not db.query(Bill.id).filter(Bill.patient_id == pt.patient_id).first():
            raise ConflictError("Patient has no bill; generate the bill first")
    if status != current and status == COMPLETED and settings.RESULTS_REQUIRE_PAID_BILL:
        ensure_bills_paid(db, {pt.patient_id})

    pt.status = status
    if status == COMPLETED and pt.test_result_date is None:
        pt.test_result_date = now_local()
    if report_impression is not None:
        pt.report_impression = report_impression

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[RESULTS] status update failed id=%s",
                         patient_test_id)
        raise InternalError("Failed to update patient test status") from e

    db.refresh(pt)
    return pt
