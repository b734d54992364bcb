# FILE: app/services/patient_service.py
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.doctor import Doctor
from app.models.lab_test import LabTest
from app.models.patient import Patient, PatientTest, PatientTestStatus
from app.schemas.patient import PatientCreate
from app.services.errors import InternalError, LabError, NotFoundError
from app.services.id_gen import make_patient_code

logger = logging.getLogger(__name__)


def register_patient(db: Session, payload: PatientCreate) -> Patient:
    """
    Create the patient and one pending PatientTest per selected test.
    The PATNO code is stamped from the serial id inside the same transaction.
    """
    test_ids = list(dict.fromkeys(payload.test_ids))
    try:
        if payload.referred_by is not None and not db.get(
                Doctor, payload.referred_by):
            raise NotFoundError(f"Doctor not found: {payload.referred_by}")

        found = {
            t.id
            for t in db.query(LabTest.id).filter(LabTest.id.in_(test_ids)).all()
        }
        missing = [tid for tid in test_ids if tid not in found]
        if missing:
            raise NotFoundError(
                f"Test not found: {', '.join(map(str, missing))}")

        data = payload.model_dump(exclude={"test_ids"})
        patient = Patient(**data)
        db.add(patient)
        db.flush()

        patient.patient_id = make_patient_code(patient.id)
        for tid in test_ids:
            db.add(
                PatientTest(
                    patient_id=patient.id,
                    test_id=tid,
                    status=PatientTestStatus.PENDING.value,
                ))
        db.commit()
    except LabError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[PATIENTS] registration failed")
        raise InternalError("Failed to create patient") from e

    db.refresh(patient)
    logger.info("[PATIENTS] registered %s with %s test(s)", patient.patient_id,
                len(test_ids))
    return patient


def get_patient(db: Session, patient_id: int) -> Patient:
    patient = db.get(Patient, patient_id)
    if not patient:
        raise NotFoundError(f"Patient not found: {patient_id}")
    return patient


def list_patients(db: Session,
                  *,
                  q: Optional[str] = None,
                  limit: int = 10,
                  offset: int = 0) -> List[Patient]:
    base = db.query(Patient)
    if q and q.strip():
        like = f"%{q.strip()}%"
        base = base.filter(
            or_(
                Patient.full_name.ilike(like),
                Patient.patient_id.ilike(like),
                Patient.phone_number.ilike(like),
            ))
    return base.order_by(Patient.id.desc()).offset(offset).limit(limit).all()
