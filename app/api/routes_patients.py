# FILE: app/api/routes_patients.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import current_user, get_db
from app.core.rbac import (ACCESS_BILLING, ACCESS_PATIENTS, ACCESS_RESULTS,
                           require_access)
from app.models.user import User
from app.schemas.patient import (
    PatientCreate,
    PatientCreatedOut,
    PatientOut,
    PatientTestOut,
    PatientTestStatusOut,
    PatientTestStatusUpdate,
    PatientWithBillOut,
)
from app.services import billing_service, lab_results, patient_service

router = APIRouter(tags=["Patients"])


@router.post("/patients", response_model=PatientCreatedOut, status_code=201)
def create_patient(
        payload: PatientCreate,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_PATIENTS)
    patient = patient_service.register_patient(db, payload)
    return {
        "success": True,
        "patient": patient,
        "test_ids": payload.test_ids,
    }


@router.get("/patients", response_model=List[PatientOut])
def list_patients(
        q: Optional[str] = Query(None),
        limit: int = Query(10, ge=1, le=100),
        offset: int = Query(0, ge=0),
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_PATIENTS)
    return patient_service.list_patients(db, q=q, limit=limit, offset=offset)


@router.get("/patients/with-bills", response_model=List[PatientWithBillOut])
def list_patients_with_bills(
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_BILLING)
    return billing_service.list_patients_with_bills(db)


@router.get("/patients/{patient_id}", response_model=PatientOut)
def get_patient(
        patient_id: int,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_PATIENTS)
    return patient_service.get_patient(db, patient_id)


@router.get("/patients/{patient_id}/tests", response_model=List[PatientTestOut])
def get_patient_tests(
        patient_id: int,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_RESULTS)
    return lab_results.get_patient_tests(db, patient_id)


@router.patch("/patient-tests/{patient_test_id}/status",
              response_model=PatientTestStatusOut)
def update_patient_test_status(
        patient_test_id: int,
        payload: PatientTestStatusUpdate,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_RESULTS)
    return lab_results.update_patient_test_status(
        db,
        patient_test_id=patient_test_id,
        status=payload.status,
        report_impression=payload.report_impression,
    )
