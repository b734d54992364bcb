# FILE: app/api/routes_results.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import current_user, get_db
from app.core.rbac import ACCESS_REPORTS, ACCESS_RESULTS, require_access
from app.models.user import User
from app.schemas.report import PatientReportOut
from app.schemas.results import SubmitTestResultsIn, SubmitTestResultsOut
from app.services import lab_report, lab_results

router = APIRouter(tags=["Results"])


@router.post("/test-results", response_model=SubmitTestResultsOut)
def submit_test_results(
        payload: SubmitTestResultsIn,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_RESULTS)
    return lab_results.submit_test_results(
        db,
        results=payload.results,
        patient_test_ids=payload.patient_test_ids,
        impressions=payload.impressions,
    )


@router.get("/reports/patients/{patient_id}", response_model=PatientReportOut)
def patient_report(
        patient_id: int,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_REPORTS)
    return {"success": True, **lab_report.get_patient_report(db, patient_id)}
