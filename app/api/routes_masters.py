# FILE: app/api/routes_masters.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import current_user, get_db
from app.core.rbac import ACCESS_MASTER_ONLY, require_access
from app.crud import crud_lab_masters
from app.models.user import User
from app.schemas.lab import (
    DoctorCreate,
    DoctorOut,
    LabTestCreate,
    LabTestDetailOut,
    LabTestOut,
    TestParameterCreate,
    TestParameterOut,
)

router = APIRouter(tags=["Masters"])


# ---------- Doctors ----------

@router.get("/doctors", response_model=List[DoctorOut])
def list_doctors(
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    return crud_lab_masters.list_doctors(db)


@router.post("/doctors", response_model=DoctorOut, status_code=201)
def create_doctor(
        payload: DoctorCreate,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_MASTER_ONLY)
    return crud_lab_masters.create_doctor(db, payload)


# ---------- Tests ----------

@router.get("/tests", response_model=List[LabTestOut])
def list_tests(
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    return crud_lab_masters.list_tests(db)


@router.post("/tests", response_model=LabTestOut, status_code=201)
def create_test(
        payload: LabTestCreate,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_MASTER_ONLY)
    return crud_lab_masters.create_test(db, payload)


@router.get("/tests/{test_id}", response_model=LabTestDetailOut)
def get_test(
        test_id: int,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    return crud_lab_masters.get_test(db, test_id)


# ---------- Parameters ----------

@router.get("/tests/{test_id}/parameters",
            response_model=List[TestParameterOut])
def list_test_parameters(
        test_id: int,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    return crud_lab_masters.list_test_parameters(db, test_id)


@router.post("/test-parameters",
             response_model=TestParameterOut,
             status_code=201)
def create_test_parameter(
        payload: TestParameterCreate,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_MASTER_ONLY)
    return crud_lab_masters.create_test_parameter(db, payload)
