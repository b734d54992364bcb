# FILE: app/api/routes_billing.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import current_user, get_db
from app.core.rbac import ACCESS_BILLING, ACCESS_PAYMENTS, require_access
from app.models.user import User
from app.schemas.billing import (
    BillCreate,
    BillEnvelopeOut,
    BillPaymentUpdate,
    BillSearchOut,
    BillViewOut,
    BillWithPatientOut,
)
from app.services import billing_service

router = APIRouter(prefix="/bills", tags=["Billing"])


@router.post("", response_model=BillEnvelopeOut, status_code=201)
def create_bill(
        payload: BillCreate,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_BILLING)
    bill = billing_service.create_bill(db,
                                       patient_id=payload.patient_id,
                                       discount=payload.discount,
                                       is_paid=payload.is_paid)
    return {"success": True, "bill": bill}


@router.get("/search", response_model=BillSearchOut)
def search_bills(
        q: str = Query(..., min_length=1),
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_BILLING)
    return {"success": True, "results": billing_service.search_bills(db, q)}


@router.get("/patients/{patient_id}/view", response_model=BillViewOut)
def bill_view(
        patient_id: int,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_BILLING)
    return billing_service.get_bill_view(db, patient_id)


@router.get("/{bill_id}", response_model=BillWithPatientOut)
def get_bill(
        bill_id: int,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_BILLING)
    return {"success": True, **billing_service.get_bill(db, bill_id)}


@router.patch("/{bill_id}/payment", response_model=BillEnvelopeOut)
def update_payment(
        bill_id: int,
        payload: BillPaymentUpdate,
        db: Session = Depends(get_db),
        me: User = Depends(current_user),
):
    require_access(me, ACCESS_PAYMENTS)
    bill = billing_service.update_bill_payment(db,
                                               bill_id=bill_id,
                                               is_paid=payload.is_paid)
    return {"success": True, "bill": bill}
