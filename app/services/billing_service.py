# FILE: app/services/billing_service.py
from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.billing import Bill
from app.models.lab_test import LabTest
from app.models.patient import Patient, PatientTest, PatientTestStatus
from app.services.billing_numbers import next_invoice_number
from app.services.errors import (ConflictError, InternalError, LabError,
                                 NotFoundError, ValidationError)
from app.utils.timezone import now_local

logger = logging.getLogger(__name__)

# -------------------------
# Decimal helpers
# -------------------------
Q2 = Decimal("0.01")

BILL_EXISTS_MSG = "Bill already exists for this patient"


def D(x) -> Decimal:
    try:
        return Decimal(str(x if x is not None else 0)).quantize(
            Q2, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {x!r}")


def _bill_for_patient(db: Session, patient_id: int) -> Optional[Bill]:
    return db.query(Bill).filter(Bill.patient_id == patient_id).first()


def compute_totals(prices: List[Any], discount: Any) -> tuple[Decimal, Decimal, Decimal]:
    """
    (total, discount, final) with 2-decimal money semantics.
    0 <= discount <= total is enforced.
    """
    total = D(sum((D(p) for p in prices), Decimal("0")))
    disc = D(discount)
    if disc < 0:
        raise ValidationError("Discount cannot be negative")
    if disc > total:
        raise ValidationError(
            f"Discount {disc} cannot exceed the bill total {total}")
    return total, disc, D(total - disc)


def _create_bill_once(db: Session, *, patient_id: int, discount: Any,
                      is_paid: bool) -> Bill:
    patient = db.get(Patient, patient_id)
    if not patient:
        raise NotFoundError(f"Patient not found: {patient_id}")

    # early exit; bills.patient_id UNIQUE is the real guard
    if _bill_for_patient(db, patient_id):
        raise ConflictError(BILL_EXISTS_MSG)

    prices = [
        p for (p, ) in db.query(LabTest.price).join(
            PatientTest, PatientTest.test_id == LabTest.id).filter(
                PatientTest.patient_id == patient_id).all()
    ]
    total, disc, final = compute_totals(prices, discount)

    now = now_local()
    bill = Bill(
        invoice_number=next_invoice_number(db, on_date=now.date()),
        patient_id=patient_id,
        total_amount=total,
        discount=disc,
        final_amount=final,
        is_paid=bool(is_paid),
        created_at=now,
    )
    db.add(bill)

    # billing re-stamps every assigned test, whatever its current status
    db.query(PatientTest).filter(PatientTest.patient_id == patient_id).update(
        {PatientTest.status: PatientTestStatus.BILLED.value},
        synchronize_session=False,
    )
    db.flush()
    return bill


def create_bill(db: Session,
                *,
                patient_id: int,
                discount: Any = 0,
                is_paid: bool = False) -> Bill:
    """
    Generate the one bill of a patient and mark its tests billed,
    all in one transaction.

    IntegrityError handling:
      - bill for this patient now exists -> ConflictError
      - otherwise an invoice number / day counter race -> retry
    """
    attempts = max(1, int(settings.INVOICE_MAX_RETRIES or 1))

    for attempt in range(1, attempts + 1):
        try:
            bill = _create_bill_once(db,
                                     patient_id=patient_id,
                                     discount=discount,
                                     is_paid=is_paid)
            db.commit()
        except IntegrityError:
            db.rollback()
            if _bill_for_patient(db, patient_id):
                raise ConflictError(BILL_EXISTS_MSG)
            logger.warning(
                "[BILLING] invoice allocation collided patient_id=%s attempt=%s/%s",
                patient_id,
                attempt,
                attempts,
            )
            continue
        except LabError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("[BILLING] create_bill failed patient_id=%s",
                             patient_id)
            raise InternalError("Failed to create bill") from e

        db.refresh(bill)
        logger.info(
            "[BILLING] bill created invoice=%s patient_id=%s total=%s final=%s",
            bill.invoice_number,
            patient_id,
            bill.total_amount,
            bill.final_amount,
        )
        return bill

    raise ConflictError(
        "Could not allocate a unique invoice number, please retry")


def update_bill_payment(db: Session, *, bill_id: int, is_paid: bool) -> Bill:
    bill = db.get(Bill, bill_id)
    if not bill:
        raise NotFoundError("Bill not found")

    bill.is_paid = bool(is_paid)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[BILLING] payment update failed bill_id=%s", bill_id)
        raise InternalError("Failed to update bill payment status") from e

    db.refresh(bill)
    logger.info("[BILLING] bill %s is_paid=%s", bill.invoice_number,
                bill.is_paid)
    return bill


def get_bill(db: Session, bill_id: int) -> Dict[str, Any]:
    bill = db.get(Bill, bill_id)
    if not bill:
        raise NotFoundError("Bill not found")
    return {"bill": bill, "patient": bill.patient}


def search_bills(db: Session, query: str, *, limit: int = 20) -> List[Dict[str, Any]]:
    """
    Substring match on invoice number, patient code or patient name.
    """
    q = (query or "").strip()
    if not q:
        raise ValidationError("Search query is required")
    like = f"%{q}%"

    rows = (db.query(Bill, Patient).join(Patient,
                                         Bill.patient_id == Patient.id).filter(
                                             or_(
                                                 Bill.invoice_number.ilike(like),
                                                 Patient.patient_id.ilike(like),
                                                 Patient.full_name.ilike(like),
                                             )).order_by(
                                                 Bill.id.desc()).limit(limit).all())

    out: List[Dict[str, Any]] = []
    for bill, patient in rows:
        out.append({
            "id": bill.id,
            "invoice_number": bill.invoice_number,
            "patient_id": bill.patient_id,
            "total_amount": bill.total_amount,
            "discount": bill.discount,
            "final_amount": bill.final_amount,
            "is_paid": bool(bill.is_paid),
            "created_at": bill.created_at,
            "patient_name": patient.full_name,
            "patient_code": patient.patient_id,
            "patient_db_id": patient.id,
        })
    return out


def list_patients_with_bills(db: Session) -> List[Dict[str, Any]]:
    counts = dict(
        db.query(PatientTest.patient_id, func.count(PatientTest.id)).group_by(
            PatientTest.patient_id).all())

    rows = (db.query(Patient, Bill).outerjoin(
        Bill, Bill.patient_id == Patient.id).order_by(Patient.id.desc()).all())

    out: List[Dict[str, Any]] = []
    for p, bill in rows:
        out.append({
            "id": p.id,
            "patient_id": p.patient_id,
            "full_name": p.full_name,
            "age": p.age,
            "gender": p.gender,
            "phone_number": p.phone_number,
            "address_line_1": p.address_line_1,
            "state": p.state,
            "pincode": p.pincode,
            "created_at": p.created_at,
            "test_count": int(counts.get(p.id, 0)),
            "bill": bill,
        })
    return out


def get_bill_view(db: Session, patient_id: int) -> Dict[str, Any]:
    """
    Bill screen: one line per assigned test with its price.
    """
    patient = db.get(Patient, patient_id)
    if not patient:
        raise NotFoundError(f"Patient not found: {patient_id}")
    lines = [{
        "patient_test_id": pt_id,
        "test_name": name,
        "test_price": price,
    } for pt_id, name, price in db.query(
        PatientTest.id, LabTest.name, LabTest.price).join(
            LabTest, PatientTest.test_id == LabTest.id).filter(
                PatientTest.patient_id == patient_id).order_by(
                    PatientTest.id.asc()).all()]
    return {
        "patient": patient,
        "lines": lines,
        "bill": _bill_for_patient(db, patient_id),
    }
