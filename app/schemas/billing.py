# FILE: app/schemas/billing.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from app.schemas.common import CamelModel
from app.schemas.patient import PatientOut


class BillCreate(CamelModel):
    patient_id: int = Field(gt=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    is_paid: bool = False


class BillPaymentUpdate(CamelModel):
    is_paid: bool


class BillOut(CamelModel):
    id: int
    invoice_number: str
    patient_id: int
    total_amount: Decimal
    discount: Decimal
    final_amount: Decimal
    is_paid: bool
    created_at: Optional[datetime] = None


class BillEnvelopeOut(CamelModel):
    success: bool = True
    bill: BillOut


class BillWithPatientOut(CamelModel):
    success: bool = True
    bill: BillOut
    patient: PatientOut


class BillSearchRow(BillOut):
    patient_name: str
    patient_code: Optional[str] = None  # human id (PATNO-...)
    patient_db_id: int


class BillSearchOut(CamelModel):
    success: bool = True
    results: List[BillSearchRow] = Field(default_factory=list)


class BillLineOut(CamelModel):
    patient_test_id: int
    test_name: str
    test_price: Decimal


class BillViewOut(CamelModel):
    patient: PatientOut
    lines: List[BillLineOut] = Field(default_factory=list)
    bill: Optional[BillOut] = None
