# FILE: app/schemas/patient.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from app.schemas.common import CamelModel
from app.schemas.lab import TestParameterOut

PatientTestStatusLit = Literal["pending", "billed", "completed"]


class PatientCreate(CamelModel):
    full_name: str = Field(min_length=1)
    age: Optional[int] = Field(default=None, ge=0)
    gender: Optional[Literal["Male", "Female", "Other"]] = None
    phone_number: str = Field(min_length=10)
    address_line_1: str = Field(min_length=1)
    state: str = Field(min_length=1)
    pincode: str = Field(min_length=6, max_length=6)
    medical_history: Optional[str] = None
    allergies: Optional[str] = None
    referred_by: Optional[int] = Field(default=None, gt=0)
    insurance_policy_number: Optional[str] = None
    patient_consent: bool
    test_ids: List[int] = Field(min_length=1)

    @field_validator("patient_consent")
    @classmethod
    def _consent_required(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("Patient consent is required")
        return v

    @field_validator("test_ids")
    @classmethod
    def _positive_ids(cls, v: List[int]) -> List[int]:
        if any(i <= 0 for i in v):
            raise ValueError("Test IDs must be positive numbers")
        return v


class PatientOut(CamelModel):
    id: int
    patient_id: Optional[str] = None
    full_name: str
    age: Optional[int] = None
    gender: Optional[str] = None
    phone_number: str
    address_line_1: str
    state: str
    pincode: str
    medical_history: Optional[str] = None
    allergies: Optional[str] = None
    insurance_policy_number: Optional[str] = None
    referred_by: Optional[int] = None
    patient_consent: bool
    created_at: Optional[datetime] = None


class PatientCreatedOut(CamelModel):
    success: bool = True
    patient: PatientOut
    test_ids: List[int]


class PatientTestOut(CamelModel):
    """Test-entry view of one assigned test."""
    patient_test_id: int
    test_id: int
    test_name: str
    status: str
    report_impression: Optional[str] = None
    test_entry_date: Optional[datetime] = None
    test_result_date: Optional[datetime] = None
    parameters: List[TestParameterOut] = Field(default_factory=list)


class PatientTestStatusUpdate(CamelModel):
    status: PatientTestStatusLit
    report_impression: Optional[str] = None


class PatientTestStatusOut(CamelModel):
    id: int
    patient_id: int
    test_id: int
    status: str
    report_impression: Optional[str] = None


class PatientBillSummary(CamelModel):
    id: int
    invoice_number: str
    total_amount: Decimal
    discount: Decimal
    final_amount: Decimal
    is_paid: bool
    created_at: Optional[datetime] = None


class PatientWithBillOut(CamelModel):
    id: int
    patient_id: Optional[str] = None
    full_name: str
    age: Optional[int] = None
    gender: Optional[str] = None
    phone_number: str
    address_line_1: str
    state: str
    pincode: str
    created_at: Optional[datetime] = None
    test_count: int = 0
    bill: Optional[PatientBillSummary] = None
