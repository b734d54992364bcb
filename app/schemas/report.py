# FILE: app/schemas/report.py
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from app.schemas.billing import BillOut
from app.schemas.common import CamelModel
from app.schemas.lab import DoctorOut
from app.schemas.patient import PatientOut


class ReportRowOut(CamelModel):
    """One row per (patient test, parameter)."""
    patient_test_id: int
    test_name: str
    test_price: Decimal
    report_impression: Optional[str] = None
    parameter_id: int
    parameter_name: str
    unit: Optional[str] = None
    normal_range: Optional[str] = None
    result_value: Optional[str] = None
    result_remarks: Optional[str] = None
    flag: Optional[str] = None  # H / L / N


class ReportSectionOut(CamelModel):
    """Rows grouped per test, with the impression footer."""
    patient_test_id: int
    test_name: str
    status: str
    report_impression: Optional[str] = None
    rows: List[ReportRowOut] = Field(default_factory=list)


class PatientReportOut(CamelModel):
    success: bool = True
    patient: PatientOut
    doctor: Optional[DoctorOut] = None
    tests: List[ReportRowOut] = Field(default_factory=list)
    sections: List[ReportSectionOut] = Field(default_factory=list)
    bill: Optional[BillOut] = None
