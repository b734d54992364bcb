# FILE: app/schemas/lab.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from app.schemas.common import CamelModel


# ---------- Lab info ----------
class LabInfoCreate(CamelModel):
    lab_name: str = Field(min_length=1)
    lab_logo: Optional[str] = None
    gstin_number: Optional[str] = None
    registration_number: str = Field(min_length=1)
    police_station_name: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None


class LabInfoUpdate(CamelModel):
    lab_name: Optional[str] = None
    lab_logo: Optional[str] = None
    gstin_number: Optional[str] = None
    registration_number: Optional[str] = None
    police_station_name: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None


class LabInfoOut(CamelModel):
    id: int
    lab_name: str
    lab_logo: Optional[str] = None
    gstin_number: Optional[str] = None
    registration_number: str
    police_station_name: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------- Doctors ----------
class DoctorCreate(CamelModel):
    name: str = Field(min_length=1)
    specialization: Optional[str] = None
    contact_number: Optional[str] = None


class DoctorOut(CamelModel):
    id: int
    doctor_id: Optional[str] = None
    name: str
    specialization: Optional[str] = None
    contact_number: Optional[str] = None
    created_at: Optional[datetime] = None


# ---------- Tests / parameters ----------
class LabTestCreate(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)


class TestParameterCreate(CamelModel):
    test_id: int = Field(gt=0)
    parameter_name: str = Field(min_length=1)
    unit: Optional[str] = None
    normal_range: Optional[str] = None

    @field_validator("parameter_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Parameter name is required")
        return v


class TestParameterOut(CamelModel):
    id: int
    test_id: int
    parameter_name: str
    unit: Optional[str] = None
    normal_range: Optional[str] = None


class LabTestOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    created_at: Optional[datetime] = None


class LabTestDetailOut(LabTestOut):
    parameters: List[TestParameterOut] = Field(default_factory=list)
