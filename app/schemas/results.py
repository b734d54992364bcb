# FILE: app/schemas/results.py
from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from app.schemas.common import CamelModel


class TestResultIn(CamelModel):
    patient_test_id: int = Field(gt=0)
    parameter_id: int = Field(gt=0)
    value: str = Field(min_length=1)
    remarks: Optional[str] = None


class TestImpressionIn(CamelModel):
    patient_test_id: int = Field(gt=0)
    impression: str = Field(min_length=1)


class SubmitTestResultsIn(CamelModel):
    results: List[TestResultIn] = Field(min_length=1)
    patient_test_ids: List[int] = Field(min_length=1)
    impressions: Optional[List[TestImpressionIn]] = None


class SubmitTestResultsOut(CamelModel):
    success: bool = True
    message: str
    results_saved: int
    completed: List[int]
