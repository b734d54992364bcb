# app/models/__init__.py
from .lab_info import LabInfo
from .role import UserRole, RoleName
from .user import User
from .doctor import Doctor
from .lab_test import LabTest, TestParameter
from .patient import Patient, PatientTest, TestResult, PatientTestStatus
from .billing import Bill, InvoiceSequence

__all__ = [
    "LabInfo",
    "UserRole",
    "RoleName",
    "User",
    "Doctor",
    "LabTest",
    "TestParameter",
    "Patient",
    "PatientTest",
    "TestResult",
    "PatientTestStatus",
    "Bill",
    "InvoiceSequence",
]
