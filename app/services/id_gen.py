# FILE: app/services/id_gen.py
from __future__ import annotations

PATIENT_PREFIX = "PATNO"
DOCTOR_PREFIX = "DOCNO"


def _serial_code(prefix: str, pk: int, id_width: int) -> str:
    if pk is None or int(pk) <= 0:
        raise ValueError("primary key must be assigned before stamping a code")
    return f"{prefix}-{int(pk):0{id_width}d}"


def make_patient_code(patient_pk: int, *, id_width: int = 7) -> str:
    """PATNO-0000042 from patients.id = 42."""
    return _serial_code(PATIENT_PREFIX, patient_pk, id_width)


def make_doctor_code(doctor_pk: int, *, id_width: int = 7) -> str:
    return _serial_code(DOCTOR_PREFIX, doctor_pk, id_width)
