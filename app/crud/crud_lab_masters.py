# FILE: app/crud/crud_lab_masters.py
from __future__ import annotations

from typing import List, Optional
import re
import html as _html
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.doctor import Doctor
from app.models.lab_info import LabInfo
from app.models.lab_test import LabTest, TestParameter
from app.schemas.lab import (
    DoctorCreate,
    LabInfoCreate,
    LabInfoUpdate,
    LabTestCreate,
    TestParameterCreate,
)
from app.services.errors import ConflictError, InternalError, NotFoundError
from app.services.id_gen import make_doctor_code

logger = logging.getLogger(__name__)

# Only strip real HTML tags like <b> </p> etc.
# This will NOT remove values like "< 5.00" or "<= 10"
_HTML_TAG_RE = re.compile(r"</?[a-zA-Z][^>]*>")

MAX_NORMAL_RANGE_LEN = 255
MAX_UNIT_LEN = 64


def _strip_html_tags_if_present(s: str) -> str:
    if not s:
        return s
    if _HTML_TAG_RE.search(s):
        s = _HTML_TAG_RE.sub("", s)
        s = _html.unescape(s)
    return s


def _clean_multiline_text(s: str) -> str:
    s = (s or "").replace("\r\n", "\n").replace("\r", "\n")
    s = _strip_html_tags_if_present(s).strip()
    lines = [ln.rstrip() for ln in s.split("\n")]
    while lines and lines[0].strip() == "":
        lines.pop(0)
    while lines and lines[-1].strip() == "":
        lines.pop()
    return "\n".join(lines).strip()


def _normalize(unit: Optional[str], normal: Optional[str]):
    """Blank unit / range are stored as NULL."""
    unit = (unit or "").strip()[:MAX_UNIT_LEN]
    normal = _clean_multiline_text(normal or "")[:MAX_NORMAL_RANGE_LEN]
    return unit or None, normal or None


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[MASTERS] %s failed", what)
        raise InternalError(f"Failed to {what}") from e


# ---------------- Lab info ----------------

def create_lab_info(db: Session, data: LabInfoCreate) -> LabInfo:
    obj = LabInfo(**data.model_dump())
    db.add(obj)
    _commit(db, "create lab info")
    db.refresh(obj)
    return obj


def get_lab_info(db: Session, lab_info_id: int) -> LabInfo:
    obj = db.get(LabInfo, lab_info_id)
    if not obj:
        raise NotFoundError("Lab info not found")
    return obj


def get_main_lab_info(db: Session) -> LabInfo:
    obj = db.query(LabInfo).order_by(LabInfo.id.asc()).first()
    if not obj:
        raise NotFoundError("Lab info not found")
    return obj


def update_lab_info(db: Session, lab_info_id: int, data: LabInfoUpdate) -> LabInfo:
    obj = get_lab_info(db, lab_info_id)
    for k, v in data.model_dump(exclude_unset=True).items():
        # empty strings do not overwrite stored values
        if v is None or v == "":
            continue
        setattr(obj, k, v)
    _commit(db, "update lab info")
    db.refresh(obj)
    return obj


# ---------------- Doctors ----------------

def list_doctors(db: Session) -> List[Doctor]:
    return db.query(Doctor).order_by(Doctor.name.asc()).all()


def create_doctor(db: Session, data: DoctorCreate) -> Doctor:
    obj = Doctor(**data.model_dump())
    db.add(obj)
    try:
        db.flush()
        obj.doctor_id = make_doctor_code(obj.id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[MASTERS] create doctor failed")
        raise InternalError("Failed to create doctor") from e
    _commit(db, "create doctor")
    db.refresh(obj)
    logger.info("[MASTERS] doctor created %s", obj.doctor_id)
    return obj


# ---------------- Tests ----------------

def list_tests(db: Session) -> List[LabTest]:
    return db.query(LabTest).order_by(LabTest.name.asc()).all()


def get_test(db: Session, test_id: int) -> LabTest:
    obj = db.get(LabTest, test_id)
    if not obj:
        raise NotFoundError(f"Test not found: {test_id}")
    return obj


def create_test(db: Session, data: LabTestCreate) -> LabTest:
    name = data.name.strip()
    if db.query(LabTest.id).filter(LabTest.name == name).first():
        raise ConflictError(f'Test "{name}" already exists')

    obj = LabTest(name=name, description=data.description, price=data.price)
    db.add(obj)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f'Test "{name}" already exists')
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[MASTERS] create test failed")
        raise InternalError("Failed to create test") from e
    db.refresh(obj)
    return obj


# ---------------- Parameters ----------------

def list_test_parameters(db: Session, test_id: int) -> List[TestParameter]:
    get_test(db, test_id)
    return (db.query(TestParameter).filter(
        TestParameter.test_id == test_id).order_by(
            TestParameter.id.asc()).all())


def create_test_parameter(db: Session, data: TestParameterCreate) -> TestParameter:
    get_test(db, data.test_id)
    unit, normal = _normalize(data.unit, data.normal_range)
    obj = TestParameter(
        test_id=data.test_id,
        parameter_name=data.parameter_name,
        unit=unit,
        normal_range=normal,
    )
    db.add(obj)
    _commit(db, "create test parameter")
    db.refresh(obj)
    return obj
