import os
import tempfile

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["RESULTS_REQUIRE_PAID_BILL"] = "true"
os.environ.setdefault("EXPORTS_DIR", tempfile.mkdtemp(prefix="labdesk-exports-"))

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

import app.models  # noqa: F401
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.main import app as fastapi_app
from app.models.doctor import Doctor
from app.models.lab_info import LabInfo
from app.models.lab_test import LabTest, TestParameter
from app.models.role import RoleName, UserRole
from app.schemas.patient import PatientCreate
from app.schemas.user import UserCreate
from app.services import patient_service, user_service
from app.utils.jwt import create_access_token
from tests.helpers import patient_payload


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    with TestClient(fastapi_app) as c:
        yield c


@pytest.fixture
def lab(db):
    user_service.seed_roles(db)
    obj = LabInfo(lab_name="City Diagnostics", registration_number="REG-001")
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@pytest.fixture
def make_user(db, lab):

    def _make(user_id, role=RoleName.CASHIER, password="secret123",
              permissions=None):
        role_row = db.query(UserRole).filter(
            UserRole.role_name == role.value).one()
        return user_service.create_user(
            db,
            UserCreate(user_id=user_id,
                       password=password,
                       full_name=user_id.title(),
                       role_id=role_row.id,
                       lab_info_id=lab.id,
                       permissions=permissions))

    return _make


@pytest.fixture
def auth_headers(make_user):

    def _headers(user_id, role=RoleName.CASHIER, permissions=None):
        user = make_user(user_id, role=role, permissions=permissions)
        token = create_access_token(subject=user.user_id, role=role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def catalog(db):
    """Two priced tests with parameters: CBC 500.00 and Lipid Profile 800.00."""
    cbc = LabTest(name="CBC", price=Decimal("500.00"))
    lipid = LabTest(name="Lipid Profile", price=Decimal("800.00"))
    db.add_all([cbc, lipid])
    db.flush()
    hb = TestParameter(test_id=cbc.id,
                       parameter_name="Hemoglobin",
                       unit="g/dL",
                       normal_range="13-17")
    wbc = TestParameter(test_id=cbc.id,
                        parameter_name="WBC",
                        unit="cells/uL",
                        normal_range="4000-11000")
    chol = TestParameter(test_id=lipid.id,
                         parameter_name="Total Cholesterol",
                         unit="mg/dL",
                         normal_range="< 200")
    db.add_all([hb, wbc, chol])
    db.commit()
    return {
        "cbc": cbc,
        "lipid": lipid,
        "hb": hb,
        "wbc": wbc,
        "chol": chol,
    }


@pytest.fixture
def doctor(db):
    obj = Doctor(name="Dr. Rao", specialization="Pathology")
    db.add(obj)
    db.commit()
    return obj


@pytest.fixture
def make_patient(db):

    def _make(test_ids, **overrides):
        payload = PatientCreate.model_validate(
            patient_payload(test_ids, **overrides))
        return patient_service.register_patient(db, payload)

    return _make
