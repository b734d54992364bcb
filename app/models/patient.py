# FILE: app/models/patient.py
import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.utils.timezone import now_local


class PatientTestStatus(str, enum.Enum):
    PENDING = "pending"
    BILLED = "billed"
    COMPLETED = "completed"


class Patient(Base):
    __tablename__ = "patients"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    # PATNO-0000001, stamped right after insert
    patient_id = Column(String(32), unique=True, nullable=True)

    full_name = Column(String(191), nullable=False, index=True)
    age = Column(Integer, nullable=True)
    gender = Column(String(16), nullable=True)  # Male / Female / Other
    phone_number = Column(String(20), nullable=False)
    address_line_1 = Column(String(255), nullable=False)
    state = Column(String(64), nullable=False)
    pincode = Column(String(6), nullable=False)

    medical_history = Column(Text, nullable=True)
    allergies = Column(Text, nullable=True)
    insurance_policy_number = Column(String(64), nullable=True)

    referred_by = Column(Integer,
                         ForeignKey("doctors.id", ondelete="RESTRICT"),
                         nullable=True)
    patient_consent = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=now_local)

    referring_doctor = relationship("Doctor", back_populates="patients")
    patient_tests = relationship("PatientTest",
                                 back_populates="patient",
                                 order_by="PatientTest.id")
    bill = relationship("Bill", back_populates="patient", uselist=False)


class PatientTest(Base):
    """
    One assigned test for one patient; carries the workflow status.
    pending -> billed (bill generated) -> completed (results submitted)
    """
    __tablename__ = "patient_tests"
    __table_args__ = (
        Index("ix_patient_tests_patient_status", "patient_id", "status"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
            "mysql_collate": "utf8mb4_unicode_ci",
        },
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer,
                        ForeignKey("patients.id", ondelete="RESTRICT"),
                        nullable=False)
    test_id = Column(Integer,
                     ForeignKey("tests.id", ondelete="RESTRICT"),
                     nullable=False,
                     index=True)
    status = Column(String(20),
                    nullable=False,
                    default=PatientTestStatus.PENDING.value)

    test_entry_date = Column(DateTime, nullable=True)
    test_result_date = Column(DateTime, nullable=True)
    report_impression = Column(Text, nullable=True)
    created_at = Column(DateTime, default=now_local)

    patient = relationship("Patient", back_populates="patient_tests")
    test = relationship("LabTest")
    results = relationship("TestResult", back_populates="patient_test")


class TestResult(Base):
    """
    Measured value for one (patient test, parameter) pair.
    """
    __tablename__ = "test_results"
    __table_args__ = (
        UniqueConstraint("patient_test_id",
                         "parameter_id",
                         name="uq_test_result_patient_test_param"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
            "mysql_collate": "utf8mb4_unicode_ci",
        },
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_test_id = Column(Integer,
                             ForeignKey("patient_tests.id",
                                        ondelete="RESTRICT"),
                             nullable=False,
                             index=True)
    parameter_id = Column(Integer,
                          ForeignKey("test_parameters.id",
                                     ondelete="RESTRICT"),
                          nullable=False)
    value = Column(String(255), nullable=False)
    remarks = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=now_local)
    updated_at = Column(DateTime,
                        nullable=False,
                        default=now_local,
                        onupdate=now_local)

    patient_test = relationship("PatientTest", back_populates="results")
    parameter = relationship("TestParameter")
