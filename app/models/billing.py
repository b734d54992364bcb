# FILE: app/models/billing.py
from __future__ import annotations

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Boolean,
    DateTime,
    ForeignKey,
)
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.utils.timezone import now_local


class Bill(Base):
    """
    One bill per patient.

    invoice_number: INV-YYYYMMDD-NNNN (printed on bills, keep format stable)
    final_amount = total_amount - discount
    """
    __tablename__ = "bills"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(32), unique=True, nullable=False)

    patient_id = Column(
        Integer,
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )

    total_amount = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), default=0)
    final_amount = Column(Numeric(10, 2), nullable=False)
    is_paid = Column(Boolean, default=False)

    created_at = Column(DateTime, default=now_local, index=True)

    patient = relationship("Patient", back_populates="bill")


class InvoiceSequence(Base):
    """
    Per-day invoice counter. Row is locked FOR UPDATE while allocating.
    """
    __tablename__ = "invoice_sequences"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True)
    date_key = Column(Integer, unique=True, nullable=False)  # YYYYMMDD
    next_seq = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime, default=now_local, onupdate=now_local)
