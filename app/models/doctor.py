from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.utils.timezone import now_local


class Doctor(Base):
    """Referral source for patients."""
    __tablename__ = "doctors"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    # DOCNO-0000001, stamped right after insert
    doctor_id = Column(String(32), unique=True, nullable=True)
    name = Column(String(120), nullable=False)
    specialization = Column(String(120), nullable=True)
    contact_number = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=now_local)

    patients = relationship("Patient", back_populates="referring_doctor")
