from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.utils.timezone import now_local


class LabInfo(Base):
    """
    Operating lab. The first row (lowest id) is the canonical "main" lab.
    """
    __tablename__ = "lab_info"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    lab_name = Column(String(255), nullable=False)
    lab_logo = Column(Text, nullable=True)  # URL or base64
    gstin_number = Column(String(32), nullable=True)
    registration_number = Column(String(64), nullable=False)
    police_station_name = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    phone_number = Column(String(20), nullable=True)

    created_at = Column(DateTime, default=now_local)
    updated_at = Column(DateTime, default=now_local, onupdate=now_local)

    users = relationship("User", back_populates="lab_info")
