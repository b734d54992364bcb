import enum

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.utils.timezone import now_local


class RoleName(str, enum.Enum):
    MASTER = "master"
    CASHIER = "cashier"
    LAB_TECHNICIAN = "lab_technician"


ROLE_DESCRIPTIONS = {
    RoleName.MASTER: "Administrator with full system access",
    RoleName.CASHIER: "Handles payments and billing operations",
    RoleName.LAB_TECHNICIAN: "Manages test entry and test results",
}


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True)
    role_name = Column(String(64), unique=True, nullable=False)
    description = Column(String(255))
    created_at = Column(DateTime, default=now_local)

    users = relationship("User", back_populates="role")
