import json

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.utils.timezone import now_local


class User(Base):
    __tablename__ = "users"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(191), unique=True, nullable=False)  # login id
    password = Column(String(255), nullable=False)  # password hash
    full_name = Column(String(120), nullable=False)
    email = Column(String(191), nullable=True)
    phone_number = Column(String(20), nullable=True)

    role_id = Column(Integer,
                     ForeignKey("user_roles.id", ondelete="RESTRICT"),
                     nullable=False)
    lab_info_id = Column(Integer,
                         ForeignKey("lab_info.id", ondelete="RESTRICT"),
                         nullable=False)

    # JSON array of permission tags, e.g. ["billing", "payments"]
    permissions = Column(Text, default="[]")
    is_active = Column(Boolean, default=True)
    last_login = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=now_local)
    updated_at = Column(DateTime, default=now_local, onupdate=now_local)

    role = relationship("UserRole", back_populates="users")
    lab_info = relationship("LabInfo", back_populates="users")

    @property
    def role_name(self) -> str:
        return self.role.role_name if self.role else ""

    @property
    def permission_list(self) -> list[str]:
        try:
            data = json.loads(self.permissions or "[]")
        except ValueError:
            return []
        return [str(p) for p in data] if isinstance(data, list) else []
