# FILE: app/schemas/user.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.schemas.common import CamelModel


class UserCreate(CamelModel):
    user_id: str = Field(min_length=1)
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1)
    email: Optional[str] = None
    phone_number: Optional[str] = None
    role_id: int = Field(gt=0)
    lab_info_id: int = Field(gt=0)
    permissions: Optional[List[str]] = None


class UserUpdate(CamelModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    role_id: Optional[int] = Field(default=None, gt=0)
    permissions: Optional[List[str]] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(default=None, min_length=6)


class RoleOut(CamelModel):
    id: int
    role_name: str
    description: Optional[str] = None


class UserOut(CamelModel):
    id: int
    user_id: str
    full_name: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    role_id: int
    role: Optional[str] = Field(default=None, validation_alias="role_name")
    lab_info_id: int
    permissions: List[str] = Field(default_factory=list,
                                   validation_alias="permission_list")
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
